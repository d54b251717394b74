"""
FastAPI application for Rapport.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket

# Configure logging to show INFO from rapport modules
logging.basicConfig(level=logging.INFO, format="%(name)s - %(levelname)s - %(message)s")
logging.getLogger("rapport").setLevel(logging.INFO)
from fastapi.middleware.cors import CORSMiddleware

from .routes import router, get_session_manager
from .websocket import websocket_endpoint


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # no tick timer may outlive the server
    get_session_manager().shutdown()


app = FastAPI(
    title="Rapport",
    description="Real-time facilitation engine for two-person conversations",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(router)


@app.get("/")
async def root():
    return {"message": "Rapport API", "docs": "/docs"}


@app.websocket("/ws/{session_id}")
async def ws_endpoint(websocket: WebSocket, session_id: str):
    """WebSocket endpoint for real-time facilitation events."""
    sm = get_session_manager()
    await websocket_endpoint(websocket, session_id, sm)
