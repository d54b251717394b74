"""
In-memory session manager for Rapport.

Stores active FacilitationScheduler instances keyed by session_id.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Dict, List, Optional

from ..config import FacilitationConfig
from ..core.models import SessionReport, Vibe
from ..core.scheduler import FacilitationScheduler
from ..llm.client import LLMClient, build_client

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Manages active facilitation sessions in memory.

    One reasoning-service client is shared by every session; it is created
    lazily on first use (None when no API key is configured, in which case
    every session runs on fallbacks).
    """

    def __init__(
        self,
        config: Optional[FacilitationConfig] = None,
        client_factory: Callable[[], Optional[LLMClient]] = build_client,
    ):
        self.config = config or FacilitationConfig.from_env()
        self._client_factory = client_factory
        self._client: Optional[LLMClient] = None
        self._client_loaded = False
        self._sessions: Dict[str, FacilitationScheduler] = {}

    @property
    def client(self) -> Optional[LLMClient]:
        if not self._client_loaded:
            self._client = self._client_factory()
            self._client_loaded = True
        return self._client

    def create_session(self, vibe: Vibe, autostart: bool = True) -> str:
        """Create a new session and return its ID. Must run on the event loop when autostart is set."""
        session_id = str(uuid.uuid4())[:8]
        scheduler = FacilitationScheduler(
            vibe,
            client=self.client,
            config=self.config,
            session_id=session_id,
        )
        self._sessions[session_id] = scheduler
        if autostart:
            scheduler.start()
        logger.info(f"[SessionManager] Created session {session_id} (vibe={vibe.value})")
        return session_id

    def get_scheduler(self, session_id: str) -> Optional[FacilitationScheduler]:
        return self._sessions.get(session_id)

    def session_exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def end_session(self, session_id: str) -> Optional[SessionReport]:
        """End a session and return its report. The session stays readable until deleted."""
        scheduler = self._sessions.get(session_id)
        if scheduler is None:
            return None
        return await scheduler.end()

    def delete_session(self, session_id: str) -> None:
        scheduler = self._sessions.pop(session_id, None)
        if scheduler is not None:
            scheduler.cancel_timers()

    def list_sessions(self) -> List[str]:
        return list(self._sessions.keys())

    def shutdown(self) -> None:
        """Drop every session, cancelling their timers without summarizing."""
        for session_id in list(self._sessions):
            self.delete_session(session_id)
