"""
Quick demo script: run the Rapport API locally.

Usage:
    python scripts/run_demo.py

Set LLM_API_KEY (or OPENAI_API_KEY) in the environment or a .env file to use
a live reasoning service; without one every question and summary comes from
the built-in fallbacks.
"""

import uvicorn


def main():
    print("=" * 60)
    print("  Rapport — Conversation Facilitation Engine")
    print("=" * 60)
    print()
    print("Starting server at http://localhost:8000")
    print("Start a session with POST /api/session/start, then stream")
    print("speech segments over /ws/{session_id}.")
    print()
    print("API docs: http://localhost:8000/docs")
    print("Press Ctrl+C to stop.")
    print()

    uvicorn.run(
        "rapport.api.app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )


if __name__ == "__main__":
    main()
