"""
Environment-driven configuration for Rapport.

Values come from environment variables; a `.env` file is loaded into
os.environ first (variables that are already set are never overwritten).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path

logger = logging.getLogger(__name__)

_dotenv_loaded = False


def load_dotenv() -> None:
    """Load the first .env found into os.environ (only vars not already set)."""
    global _dotenv_loaded
    if _dotenv_loaded:
        return
    _dotenv_loaded = True
    for parent in [Path.cwd()] + list(Path(__file__).resolve().parents):
        env_path = parent / ".env"
        if env_path.exists():
            for line in env_path.read_text().splitlines():
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" in line:
                    key, value = line.split("=", 1)
                    key, value = key.strip(), value.strip().strip('"').strip("'")
                    if key and key not in os.environ:
                        os.environ[key] = value
            logger.debug(f"[config] Loaded {env_path}")
            break  # only load the first .env found


@dataclass
class FacilitationConfig:
    """
    Timing and threshold knobs of the facilitation engine.

    Every field can be overridden with a RAPPORT_<FIELD_NAME> variable,
    e.g. RAPPORT_CHECK_INTERVAL_S=10.
    """

    check_interval_s: float = 15.0          # periodic tick
    initial_analysis_delay_s: float = 30.0  # one-shot analysis after start
    analysis_interval_s: float = 30.0       # min age before re-analysing
    question_cooldown_s: float = 60.0       # hard gap between questions
    speech_quiet_window_s: float = 5.0      # don't interrupt speech this fresh
    timing_fallback_s: float = 120.0        # gate allows after this on failure
    recent_window_minutes: float = 5.0
    min_transcript_chars: int = 100

    @classmethod
    def from_env(cls) -> "FacilitationConfig":
        load_dotenv()
        overrides = {}
        for f in fields(cls):
            raw = os.environ.get(f"RAPPORT_{f.name.upper()}", "").strip()
            if not raw:
                continue
            try:
                overrides[f.name] = int(raw) if f.type in (int, "int") else float(raw)
            except ValueError:
                logger.warning(f"[config] Ignoring invalid RAPPORT_{f.name.upper()}={raw!r}")
        return cls(**overrides)
