"""
Transcript reconciliation.

Speech-to-text providers emit a stream of interim guesses followed by a final
result for each utterance, and sometimes repeat the final result. The
reconciler folds that stream into a clean, ordered log.
"""

from __future__ import annotations

import time
from typing import Callable, List, Optional

from .models import TranscriptSegment


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


def format_segments(segments: List[TranscriptSegment]) -> str:
    return "\n".join(s.as_line() for s in segments)


class TranscriptReconciler:
    """
    Ordered, deduplicated transcript log for one session.

    Invariants:
        - at most one non-final segment, and only at the tail; a final
          segment replaces it
        - a final segment is dropped if its text equals the previous final's
    """

    def __init__(self, clock: Callable[[], float] = _wall_clock_ms):
        self._clock = clock
        self._segments: List[TranscriptSegment] = []
        self._last_final_text: Optional[str] = None
        self._last_activity_ms: Optional[float] = None

    def ingest(self, segment: TranscriptSegment) -> None:
        self._last_activity_ms = segment.timestamp_ms
        tail = self._segments[-1] if self._segments else None

        if not segment.is_final:
            if tail is not None and not tail.is_final:
                self._segments[-1] = segment
            else:
                self._segments.append(segment)
            return

        # a final result supersedes the utterance's interim guess
        if tail is not None and not tail.is_final:
            self._segments.pop()
        if segment.text == self._last_final_text:
            return
        self._last_final_text = segment.text
        self._segments.append(segment)

    def full_transcript(self) -> str:
        return format_segments([s for s in self._segments if s.is_final])

    def recent_transcript(self, window_minutes: float = 5.0, now_ms: Optional[float] = None) -> str:
        """Final segments whose timestamp falls inside the trailing window."""
        now = self._clock() if now_ms is None else now_ms
        cutoff = now - window_minutes * 60_000
        return format_segments([
            s for s in self._segments if s.is_final and s.timestamp_ms >= cutoff
        ])

    @property
    def segments(self) -> List[TranscriptSegment]:
        return list(self._segments)

    @property
    def last_activity_ms(self) -> Optional[float]:
        """Timestamp of the newest ingested segment, interim or final."""
        return self._last_activity_ms

    def clear(self) -> None:
        self._segments.clear()
        self._last_final_text = None
        self._last_activity_ms = None

    def __len__(self) -> int:
        return len(self._segments)
