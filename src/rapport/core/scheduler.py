"""
FacilitationScheduler: main orchestrator for one facilitated conversation.

Lifecycle of a question:
    idle → analyzing → checking (timing gate) → generating → presenting
    → (dismiss | skip) → idle

with idle re-entered whenever the gate says "not now". The session is
terminal once end() has been called.

Concurrency model: everything runs on one asyncio event loop. Analysis and
generation are each single-flight; the in-flight flags are checked and set
before the first await, so a second request arriving while one is pending is
dropped rather than queued. Results that arrive after end() are discarded.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

from ..config import FacilitationConfig
from ..llm.analyzer import ConversationAnalyzer
from ..llm.client import LLMClient
from ..llm.generator import QuestionGenerator
from ..llm.summarizer import SessionSummarizer
from ..llm.timing import TimingGate
from .models import (
    ConversationAnalysis,
    GeneratedQuestion,
    SessionReport,
    TranscriptSegment,
    Vibe,
)
from .transcript import TranscriptReconciler

logger = logging.getLogger(__name__)

# State constants
STATE_IDLE = "idle"
STATE_ANALYZING = "analyzing"
STATE_CHECKING = "checking"
STATE_GENERATING = "generating"
STATE_PRESENTING = "presenting"
STATE_ENDED = "ended"

TOP_QUESTIONS_COUNT = 3

Listener = Callable[[Dict[str, Any]], None]


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


def _percentages(counts: Counter) -> Dict[str, int]:
    total = sum(counts.values())
    if not total:
        return {}
    return {key: round(100 * n / total) for key, n in counts.items()}


class FacilitationScheduler:
    """
    Ties the reconciler, analyzer, timing gate, generator and summarizer
    together for one session.

    Usage:
        scheduler = FacilitationScheduler(Vibe.DEEP, client=build_client())
        scheduler.start()                 # periodic ticks on the running loop
        scheduler.ingest(segment)         # for every speech event
        await scheduler.force_next()      # "next question" control
        scheduler.dismiss() / skip()      # user acted on the question
        report = await scheduler.end()    # cancels timers, summarizes
    """

    def __init__(
        self,
        vibe: Vibe,
        client: Optional[LLMClient] = None,
        config: Optional[FacilitationConfig] = None,
        session_id: Optional[str] = None,
        clock: Callable[[], float] = _wall_clock_ms,
    ):
        self.vibe = vibe
        self.config = config or FacilitationConfig()
        self.session_id = session_id or str(uuid.uuid4())[:8]
        self._clock = clock

        self.reconciler = TranscriptReconciler(clock=clock)
        self.analyzer = ConversationAnalyzer(
            client, min_transcript_chars=self.config.min_transcript_chars
        )
        self.gate = TimingGate(
            client,
            cooldown_ms=self.config.question_cooldown_s * 1000,
            quiet_window_ms=self.config.speech_quiet_window_s * 1000,
            failure_allow_after_ms=self.config.timing_fallback_s * 1000,
        )
        self.generator = QuestionGenerator(client)
        self.summarizer = SessionSummarizer(client)

        self.analysis: Optional[ConversationAnalysis] = None
        self.current_question: Optional[GeneratedQuestion] = None
        self.asked_questions: List[str] = []
        self.presented_questions: List[GeneratedQuestion] = []
        self.questions_answered = 0
        self.questions_skipped = 0

        self.started_at_ms = clock()
        self.last_question_ms = 0.0
        self.last_analysis_ms: Optional[float] = None

        # Single-flight flags
        self._analyzing = False
        self._generating = False
        self._checking = False
        self._ticking = False

        self._ended = False
        self._end_task: Optional[asyncio.Task] = None
        self._tasks: Dict[str, asyncio.Task] = {}
        self._listeners: List[Listener] = []

    # =========================================================================
    # STATE
    # =========================================================================

    @property
    def state(self) -> str:
        if self._ended:
            return STATE_ENDED
        if self.current_question is not None:
            return STATE_PRESENTING
        if self._generating:
            return STATE_GENERATING
        if self._checking:
            return STATE_CHECKING
        if self._analyzing:
            return STATE_ANALYZING
        return STATE_IDLE

    @property
    def is_ended(self) -> bool:
        return self._ended

    def now_ms(self) -> float:
        return self._clock()

    def recent_transcript(self) -> str:
        return self.reconciler.recent_transcript(self.config.recent_window_minutes)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "vibe": self.vibe.value,
            "state": self.state,
            "current_question": self.current_question.to_dict() if self.current_question else None,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "asked_questions": list(self.asked_questions),
            "questions_answered": self.questions_answered,
            "questions_skipped": self.questions_skipped,
            "segment_count": len(self.reconciler),
        }

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for engine events. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def _emit(self, event: Dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception(f"[Scheduler {self.session_id}] Listener failed on {event.get('type')}")

    # =========================================================================
    # TIMERS
    # =========================================================================

    def start(self) -> None:
        """Schedule the periodic tick and the initial analysis on the running loop."""
        if self._ended or self._tasks:
            return
        self._tasks["tick"] = asyncio.create_task(
            self._tick_loop(), name=f"rapport-tick-{self.session_id}"
        )
        if self.analysis is None:
            self._tasks["initial_analysis"] = asyncio.create_task(
                self._initial_analysis(), name=f"rapport-initial-analysis-{self.session_id}"
            )
        logger.info(
            f"[Scheduler {self.session_id}] Started (vibe={self.vibe.value}, "
            f"tick={self.config.check_interval_s}s)"
        )

    def cancel_timers(self) -> None:
        for name, task in self._tasks.items():
            if not task.done():
                task.cancel()
                logger.debug(f"[Scheduler {self.session_id}] Cancelled {name}")
        self._tasks.clear()

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.check_interval_s)
            try:
                await self.tick()
            except Exception:
                logger.exception(f"[Scheduler {self.session_id}] Tick failed")

    async def _initial_analysis(self) -> None:
        await asyncio.sleep(self.config.initial_analysis_delay_s)
        if self.analysis is None:
            await self.analyze()

    # =========================================================================
    # INGESTION
    # =========================================================================

    def ingest(self, segment: TranscriptSegment) -> None:
        if self._ended:
            logger.debug(f"[Scheduler {self.session_id}] Ignoring segment after session end")
            return
        self.reconciler.ingest(segment)

    # =========================================================================
    # ANALYSIS / TIMING / GENERATION
    # =========================================================================

    def _analysis_due(self, now_ms: float) -> bool:
        if self.last_analysis_ms is None:
            return True
        return now_ms - self.last_analysis_ms > self.config.analysis_interval_s * 1000

    async def tick(self) -> Optional[GeneratedQuestion]:
        """One periodic evaluation. Returns the question presented by this tick, if any."""
        if self._ended or self.current_question is not None or self._generating or self._ticking:
            return None

        self._ticking = True
        try:
            if self._analysis_due(self._clock()):
                await self.analyze()
                if self._ended:
                    return None
            if self.analysis is None:
                return None

            self._checking = True
            try:
                allowed = await self.gate.should_ask(
                    self.recent_transcript(),
                    self.last_question_ms,
                    self._clock(),
                    last_speech_ms=self.reconciler.last_activity_ms,
                )
            finally:
                self._checking = False

            if not allowed or self._ended:
                return None
            if self._clock() - self.last_question_ms < self.gate.cooldown_ms:
                # a forced question went out while the gate was deciding
                return None
            return await self.generate()
        finally:
            self._ticking = False

    async def analyze(self) -> Optional[ConversationAnalysis]:
        """
        Run one analysis. Dropped (returns None) while another is in flight;
        returns the previous analysis when the transcript is still too short.
        """
        if self._ended:
            return None
        if self._analyzing:
            logger.debug(f"[Scheduler {self.session_id}] Analysis already in flight, dropping request")
            return None

        previous = self.analysis
        self._analyzing = True
        try:
            analysis = await self.analyzer.analyze(
                self.recent_transcript(),
                self.vibe,
                list(self.asked_questions),
                previous=previous,
            )
        finally:
            self._analyzing = False

        if self._ended:
            logger.info(f"[Scheduler {self.session_id}] Discarding analysis that finished after session end")
            return None
        if analysis is not None and analysis is not previous:
            self.analysis = analysis
            self.last_analysis_ms = self._clock()
            self._emit({"type": "analysis", "data": analysis.to_dict()})
        return self.analysis

    async def generate(self) -> Optional[GeneratedQuestion]:
        """
        Produce and present the next question. Dropped (returns None) while
        another generation is in flight or a question is already presented.
        """
        if self._ended or self.current_question is not None:
            return None
        if self._generating:
            logger.debug(f"[Scheduler {self.session_id}] Generation already in flight, dropping request")
            return None

        self._generating = True
        try:
            if self.analysis is None:
                question = self.generator.starter_question(self.vibe, self.asked_questions)
            else:
                question = await self.generator.generate(
                    self.vibe,
                    self.analysis,
                    self.recent_transcript(),
                    list(self.asked_questions),
                )
        finally:
            self._generating = False

        if self._ended:
            logger.info(f"[Scheduler {self.session_id}] Discarding question that finished after session end")
            return None
        if self.current_question is not None:
            return None

        self.current_question = question
        self.asked_questions.append(question.question_text)
        self.presented_questions.append(question)
        self.last_question_ms = self._clock()
        logger.info(
            f"[Scheduler {self.session_id}] Presenting question #{len(self.asked_questions)} "
            f"({question.domain.value}, fallback={question.fallback})"
        )
        self._emit({"type": "question", "data": question.to_dict()})
        return question

    # =========================================================================
    # USER ACTIONS
    # =========================================================================

    def _clear_question(self, answered: bool) -> Optional[GeneratedQuestion]:
        question = self.current_question
        if question is None:
            return None
        self.current_question = None
        if answered:
            self.questions_answered += 1
        else:
            self.questions_skipped += 1
        self._emit({
            "type": "question_cleared",
            "reason": "answered" if answered else "skipped",
            "question_text": question.question_text,
        })
        return question

    def dismiss(self) -> Optional[GeneratedQuestion]:
        """The pair talked it through: clear the question and count it as answered."""
        if self._ended:
            return None
        return self._clear_question(answered=True)

    def skip(self) -> Optional[GeneratedQuestion]:
        """Clear the question without crediting it as answered."""
        if self._ended:
            return None
        return self._clear_question(answered=False)

    async def force_next(self) -> Optional[GeneratedQuestion]:
        """
        Explicit "next question" request: bypasses the timing gate but not the
        single-flight rules. A presented question is replaced and counted as
        skipped.
        """
        if self._ended:
            return None
        if self._generating:
            logger.debug(f"[Scheduler {self.session_id}] Generation already in flight, ignoring force_next")
            return None

        self._clear_question(answered=False)
        if self.analysis is None:
            await self.analyze()
            if self._ended:
                return None
        await self.generate()
        return self.current_question

    # =========================================================================
    # TEARDOWN
    # =========================================================================

    async def end(self) -> SessionReport:
        """Cancel timers, summarize and return the session report. Idempotent."""
        if self._end_task is None:
            self._end_task = asyncio.create_task(self._finish())
        return await self._end_task

    async def _finish(self) -> SessionReport:
        self._ended = True
        self.cancel_timers()
        self.current_question = None

        duration_minutes = int((self._clock() - self.started_at_ms) // 60_000)
        summary = await self.summarizer.summarize(
            self.reconciler.full_transcript(),
            self.vibe,
            duration_minutes,
            self.questions_answered,
        )

        report = SessionReport(
            session_id=self.session_id,
            vibe=self.vibe,
            duration_minutes=duration_minutes,
            summary=summary,
            questions_asked=len(self.asked_questions),
            questions_answered=self.questions_answered,
            questions_skipped=self.questions_skipped,
            top_questions=self.asked_questions[-TOP_QUESTIONS_COUNT:],
            vibe_breakdown=_percentages(Counter(q.vibe.value for q in self.presented_questions)),
            domain_breakdown=dict(Counter(q.domain.value for q in self.presented_questions)),
        )
        logger.info(
            f"[Scheduler {self.session_id}] Session ended after {duration_minutes} min, "
            f"{report.questions_asked} questions ({report.questions_answered} answered)"
        )
        self._emit({"type": "session_ended", "data": report.to_dict()})
        return report
