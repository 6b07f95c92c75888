"""
Exam Session - Timed question progression plus the proctoring loop

The question countdown and the proctoring cadence run as two separate
asyncio tasks; stopping one never stops the other.
"""

import asyncio
import uuid
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .detectors import DetectionOracle
from .events import AlertCategory, ViolationEvent
from .fuser import AlertBoard, ViolationCallback, ViolationFuser
from .loop import ProctoringLoop, monotonic_ms
from .metrics import MetricsAggregator
from .questions import LOGIC_QUESTIONS, Question
from .sampler import FrameSampler, VideoSource, epoch_ms
from .scoring import IntegrityScorer, FlagGenerator
from .utils.logging import log_session_start, log_session_end, log_proctor_event

logger = logging.getLogger(__name__)


class ExamPhase(str, Enum):
    EXPLANATION = "EXPLANATION"
    TESTING = "TESTING"
    SUMMARY = "SUMMARY"


class FocusSignal(str, Enum):
    """Window/document signals reported by the host environment"""
    VISIBILITY_HIDDEN = "visibility_hidden"
    VISIBILITY_VISIBLE = "visibility_visible"
    WINDOW_BLUR = "window_blur"
    WINDOW_FOCUS = "window_focus"


FOCUS_LOSS_MESSAGES = {
    FocusSignal.VISIBILITY_HIDDEN: "User switched tabs or minimized window.",
    FocusSignal.WINDOW_BLUR: "Window lost focus (User might be using another application).",
}


class SessionStateError(Exception):
    """Operation not allowed in the current exam phase"""


@dataclass
class ExamResponse:
    question_id: int
    selected_option: Optional[int]
    is_correct: bool

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "selected_option": self.selected_option,
            "is_correct": self.is_correct,
        }


class ExamSession:
    """
    Manages a single proctored exam.

    Owns the fuser (and therefore the timeline) and the proctoring loop,
    paces the questions and builds the end-of-exam report.
    """

    def __init__(
        self,
        source: VideoSource,
        oracle: DetectionOracle,
        questions: Optional[Sequence[Question]] = None,
        question_time_limit: int = 120,
        check_interval_ms: int = 5000,
        tick_interval_ms: int = 500,
        jpeg_quality: int = 50,
        alert_durations_ms: Optional[Dict[AlertCategory, int]] = None,
        camera_ready_timeout: float = 10.0,
        analyze_forced_frames: bool = False,
        pass_score_ratio: float = 0.6,
        on_violation: Optional[ViolationCallback] = None,
        clock: Callable[[], int] = monotonic_ms,
        wall_clock: Callable[[], int] = epoch_ms,
        session_id: Optional[str] = None,
        student_id: Optional[str] = None,
    ):
        """
        Initialize a new exam session.

        Args:
            source: Video feed watched while testing
            oracle: Presence detector used by the loop
            questions: Question bank (defaults to the logic questions)
            question_time_limit: Seconds allowed per question
            on_violation: Called once per appended timeline entry
            clock: Monotonic milliseconds for the cadence
            wall_clock: Epoch milliseconds for timestamps and alerts
            session_id: Optional custom session ID (auto-generated if not provided)
        """
        self.id = session_id or f"EXM_{uuid.uuid4().hex[:6].upper()}"
        self.student_id = student_id
        self.questions: List[Question] = list(questions or LOGIC_QUESTIONS)
        if not self.questions:
            raise ValueError("An exam needs at least one question")

        self.question_time_limit = question_time_limit
        self.pass_score_ratio = pass_score_ratio
        self.created_at = datetime.utcnow()
        self.finished_at: Optional[datetime] = None

        self.phase = ExamPhase.EXPLANATION
        self.current_index = 0
        self.time_left = question_time_limit
        self.responses: Dict[int, ExamResponse] = {}

        alerts = AlertBoard(durations_ms=alert_durations_ms, clock=wall_clock)
        self.fuser = ViolationFuser(
            on_violation=on_violation,
            alerts=alerts,
            clock=wall_clock,
            session_id=self.id,
        )
        self.loop = ProctoringLoop(
            source=source,
            oracle=oracle,
            fuser=self.fuser,
            sampler=FrameSampler(jpeg_quality=jpeg_quality, clock=wall_clock),
            check_interval_ms=check_interval_ms,
            tick_interval_ms=tick_interval_ms,
            camera_ready_timeout=camera_ready_timeout,
            analyze_forced_frames=analyze_forced_frames,
            clock=clock,
            session_id=self.id,
        )

        self.scorer = IntegrityScorer()
        self.flagger = FlagGenerator()
        self._countdown_task: Optional[asyncio.Task] = None

        logger.info(f"Exam session created: {self.id}")

    @classmethod
    def from_settings(cls, settings, source: VideoSource, oracle: DetectionOracle, **kwargs) -> "ExamSession":
        return cls(
            source=source,
            oracle=oracle,
            question_time_limit=settings.QUESTION_TIME_LIMIT_SECONDS,
            check_interval_ms=settings.PROCTOR_CHECK_INTERVAL_MS,
            tick_interval_ms=settings.PROCTOR_TICK_INTERVAL_MS,
            jpeg_quality=settings.JPEG_QUALITY,
            alert_durations_ms={
                AlertCategory.AI: int(settings.AI_ALERT_DURATION_SECONDS * 1000),
                AlertCategory.FOCUS_LOST: int(settings.FOCUS_ALERT_DURATION_SECONDS * 1000),
            },
            camera_ready_timeout=settings.CAMERA_READY_TIMEOUT_SECONDS,
            analyze_forced_frames=settings.ANALYZE_FORCED_FRAMES,
            pass_score_ratio=settings.PASS_SCORE_RATIO,
            **kwargs,
        )

    @property
    def timeline(self):
        return self.fuser.timeline

    @property
    def current_question(self) -> Optional[Question]:
        if self.phase != ExamPhase.TESTING:
            return None
        return self.questions[self.current_index]

    # ------------------------------------------------------------------
    # Phase transitions
    # ------------------------------------------------------------------

    async def begin(self) -> bool:
        """
        Enter the testing phase: start the countdown and activate proctoring.

        Returns:
            True if proctoring became ACTIVE. A camera failure does not stop
            the exam; it can be retried with ``retry_camera``.
        """
        if self.phase != ExamPhase.EXPLANATION:
            raise SessionStateError(f"Cannot begin from phase {self.phase.value}")

        self.phase = ExamPhase.TESTING
        self.current_index = 0
        self.time_left = self.question_time_limit
        self._countdown_task = asyncio.create_task(self._run_countdown())

        log_session_start(self.id, self.loop.oracle.name, self.loop.check_interval_ms)
        return await self.loop.activate()

    async def retry_camera(self) -> bool:
        if self.phase != ExamPhase.TESTING:
            raise SessionStateError("Camera retry is only available while testing")
        return await self.loop.retry()

    async def finish(self) -> Dict[str, Any]:
        """End the exam (early or after the last question) and return the report"""
        if self.phase != ExamPhase.SUMMARY:
            await self._finish()
        return self.report()

    async def _finish(self):
        self.phase = ExamPhase.SUMMARY
        self.finished_at = datetime.utcnow()

        countdown, self._countdown_task = self._countdown_task, None
        if countdown is not None and countdown is not asyncio.current_task():
            countdown.cancel()
            try:
                await countdown
            except asyncio.CancelledError:
                pass

        await self.loop.deactivate()

        metrics = self._metrics()
        score = self.scorer.compute(metrics.get_counts())
        flags = self.flagger.generate(metrics.get_counts())
        log_session_end(self.id, score, metrics.total_entries, flags)

    async def close(self):
        """Release everything; used when the session is discarded"""
        if self.phase == ExamPhase.TESTING:
            await self._finish()
        await self.loop.close()

    # ------------------------------------------------------------------
    # Question pacing
    # ------------------------------------------------------------------

    async def _run_countdown(self):
        while self.phase == ExamPhase.TESTING:
            await asyncio.sleep(1)
            try:
                await self.countdown_tick()
            except Exception:
                logger.exception("Countdown tick failed")

    async def countdown_tick(self):
        """Advance the question clock by one second"""
        if self.phase != ExamPhase.TESTING:
            return
        if self.time_left <= 1:
            logger.info(f"Time expired on question {self.current_index + 1} for session {self.id}")
            await self._advance()
        else:
            self.time_left -= 1

    async def answer(self, option: int) -> ExamResponse:
        """Answer the current question and move on"""
        question = self.current_question
        if question is None:
            raise SessionStateError("No question is open")
        if not 0 <= option < len(question.options):
            raise ValueError(f"Option {option} out of range for question {question.id}")

        response = ExamResponse(
            question_id=question.id,
            selected_option=option,
            is_correct=option == question.correct_answer,
        )
        # A repeated answer replaces the earlier one
        self.responses[question.id] = response

        await self._advance()
        return response

    async def _advance(self):
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
            self.time_left = self.question_time_limit
        else:
            await self._finish()

    # ------------------------------------------------------------------
    # Host signals
    # ------------------------------------------------------------------

    def handle_focus_signal(self, signal: FocusSignal) -> Optional[ViolationEvent]:
        """
        Route a focus/visibility transition.

        Hidden and blur produce a FOCUS_LOST entry with a snapshot;
        visible and focus are only logged. Callers report transitions,
        not steady state.
        """
        if self.phase != ExamPhase.TESTING:
            logger.debug(f"Ignoring {signal.value} outside testing phase")
            return None

        message = FOCUS_LOSS_MESSAGES.get(signal)
        if message is None:
            log_proctor_event(self.id, "focus_restored", {"signal": signal.value}, level="debug")
            return None

        log_proctor_event(self.id, "focus_lost", {"signal": signal.value}, level="warning")
        return self.loop.force_capture(message)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def _metrics(self) -> MetricsAggregator:
        return MetricsAggregator.from_timeline(self.id, self.timeline)

    def calculate_score(self) -> int:
        return sum(1 for r in self.responses.values() if r.is_correct)

    def status(self) -> Dict[str, Any]:
        question = self.current_question
        return {
            "session_id": self.id,
            "phase": self.phase.value,
            "question_index": self.current_index,
            "total_questions": len(self.questions),
            "question": question.to_dict() if question else None,
            "time_left": self.time_left,
            "incident_count": len(self.timeline),
            "active_alerts": [c.value for c in self.fuser.alerts.active()],
            "proctor": self.loop.status(),
        }

    def report(self) -> Dict[str, Any]:
        metrics = self._metrics()
        counts = metrics.get_counts()
        integrity_score = self.scorer.compute(counts)
        flags = self.flagger.generate(counts)
        review_required = self.flagger.requires_review(flags, integrity_score) if metrics.total_entries else False

        score = self.calculate_score()
        total = len(self.questions)

        if metrics.total_entries == 0:
            narrative = "Integrity verification passed. No incidents recorded."
        elif review_required:
            narrative = f"{metrics.total_entries} incident(s) recorded. Manual review required."
        else:
            narrative = f"{metrics.total_entries} incident(s) recorded. No review required."

        return {
            "session_id": self.id,
            "student_id": self.student_id,
            "phase": self.phase.value,
            "score": score,
            "total_questions": total,
            "accuracy": round(score / total * 100),
            "passed": score / total >= self.pass_score_ratio,
            "ai_alerts": metrics.ai_alerts,
            "tab_activity": metrics.tab_activity,
            "integrity_score": integrity_score,
            "integrity_grade": self.scorer.get_grade(integrity_score),
            "flags": flags,
            "review_required": review_required,
            "narrative": narrative,
            "metrics_summary": metrics.get_summary(),
            "responses": [r.to_dict() for r in self.responses.values()],
            "timeline": [e.to_dict() for e in self.timeline.descending()],
        }
