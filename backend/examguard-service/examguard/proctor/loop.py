"""
Proctoring Loop - Periodic sample-and-classify cycle over a live video feed

Phases: INACTIVE -> WARMING_UP -> ACTIVE -> INACTIVE

While ACTIVE a cadence task ticks every ``tick_interval_ms`` and starts a
routine check once ``check_interval_ms`` has elapsed since the previous
one, provided no check is in flight. Forced captures (focus loss) skip
the in-flight guard and always append an entry.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

from .detectors import DetectionOracle
from .errors import MediaAccessError, ModelWarmupError, ProctorError, StaleCompletionError
from .events import DetectionResult, ViolationEvent, ViolationKind
from .fuser import ViolationFuser
from .sampler import FrameSample, FrameSampler, VideoSource
from .utils.logging import log_critical_event, log_proctor_event

logger = logging.getLogger(__name__)

# How often activation re-checks a source that is not yet playing
SOURCE_POLL_SECONDS = 0.05


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


class LoopPhase(str, Enum):
    INACTIVE = "INACTIVE"
    WARMING_UP = "WARMING_UP"
    ACTIVE = "ACTIVE"


@dataclass
class LoopState:
    """Per-activation bookkeeping, reset on deactivation"""

    last_check_timestamp: int = 0
    in_flight: bool = False
    camera_ready: bool = False


class ProctoringLoop:
    """
    Owns the check cadence, the in-flight guard and the video source.

    The oracle is warmed before the loop goes ACTIVE. Results that arrive
    after deactivation are dropped via a generation counter.
    """

    def __init__(
        self,
        source: VideoSource,
        oracle: DetectionOracle,
        fuser: ViolationFuser,
        sampler: Optional[FrameSampler] = None,
        check_interval_ms: int = 5000,
        tick_interval_ms: int = 500,
        camera_ready_timeout: float = 10.0,
        analyze_forced_frames: bool = False,
        clock: Callable[[], int] = monotonic_ms,
        session_id: str = "-",
    ):
        if check_interval_ms <= 0 or tick_interval_ms <= 0:
            raise ValueError("check and tick intervals must be positive")

        self.source = source
        self.oracle = oracle
        self.fuser = fuser
        self.sampler = sampler or FrameSampler()
        self.check_interval_ms = check_interval_ms
        self.tick_interval_ms = tick_interval_ms
        self.camera_ready_timeout = camera_ready_timeout
        self.analyze_forced_frames = analyze_forced_frames
        self.session_id = session_id
        self._clock = clock

        self.phase = LoopPhase.INACTIVE
        self.state = LoopState()
        self.last_error: Optional[ProctorError] = None

        self._generation = 0
        self._cadence_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_active(self) -> bool:
        return self.phase == LoopPhase.ACTIVE

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def activate(self) -> bool:
        """
        Acquire the source, warm the oracle and start the cadence.

        Returns:
            True if the loop is ACTIVE afterwards. On MediaAccessError or
            ModelWarmupError the loop is left INACTIVE with ``last_error``
            set and can be retried.
        """
        if self.phase != LoopPhase.INACTIVE:
            return self.is_active

        self.phase = LoopPhase.WARMING_UP
        self.last_error = None
        generation = self._generation
        log_proctor_event(self.session_id, "warming_up", {"oracle": self.oracle.name})

        try:
            await self._acquire_source()
            await self.oracle.warm_up()
            await self._wait_for_source()
        except (MediaAccessError, ModelWarmupError) as e:
            await self._release_source()
            if generation == self._generation:
                self.last_error = e
                self.phase = LoopPhase.INACTIVE
            log_critical_event(self.session_id, "activation_failed", {"error": type(e).__name__, "reason": e})
            return False

        if generation != self._generation:
            # Deactivated while warming up
            await self._release_source()
            return False

        self.phase = LoopPhase.ACTIVE
        self.state = LoopState(
            last_check_timestamp=self._clock(),
            in_flight=False,
            camera_ready=self.source.is_ready(),
        )
        self._cadence_task = asyncio.create_task(self._run_cadence())
        log_proctor_event(self.session_id, "active", {"check_interval_ms": self.check_interval_ms})
        return True

    async def retry(self) -> bool:
        """Re-attempt activation after a recoverable failure"""
        if self.phase != LoopPhase.INACTIVE:
            return self.is_active
        logger.info(f"Retrying proctoring activation for session {self.session_id}")
        return await self.activate()

    async def deactivate(self) -> None:
        """
        Stop the cadence and release the source.

        An in-flight oracle call is cancelled; whatever it would have
        returned is discarded.
        """
        if self.phase == LoopPhase.INACTIVE and self._cadence_task is None and not self._pending:
            return

        self._generation += 1
        self.phase = LoopPhase.INACTIVE

        task, self._cadence_task = self._cadence_task, None
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        await self._cancel_pending_checks()
        await self._release_source()
        self.state = LoopState()
        log_proctor_event(self.session_id, "inactive")

    async def close(self) -> None:
        await self.deactivate()
        await self.oracle.close()

    async def wait_for_pending_checks(self) -> None:
        """Wait for outstanding routine checks to settle"""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _cancel_pending_checks(self):
        # A check that is itself deactivating the loop finishes on its own
        pending = [t for t in self._pending if t is not asyncio.current_task()]
        for check in pending:
            check.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _acquire_source(self):
        try:
            await asyncio.to_thread(self.source.acquire)
        except MediaAccessError:
            raise
        except Exception as e:
            raise MediaAccessError(f"Video source could not be opened: {type(e).__name__}: {e}") from e

    async def _wait_for_source(self):
        deadline = time.monotonic() + self.camera_ready_timeout
        while not self._source_ready():
            if time.monotonic() >= deadline:
                raise MediaAccessError("Video source did not start producing frames")
            await asyncio.sleep(SOURCE_POLL_SECONDS)

    def _source_ready(self) -> bool:
        try:
            return self.source.is_ready()
        except Exception as e:
            raise MediaAccessError(f"Video source failed while starting: {type(e).__name__}: {e}") from e

    async def _release_source(self):
        try:
            await asyncio.to_thread(self.source.release)
        except Exception as e:
            logger.warning(f"Video source release failed: {e}")

    # ------------------------------------------------------------------
    # Cadence
    # ------------------------------------------------------------------

    async def _run_cadence(self):
        while self.phase == LoopPhase.ACTIVE:
            try:
                self.tick()
            except Exception:
                logger.exception("Proctoring tick failed")
            await asyncio.sleep(self.tick_interval_ms / 1000.0)

    def tick(self) -> bool:
        """
        Evaluate the cadence once.

        Returns:
            True if a routine check was started
        """
        if self.phase != LoopPhase.ACTIVE:
            return False

        self.state.camera_ready = self.source.is_ready()
        if self.state.in_flight:
            return False

        elapsed = self._clock() - self.state.last_check_timestamp
        if elapsed < self.check_interval_ms:
            return False

        sample = self.sampler.capture(self.source)
        if sample is None:
            logger.debug("Routine check skipped: video source not ready")
            return False

        self._start_routine_check(sample)
        return True

    def _start_routine_check(self, sample: FrameSample):
        self.state.in_flight = True
        task = asyncio.create_task(self._routine_check(sample, self._generation))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _routine_check(self, sample: FrameSample, generation: int):
        logger.debug("AI verification in progress...")
        try:
            result = await self.oracle.detect(sample)
            self._complete(result, sample, generation)
        except StaleCompletionError:
            logger.debug("Discarding oracle result from a deactivated loop")
        except Exception as e:
            logger.warning(f"Routine check failed: {type(e).__name__}: {e}")
        finally:
            if generation == self._generation:
                self.state.in_flight = False
                self.state.last_check_timestamp = self._clock()

    def _complete(self, result: DetectionResult, sample: FrameSample, generation: int):
        if generation != self._generation:
            raise StaleCompletionError(f"generation {generation} superseded by {self._generation}")

        log_proctor_event(
            self.session_id,
            "check",
            {"count": result.count, "present": result.person_present, "degraded": result.degraded},
            level="debug",
        )
        self.fuser.record_detected(result, sample.data_url, timestamp=sample.captured_at)

    # ------------------------------------------------------------------
    # Forced captures
    # ------------------------------------------------------------------

    def force_capture(self, message: str, kind: ViolationKind = ViolationKind.FOCUS_LOST) -> ViolationEvent:
        """
        Record a system event with a snapshot taken right now.

        Bypasses the in-flight guard. The entry is appended even when no
        frame can be captured (evidence is then None).
        """
        sample: Optional[FrameSample] = None
        try:
            sample = self.sampler.capture(self.source)
        except Exception as e:
            logger.warning(f"Forced capture snapshot failed: {e}")

        if sample is None:
            logger.warning("Forced capture recorded without evidence: video source not ready")

        event = self.fuser.record_forced(
            message,
            kind=kind,
            evidence=sample.data_url if sample else None,
            timestamp=sample.captured_at if sample else None,
        )

        if (
            self.analyze_forced_frames
            and sample is not None
            and self.is_active
            and not self.state.in_flight
        ):
            self._start_routine_check(sample)

        return event

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "in_flight": self.state.in_flight,
            "camera_ready": self.state.camera_ready,
            "last_check_timestamp": self.state.last_check_timestamp,
            "oracle": self.oracle.name,
            "oracle_warm": self.oracle.is_warm,
            "error": type(self.last_error).__name__ if self.last_error else None,
            "error_message": str(self.last_error) if self.last_error else None,
        }
