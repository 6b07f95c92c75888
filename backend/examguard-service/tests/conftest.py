"""
Pytest Configuration for ExamGuard Tests
"""
import asyncio
import os
import sys
from typing import List, Optional

import numpy as np
import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from examguard.proctor.detectors import DetectionOracle  # noqa: E402
from examguard.proctor.errors import MediaAccessError, ModelWarmupError  # noqa: E402
from examguard.proctor.events import DetectionResult  # noqa: E402
from examguard.proctor.sampler import VideoSource  # noqa: E402


# Cadence long enough that the background task never ticks during a test;
# tests drive ``loop.tick()`` themselves.
MANUAL_TICK_MS = 3_600_000

SAFE = DetectionResult(person_present=True, count=1, description="Normal status.")
NOBODY = DetectionResult(person_present=False, count=0, description="No face detected in the frame.")
CROWD = DetectionResult(person_present=True, count=2, description="Multiple people detected (2).")


class FakeClock:
    """Manually advanced millisecond clock"""

    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


class FakeVideoSource(VideoSource):
    """In-memory video source with a solid grey frame"""

    def __init__(self, ready: bool = True, fail_acquires: int = 0):
        self.ready = ready
        self.fail_acquires = fail_acquires
        self.acquired = False
        self.acquire_calls = 0
        self.release_calls = 0
        self.frame = np.full((48, 64, 3), 127, dtype=np.uint8)

    def acquire(self) -> None:
        self.acquire_calls += 1
        if self.fail_acquires > 0:
            self.fail_acquires -= 1
            raise MediaAccessError("Permission denied")
        self.acquired = True

    def release(self) -> None:
        self.release_calls += 1
        self.acquired = False

    def is_ready(self) -> bool:
        return self.acquired and self.ready

    def read_frame(self) -> Optional[np.ndarray]:
        return self.frame.copy()


class StubOracle(DetectionOracle):
    """Returns queued results (the last one repeats)"""

    name = "stub"

    def __init__(self, *results: DetectionResult, error: Optional[Exception] = None):
        self.results: List[DetectionResult] = list(results) or [SAFE]
        self.error = error
        self.calls = 0
        self.closed = False

    async def detect(self, sample):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]

    async def close(self):
        self.closed = True


class GatedOracle(StubOracle):
    """Blocks every call until ``gate`` is set; tracks concurrency"""

    name = "gated"

    def __init__(self, *results: DetectionResult):
        super().__init__(*results)
        self.gate = asyncio.Event()
        self.in_progress = 0
        self.max_in_progress = 0

    async def detect(self, sample):
        self.in_progress += 1
        self.max_in_progress = max(self.max_in_progress, self.in_progress)
        try:
            await self.gate.wait()
            return await super().detect(sample)
        finally:
            self.in_progress -= 1


class BrokenWarmupOracle(StubOracle):
    name = "broken"

    def __init__(self, failures: int = 1):
        super().__init__()
        self.failures = failures
        self.warm_calls = 0

    async def warm_up(self):
        self.warm_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ModelWarmupError("cascade file is corrupt")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def wall_clock():
    return FakeClock(start=1_700_000_000_000)


@pytest.fixture
def source():
    return FakeVideoSource()


@pytest.fixture
def grey_frame():
    return np.full((48, 64, 3), 127, dtype=np.uint8)


@pytest.fixture
def jpeg_bytes(grey_frame):
    import cv2

    ok, buffer = cv2.imencode(".jpg", grey_frame)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def app():
    """Create FastAPI app for testing"""
    from examguard.main import app
    return app


@pytest.fixture
def client(app):
    """FastAPI test client sharing one event loop across requests"""
    from examguard.proctor import api

    with TestClient(app) as test_client:
        yield test_client

    api._sessions.clear()
