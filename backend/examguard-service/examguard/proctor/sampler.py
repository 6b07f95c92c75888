"""
Frame Sampler - Captures single still frames from a live video source

Two sources are supported:
- CameraSource: local webcam read by a background thread
- PushedFrameSource: frames streamed by a browser client over HTTP
"""

import base64
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

import cv2
import numpy as np

from .errors import MediaAccessError

logger = logging.getLogger(__name__)


def epoch_ms() -> int:
    """Wall-clock milliseconds, used to stamp captures"""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class FrameSample:
    """One encoded still frame"""

    image: np.ndarray  # BGR
    jpeg: bytes
    data_url: str
    captured_at: int

    @property
    def base64_jpeg(self) -> str:
        return self.data_url.split(",", 1)[1]


class VideoSource(ABC):
    """A live video feed the proctoring loop owns while active"""

    @abstractmethod
    def acquire(self) -> None:
        """Open the feed. Raises MediaAccessError on failure."""

    @abstractmethod
    def release(self) -> None:
        """Close the feed. Safe to call when not acquired."""

    @abstractmethod
    def is_ready(self) -> bool:
        """True when the feed has non-zero dimensions and is playing"""

    @abstractmethod
    def read_frame(self) -> Optional[np.ndarray]:
        """Copy of the current frame, or None"""


class CameraSource(VideoSource):
    """
    Webcam source backed by cv2.VideoCapture.

    A daemon thread keeps reading so the latest frame is always available;
    sampling copies that frame and never pauses the feed.
    """

    # Frames older than this mean the device stopped delivering
    STALL_SECONDS = 1.0

    def __init__(self, index: int = 0, width: int = 640, height: int = 480):
        self.index = index
        self.width = width
        self.height = height

        self._cap = None
        self._thread: Optional[threading.Thread] = None
        self._running = False
        self._lock = threading.Lock()
        self._latest: Optional[np.ndarray] = None
        self._last_read_at = 0.0

    def acquire(self) -> None:
        if self._running:
            return

        logger.info(f"Opening camera device {self.index}...")
        cap = cv2.VideoCapture(self.index)
        if not cap.isOpened():
            cap.release()
            raise MediaAccessError(f"Could not open camera device {self.index}")

        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)

        self._cap = cap
        self._running = True
        self._thread = threading.Thread(target=self._reader, name="camera-reader", daemon=True)
        self._thread.start()
        logger.info("Camera stream acquired")

    def _reader(self):
        while self._running:
            ok, frame = self._cap.read()
            if not ok or frame is None:
                time.sleep(0.05)
                continue
            with self._lock:
                self._latest = frame
                self._last_read_at = time.monotonic()

    def release(self) -> None:
        self._running = False
        if self._thread is not None:
            self._thread.join(timeout=2.0)
            self._thread = None
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info(f"Camera device {self.index} released")
        with self._lock:
            self._latest = None

    def is_ready(self) -> bool:
        with self._lock:
            if not self._running or self._latest is None or self._latest.size == 0:
                return False
            return (time.monotonic() - self._last_read_at) < self.STALL_SECONDS

    def read_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._latest is None else self._latest.copy()


class PushedFrameSource(VideoSource):
    """
    Source fed by a remote client posting JPEG frames.

    Considered playing while the newest frame is younger than
    ``stale_after`` seconds.
    """

    def __init__(self, stale_after: float = 3.0, clock: Callable[[], float] = time.monotonic):
        self.stale_after = stale_after
        self._clock = clock
        self._lock = threading.Lock()
        self._acquired = False
        self._latest: Optional[np.ndarray] = None
        self._pushed_at = 0.0

    def acquire(self) -> None:
        self._acquired = True

    def release(self) -> None:
        with self._lock:
            self._acquired = False
            self._latest = None

    def push_frame(self, frame: np.ndarray) -> None:
        if frame is None or frame.size == 0:
            raise ValueError("Empty frame")
        with self._lock:
            self._latest = frame
            self._pushed_at = self._clock()

    def push_jpeg(self, data: bytes) -> None:
        """Decode and store an encoded frame. Raises ValueError if undecodable."""
        frame = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            raise ValueError("Invalid frame data")
        self.push_frame(frame)

    def is_ready(self) -> bool:
        with self._lock:
            if not self._acquired or self._latest is None:
                return False
            height, width = self._latest.shape[:2]
            if width == 0 or height == 0:
                return False
            return (self._clock() - self._pushed_at) <= self.stale_after

    def read_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            return None if self._latest is None else self._latest.copy()


class FrameSampler:
    """Grabs and JPEG-encodes the current frame of a source"""

    def __init__(self, jpeg_quality: int = 50, clock: Callable[[], int] = epoch_ms):
        if not 0 <= jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be within 0-100, got {jpeg_quality}")
        self.jpeg_quality = jpeg_quality
        self._clock = clock

    def capture(self, source: Optional[VideoSource]) -> Optional[FrameSample]:
        """
        Capture the frame currently shown by ``source``.

        Returns:
            FrameSample, or None when the source is not ready
        """
        if source is None or not source.is_ready():
            logger.debug("Capture skipped: video source not ready")
            return None

        frame = source.read_frame()
        if frame is None or frame.size == 0:
            logger.debug("Capture skipped: no frame available")
            return None

        ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            logger.warning("Capture skipped: JPEG encoding failed")
            return None

        jpeg = buffer.tobytes()
        data_url = "data:image/jpeg;base64," + base64.b64encode(jpeg).decode("ascii")

        return FrameSample(
            image=frame,
            jpeg=jpeg,
            data_url=data_url,
            captured_at=self._clock(),
        )
