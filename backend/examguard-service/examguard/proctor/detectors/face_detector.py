"""
Local Face Oracle - Counts faces in-process with an OpenCV Haar cascade

No network involved; the cascade is loaded once during warm-up.
"""

import asyncio
import logging
from typing import Any, List, Tuple

import cv2
import numpy as np

from .base import DetectionOracle
from ..errors import DetectionFailure, ModelWarmupError
from ..events import DetectionResult
from ..sampler import FrameSample

logger = logging.getLogger(__name__)


def describe_face_count(count: int) -> str:
    """Human-readable description for a face count"""
    if count == 0:
        return "No face detected in the frame."
    if count > 1:
        return f"Multiple people detected ({count})."
    return "Normal status."


class LocalFaceOracle(DetectionOracle):
    """
    Detects faces in video frames using OpenCV's Haar cascade.

    Frames are downscaled to ``detection_width`` before detection
    to keep each call cheap.
    """

    name = "local"

    def __init__(
        self,
        detection_width: int = 320,
        min_face_size: int = 30,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        cascade_loader=None,
    ):
        """
        Initialize face oracle.

        Args:
            detection_width: Width frames are resized to before detection
            min_face_size: Minimum face side in pixels (after resize)
            scale_factor: Cascade pyramid scale step
            min_neighbors: Cascade neighbour threshold
            cascade_loader: Callable returning a classifier.
                            If None, uses default from model_loader.
        """
        self.detection_width = detection_width
        self.min_face_size = min_face_size
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors

        if cascade_loader is None:
            from ..models import get_face_cascade
            cascade_loader = get_face_cascade
        self._cascade_loader = cascade_loader
        self._cascade: Any = None
        self._warm_lock = asyncio.Lock()

    @property
    def is_warm(self) -> bool:
        return self._cascade is not None

    async def warm_up(self) -> None:
        async with self._warm_lock:
            if self._cascade is not None:
                return
            logger.info("[FaceOracle] Loading face model...")
            try:
                self._cascade = await asyncio.to_thread(self._cascade_loader)
            except Exception as e:
                logger.error(f"[FaceOracle] Failed to load face model: {e}")
                raise ModelWarmupError(str(e)) from e
            logger.info("[FaceOracle] Face model loaded")

    def _prepare(self, frame: np.ndarray) -> np.ndarray:
        gray = cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)
        height, width = gray.shape[:2]
        if width > self.detection_width:
            scale = self.detection_width / float(width)
            gray = cv2.resize(
                gray,
                (self.detection_width, max(1, int(height * scale))),
                interpolation=cv2.INTER_AREA,
            )
        return cv2.equalizeHist(gray)

    def find_faces(self, frame: np.ndarray) -> List[Tuple[int, int, int, int]]:
        """
        Detect faces in a BGR frame.

        Returns:
            List of (x, y, width, height) boxes in the resized frame
        """
        if self._cascade is None:
            raise DetectionFailure("Face model used before warm-up")
        if frame is None or frame.size == 0:
            return []

        gray = self._prepare(frame)
        faces = self._cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=(self.min_face_size, self.min_face_size),
        )
        if faces is None or len(faces) == 0:
            return []
        return [tuple(int(v) for v in face) for face in faces]

    async def detect(self, sample: FrameSample) -> DetectionResult:
        try:
            count = len(self.find_faces(sample.image))
        except DetectionFailure:
            raise
        except cv2.error as e:
            raise DetectionFailure(f"Face detection error: {e}") from e

        return DetectionResult(
            person_present=count == 1,
            count=count,
            description=describe_face_count(count),
        )
