"""Detection oracles for proctoring"""

from .base import DetectionOracle
from .face_detector import LocalFaceOracle
from .remote_oracle import RemotePresenceOracle

__all__ = [
    "DetectionOracle",
    "LocalFaceOracle",
    "RemotePresenceOracle",
    "build_oracle",
]


def build_oracle(settings) -> DetectionOracle:
    """Create the oracle selected by ``settings.DETECTION_STRATEGY``"""
    strategy = settings.DETECTION_STRATEGY.lower()

    if strategy == "local":
        return LocalFaceOracle(
            detection_width=settings.LOCAL_DETECTION_WIDTH,
            min_face_size=settings.LOCAL_MIN_FACE_SIZE,
        )
    if strategy == "remote":
        return RemotePresenceOracle(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            endpoint=settings.GEMINI_ENDPOINT,
            timeout=settings.GEMINI_TIMEOUT_SECONDS,
        )

    raise ValueError(f"Unknown detection strategy: {settings.DETECTION_STRATEGY}")
