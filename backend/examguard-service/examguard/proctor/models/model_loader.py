"""
Model Loader - Lazy loading and caching of the local face model
"""

import os
import logging
from functools import lru_cache
from typing import Optional

logger = logging.getLogger(__name__)

# Default model paths (relative to this file's directory)
MODELS_DIR = os.path.join(os.path.dirname(__file__), "weights")

CASCADE_FILE = "haarcascade_frontalface_default.xml"


def get_cascade_path() -> Optional[str]:
    """
    Locate the frontal-face Haar cascade.

    Checks the local weights directory first, then the cascades that
    ship with the opencv-python wheel.

    Returns:
        Path to the cascade XML or None if not found
    """
    import cv2

    possible_paths = [
        os.path.join(MODELS_DIR, CASCADE_FILE),
        os.path.join(cv2.data.haarcascades, CASCADE_FILE),
    ]

    for path in possible_paths:
        if os.path.exists(path):
            return path

    logger.warning(f"{CASCADE_FILE} not found")
    return None


@lru_cache(maxsize=1)
def get_face_cascade():
    """
    Get OpenCV CascadeClassifier for frontal faces.

    Returns:
        cv2.CascadeClassifier instance

    Raises:
        FileNotFoundError: cascade file missing
        RuntimeError: cascade file present but unreadable
    """
    import cv2

    path = get_cascade_path()
    if path is None:
        raise FileNotFoundError(
            f"{CASCADE_FILE} not found. Install opencv-python-headless "
            f"or place the file in {MODELS_DIR}"
        )

    logger.info(f"Loading face cascade from: {path}")
    cascade = cv2.CascadeClassifier(path)
    if cascade.empty():
        raise RuntimeError(f"Failed to load face cascade from {path}")
    return cascade


def check_models(gemini_api_key: Optional[str] = None) -> dict:
    """
    Check which detection backends are available.

    Returns:
        Dict with model status
    """
    status = {
        "face_cascade": False,
        "gemini_configured": bool(gemini_api_key),
    }

    try:
        status["face_cascade"] = get_cascade_path() is not None
    except ImportError:
        pass

    return status
