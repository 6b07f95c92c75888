"""Model loading utilities"""

from .model_loader import get_face_cascade, get_cascade_path, check_models

__all__ = ["get_face_cascade", "get_cascade_path", "check_models"]
