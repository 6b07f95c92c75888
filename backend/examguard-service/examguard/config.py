"""
ExamGuard Configuration Settings

Detection strategy:
- remote: Gemini multimodal inference over HTTP (needs GEMINI_API_KEY)
- local: OpenCV Haar cascade face counting, in-process
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Configuration for the ExamGuard proctoring service."""

    # API Settings
    APP_NAME: str = "ExamGuard Proctoring Service"
    DEBUG: bool = True
    PORT: int = 8002
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False

    # Proctoring cadence (milliseconds)
    PROCTOR_CHECK_INTERVAL_MS: int = 5000
    PROCTOR_TICK_INTERVAL_MS: int = 500

    # Exam pacing
    QUESTION_TIME_LIMIT_SECONDS: int = 120
    PASS_SCORE_RATIO: float = 0.6

    # Detection strategy: "remote" or "local"
    DETECTION_STRATEGY: str = "remote"
    ANALYZE_FORCED_FRAMES: bool = False  # Also run AI on tab-switch snapshots

    # Remote oracle (Gemini REST)
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-3-flash-preview"
    GEMINI_ENDPOINT: str = "https://generativelanguage.googleapis.com/v1beta"
    GEMINI_TIMEOUT_SECONDS: Optional[float] = None  # No timeout on the oracle call

    # Local oracle (OpenCV)
    LOCAL_DETECTION_WIDTH: int = 320
    LOCAL_MIN_FACE_SIZE: int = 30

    # Frame capture
    JPEG_QUALITY: int = 50
    CAMERA_INDEX: int = 0
    FRAME_WIDTH: int = 640
    FRAME_HEIGHT: int = 480
    CAMERA_READY_TIMEOUT_SECONDS: float = 10.0
    PUSHED_FRAME_STALE_SECONDS: float = 3.0

    # Alerts (seconds each category stays visible)
    AI_ALERT_DURATION_SECONDS: float = 3.0
    FOCUS_ALERT_DURATION_SECONDS: float = 5.0

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
