"""
FORMCHECK Configuration

Environment variables and application settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "FORMCHECK"
    DEBUG: bool = True

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173", "http://localhost:8080"]

    # Capture (camera index such as "0", or a video file path)
    CAMERA_SOURCE: str = "0"
    CAPTURE_WIDTH: int = 1280
    CAPTURE_HEIGHT: int = 720
    CAPTURE_FACING_MODE: str = "user"
    LOOP_VIDEO_FILES: bool = True

    # Pose model
    POSE_MODEL_PATH: str = "ml_models/pose_landmarker_lite.task"
    POSE_DELEGATE: str = "CPU"
    MIN_POSE_DETECTION_CONFIDENCE: float = 0.5
    MIN_POSE_PRESENCE_CONFIDENCE: float = 0.5
    MIN_TRACKING_CONFIDENCE: float = 0.5

    # Analysis loop
    FRAME_INTERVAL_SECONDS: float = 1 / 30
    DETECT_TIMEOUT_SECONDS: Optional[float] = None
    MAX_EMPTY_READS: int = 30
    MIN_FEEDBACK_CONFIDENCE: float = 0.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


settings = Settings()
