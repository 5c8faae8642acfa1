"""
FORMCHECK Form Service - Landmark Provider

MediaPipe-based pose landmark detection behind a small provider contract:
initialize once, detect per frame, dispose at teardown.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Optional, Protocol

import cv2
import numpy as np

from core.config import settings

from .errors import ModelLoadError
from .landmarks import Landmark, LandmarkSet

logger = logging.getLogger(__name__)


class LandmarkProvider(Protocol):
    """Pose-estimation backend used by the analysis loop."""

    def initialize(self) -> None:
        """Load the model. Idempotent; raises ModelLoadError on failure."""

    def detect(self, frame: Any, timestamp_us: int) -> Optional[LandmarkSet]:
        """Landmarks of the first detected body, or None when nobody is in frame."""

    def dispose(self) -> None:
        """Release model resources. Safe to call before initialize()."""


class MediaPipeLandmarkProvider:
    """
    MediaPipe pose landmarker.

    Uses the Tasks PoseLandmarker in VIDEO mode when the configured .task
    model file exists, and the legacy solutions API otherwise.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        delegate: Optional[str] = None,
        min_detection_confidence: Optional[float] = None,
        min_presence_confidence: Optional[float] = None,
        min_tracking_confidence: Optional[float] = None,
    ):
        self.model_path = model_path if model_path is not None else settings.POSE_MODEL_PATH
        self.delegate = (delegate or settings.POSE_DELEGATE).upper()
        self.min_detection_confidence = (
            min_detection_confidence if min_detection_confidence is not None
            else settings.MIN_POSE_DETECTION_CONFIDENCE
        )
        self.min_presence_confidence = (
            min_presence_confidence if min_presence_confidence is not None
            else settings.MIN_POSE_PRESENCE_CONFIDENCE
        )
        self.min_tracking_confidence = (
            min_tracking_confidence if min_tracking_confidence is not None
            else settings.MIN_TRACKING_CONFIDENCE
        )

        self.pose_detector = None
        self._use_tasks_api = False
        self._last_timestamp_ms = -1
        self._lock = threading.Lock()

    @property
    def is_initialized(self) -> bool:
        return self.pose_detector is not None

    def initialize(self) -> None:
        """Initialize MediaPipe pose detector."""
        with self._lock:
            if self.pose_detector is not None:
                return

            try:
                import mediapipe as mp

                if self.model_path and Path(self.model_path).is_file():
                    from mediapipe.tasks import python as mp_python
                    from mediapipe.tasks.python import vision

                    base_options = mp_python.BaseOptions(
                        model_asset_path=self.model_path,
                        delegate=getattr(mp_python.BaseOptions.Delegate, self.delegate),
                    )
                    options = vision.PoseLandmarkerOptions(
                        base_options=base_options,
                        running_mode=vision.RunningMode.VIDEO,
                        num_poses=1,
                        min_pose_detection_confidence=self.min_detection_confidence,
                        min_pose_presence_confidence=self.min_presence_confidence,
                        min_tracking_confidence=self.min_tracking_confidence,
                    )
                    self.pose_detector = vision.PoseLandmarker.create_from_options(options)
                    self._use_tasks_api = True
                    logger.info(f"MediaPipe PoseLandmarker initialized from {self.model_path}")
                else:
                    self.pose_detector = mp.solutions.pose.Pose(
                        static_image_mode=False,
                        model_complexity=1,
                        enable_segmentation=False,
                        min_detection_confidence=self.min_detection_confidence,
                        min_tracking_confidence=self.min_tracking_confidence,
                    )
                    self._use_tasks_api = False
                    logger.info("MediaPipe legacy pose detector initialized")
            except Exception as e:
                logger.error(f"Failed to initialize MediaPipe: {e}")
                self.pose_detector = None
                raise ModelLoadError(f"Failed to initialize pose model: {e}") from e

    def detect(self, frame: np.ndarray, timestamp_us: int) -> Optional[LandmarkSet]:
        """
        Detect pose landmarks in a frame.

        Args:
            frame: BGR image as numpy array (H, W, 3)
            timestamp_us: Monotonic frame timestamp in microseconds

        Returns:
            LandmarkSet for the first detected body, or None
        """
        with self._lock:
            if self.pose_detector is None:
                logger.warning("Pose detector not initialized")
                return None

            rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)

            if self._use_tasks_api:
                import mediapipe as mp

                # VIDEO mode rejects timestamps that do not strictly increase
                timestamp_ms = max(timestamp_us // 1000, self._last_timestamp_ms + 1)
                self._last_timestamp_ms = timestamp_ms

                image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb_frame)
                result = self.pose_detector.detect_for_video(image, timestamp_ms)
                if not result.pose_landmarks:
                    return None
                raw_landmarks = result.pose_landmarks[0]
            else:
                results = self.pose_detector.process(rgb_frame)
                if not results.pose_landmarks:
                    return None
                raw_landmarks = results.pose_landmarks.landmark

        return LandmarkSet.from_points(
            Landmark(x=lm.x, y=lm.y, z=lm.z, visibility=getattr(lm, "visibility", None) or 0.0)
            for lm in raw_landmarks
        )

    def dispose(self) -> None:
        """Release resources."""
        with self._lock:
            if self.pose_detector is not None and hasattr(self.pose_detector, "close"):
                self.pose_detector.close()
            self.pose_detector = None
            self._last_timestamp_ms = -1


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_provider_instance: Optional[MediaPipeLandmarkProvider] = None

def get_landmark_provider() -> MediaPipeLandmarkProvider:
    """Get or create the shared landmark provider."""
    global _provider_instance
    if _provider_instance is None:
        _provider_instance = MediaPipeLandmarkProvider()
    return _provider_instance


def dispose_landmark_provider() -> None:
    global _provider_instance
    if _provider_instance is not None:
        _provider_instance.dispose()
        _provider_instance = None
