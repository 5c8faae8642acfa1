"""
FORMCHECK Form Service - Capture Source

OpenCV-backed video capture. A source is either a camera index or a video
file; recorded files can loop to stand in for a live camera.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Union

import cv2
import numpy as np

from core.config import settings

from .errors import DeviceUnavailable, PermissionDenied

logger = logging.getLogger(__name__)


@dataclass
class CaptureConstraints:
    """Requested capture settings."""
    width: int = 1280
    height: int = 720
    facing_mode: str = "user"

    @classmethod
    def from_settings(cls) -> "CaptureConstraints":
        return cls(
            width=settings.CAPTURE_WIDTH,
            height=settings.CAPTURE_HEIGHT,
            facing_mode=settings.CAPTURE_FACING_MODE,
        )


class FrameStream(Protocol):
    """An opened capture device."""

    def read(self) -> Optional[Any]:
        """Next frame, or None when none is available right now."""

    def close(self) -> None:
        """Stop the device. Safe to call more than once."""


class CaptureSource(Protocol):
    """Factory for frame streams."""

    def open(self, constraints: CaptureConstraints) -> FrameStream:
        """Open the device; raises PermissionDenied or DeviceUnavailable."""


class OpenCVFrameStream:
    """Frame stream over a cv2.VideoCapture handle."""

    def __init__(self, cap: Any, loop: bool = False):
        self.cap = cap
        self.loop = loop

    @property
    def is_open(self) -> bool:
        return self.cap is not None

    def read(self) -> Optional[np.ndarray]:
        if self.cap is None:
            return None

        ret, frame = self.cap.read()
        if not ret and self.loop:
            # Loop back to beginning
            self.cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
            ret, frame = self.cap.read()

        return frame if ret else None

    def close(self) -> None:
        if self.cap is not None:
            self.cap.release()
            self.cap = None


class OpenCVCaptureSource:
    """
    Opens cameras and video files through OpenCV.

    OpenCV has no notion of facing mode, so it is resolved to a camera
    index through facing_mode_devices when the source is not explicit.
    """

    DEFAULT_FACING_MODE_DEVICES = {"user": 0, "environment": 1}

    def __init__(
        self,
        source: Optional[Union[int, str]] = None,
        loop_video: Optional[bool] = None,
        facing_mode_devices: Optional[Dict[str, int]] = None,
    ):
        self.source = parse_source(source if source is not None else settings.CAMERA_SOURCE)
        self.loop_video = settings.LOOP_VIDEO_FILES if loop_video is None else loop_video
        self.facing_mode_devices = facing_mode_devices or dict(self.DEFAULT_FACING_MODE_DEVICES)

    def open(self, constraints: CaptureConstraints) -> OpenCVFrameStream:
        source = self.source
        if source is None:
            source = self.facing_mode_devices.get(constraints.facing_mode, 0)

        if isinstance(source, int):
            device_path = f"/dev/video{source}"
            if os.path.exists(device_path) and not os.access(device_path, os.R_OK):
                raise PermissionDenied(f"No permission to read {device_path}")
        elif not os.path.isfile(source):
            raise DeviceUnavailable(f"Video file not found: {source}")

        cap = cv2.VideoCapture(source)
        if not cap.isOpened():
            cap.release()
            raise DeviceUnavailable(f"Failed to open capture source {source!r}")

        if isinstance(source, int):
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, constraints.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, constraints.height)

        logger.info(
            f"Capture opened: source={source!r} "
            f"requested={constraints.width}x{constraints.height} facing={constraints.facing_mode}"
        )
        return OpenCVFrameStream(cap, loop=self.loop_video and not isinstance(source, int))


def parse_source(source: Union[int, str, None]) -> Optional[Union[int, str]]:
    """Camera index strings such as "0" become ints; anything else is a path."""
    if isinstance(source, str):
        stripped = source.strip()
        if not stripped:
            return None
        if stripped.isdigit():
            return int(stripped)
        return stripped
    return source
