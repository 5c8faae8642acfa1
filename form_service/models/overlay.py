"""
FORMCHECK Form Service - Skeleton Overlay

Draws the detected skeleton and classification onto a BGR frame.
"""

from typing import Tuple

import cv2
import numpy as np

from .landmarks import POSE_CONNECTIONS, PoseAnalysis, Severity

CONNECTION_COLOR = (0, 255, 0)
LANDMARK_COLOR = (0, 0, 255)

SEVERITY_COLORS = {
    Severity.GOOD: (0, 200, 0),
    Severity.WARNING: (0, 200, 255),
    Severity.ERROR: (0, 0, 255),
}


def _to_pixel(x: float, y: float, width: int, height: int) -> Tuple[int, int]:
    return int(round(x * width)), int(round(y * height))


def draw_pose_overlay(frame: np.ndarray, analysis: PoseAnalysis) -> np.ndarray:
    """
    Draw skeleton, label and feedback titles on a copy of the frame.

    Args:
        frame: BGR image (H, W, 3)
        analysis: Analysis of that frame

    Returns:
        Annotated copy of the frame
    """
    annotated = frame.copy()
    height, width = annotated.shape[:2]
    landmarks = analysis.landmarks

    if landmarks.is_complete:
        for start, end in POSE_CONNECTIONS:
            a, b = landmarks[start], landmarks[end]
            cv2.line(
                annotated,
                _to_pixel(a.x, a.y, width, height),
                _to_pixel(b.x, b.y, width, height),
                CONNECTION_COLOR,
                4,
            )

    for lm in landmarks.points:
        cv2.circle(annotated, _to_pixel(lm.x, lm.y, width, height), 6, LANDMARK_COLOR, 2)

    label = f"{analysis.detected_exercise.value} ({analysis.confidence:.0%})"
    cv2.putText(annotated, label, (10, 30), cv2.FONT_HERSHEY_SIMPLEX, 0.9, (255, 255, 255), 2)

    for i, item in enumerate(analysis.feedback):
        cv2.putText(
            annotated,
            item.title,
            (10, 60 + 25 * i),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.6,
            SEVERITY_COLORS[item.severity],
            2,
        )

    return annotated
