"""
FORMCHECK Form Service - Form Analyzer

Bundles classification and rule evaluation into one per-frame call.
"""

import logging
from typing import Optional

from core.config import settings

from .classifier import classify_exercise
from .form_rules import GENERIC_FEEDBACK, evaluate_form
from .geometry import get_joint_angles
from .landmarks import LandmarkSet, PoseAnalysis

logger = logging.getLogger(__name__)


class FormAnalyzer:
    """
    Classify-then-evaluate pipeline for single frames.

    Holds no per-frame state, so one instance can serve any number of
    streams.
    """

    def __init__(self, min_feedback_confidence: Optional[float] = None):
        """
        Args:
            min_feedback_confidence: Classifications below this confidence
                only get the generic feedback item (0 disables gating)
        """
        if min_feedback_confidence is None:
            min_feedback_confidence = settings.MIN_FEEDBACK_CONFIDENCE
        self.min_feedback_confidence = min_feedback_confidence

    def analyze(self, landmarks: LandmarkSet, timestamp: float) -> PoseAnalysis:
        label, confidence = classify_exercise(landmarks)

        if confidence < self.min_feedback_confidence:
            feedback = [GENERIC_FEEDBACK]
        else:
            feedback = evaluate_form(landmarks, label)

        joint_angles = get_joint_angles(landmarks) if landmarks.is_complete else {}

        logger.debug(f"Frame {timestamp}: {label.value} ({confidence:.2f}), {len(feedback)} feedback items")

        return PoseAnalysis(
            timestamp=timestamp,
            landmarks=landmarks,
            feedback=tuple(feedback),
            detected_exercise=label,
            confidence=confidence,
            joint_angles=joint_angles,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# MODULE-LEVEL SINGLETON
# ═══════════════════════════════════════════════════════════════════════════════

_analyzer_instance: Optional[FormAnalyzer] = None

def get_form_analyzer() -> FormAnalyzer:
    """Get or create the global form analyzer instance."""
    global _analyzer_instance
    if _analyzer_instance is None:
        _analyzer_instance = FormAnalyzer()
    return _analyzer_instance
