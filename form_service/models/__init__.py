"""
FORMCHECK Form Service Models

MediaPipe-based pose analysis with rule-based exercise classification and
form feedback.
"""

from .landmarks import (
    POSE_CONNECTIONS,
    POSE_LANDMARK_COUNT,
    Classification,
    ExerciseLabel,
    FeedbackItem,
    JointType,
    Landmark,
    LandmarkSet,
    PoseAnalysis,
    Severity,
)

from .classifier import EXERCISE_CASCADE, CascadeEntry, classify_exercise
from .form_rules import GENERIC_FEEDBACK, RULE_SETS, evaluate_form, has_rule_set
from .form_analyzer import FormAnalyzer, get_form_analyzer

from .errors import (
    CaptureError,
    DeviceUnavailable,
    FormCheckError,
    ModelLoadError,
    PermissionDenied,
    ProviderTimeout,
)

from .pose_provider import (
    LandmarkProvider,
    MediaPipeLandmarkProvider,
    dispose_landmark_provider,
    get_landmark_provider,
)
from .capture import CaptureConstraints, CaptureSource, FrameStream, OpenCVCaptureSource
from .controller import CancellationToken, ControllerState, FormCheckController
from .overlay import draw_pose_overlay

__all__ = [
    # Data model
    "POSE_CONNECTIONS",
    "POSE_LANDMARK_COUNT",
    "Classification",
    "ExerciseLabel",
    "FeedbackItem",
    "JointType",
    "Landmark",
    "LandmarkSet",
    "PoseAnalysis",
    "Severity",
    # Analysis
    "EXERCISE_CASCADE",
    "CascadeEntry",
    "classify_exercise",
    "GENERIC_FEEDBACK",
    "RULE_SETS",
    "evaluate_form",
    "has_rule_set",
    "FormAnalyzer",
    "get_form_analyzer",
    # Errors
    "CaptureError",
    "DeviceUnavailable",
    "FormCheckError",
    "ModelLoadError",
    "PermissionDenied",
    "ProviderTimeout",
    # Collaborators
    "LandmarkProvider",
    "MediaPipeLandmarkProvider",
    "dispose_landmark_provider",
    "get_landmark_provider",
    "CaptureConstraints",
    "CaptureSource",
    "FrameStream",
    "OpenCVCaptureSource",
    # Loop
    "CancellationToken",
    "ControllerState",
    "FormCheckController",
    "draw_pose_overlay",
]
