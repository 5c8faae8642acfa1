"""
FORMCHECK Form Service - Landmark Data Model

Frame-scoped value objects produced and consumed by the form-analysis
pipeline. Joints are addressed through JointType; the positional tuple
inside a LandmarkSet is an implementation detail.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, NamedTuple, Tuple


POSE_LANDMARK_COUNT = 33


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class JointType(Enum):
    """Body joint types for pose estimation (MediaPipe pose topology)."""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


class ExerciseLabel(Enum):
    """Closed set of exercise classifications."""
    SQUAT = "squat"
    PUSH_UP = "push-up"
    PLANK = "plank"
    LUNGE = "lunge"
    JUMPING_JACK = "jumping-jack"
    BURPEE = "burpee"
    MOUNTAIN_CLIMBER = "mountain-climber"
    HIGH_KNEE = "high-knee"
    STANDING = "standing"
    UNKNOWN = "unknown"


class Severity(Enum):
    """Feedback severity levels."""
    GOOD = "good"
    WARNING = "warning"
    ERROR = "error"


# Skeleton edges drawn by the overlay renderer
POSE_CONNECTIONS: Tuple[Tuple[JointType, JointType], ...] = (
    (JointType.NOSE, JointType.LEFT_EYE_INNER),
    (JointType.LEFT_EYE_INNER, JointType.LEFT_EYE),
    (JointType.LEFT_EYE, JointType.LEFT_EYE_OUTER),
    (JointType.LEFT_EYE_OUTER, JointType.LEFT_EAR),
    (JointType.NOSE, JointType.RIGHT_EYE_INNER),
    (JointType.RIGHT_EYE_INNER, JointType.RIGHT_EYE),
    (JointType.RIGHT_EYE, JointType.RIGHT_EYE_OUTER),
    (JointType.RIGHT_EYE_OUTER, JointType.RIGHT_EAR),
    (JointType.MOUTH_LEFT, JointType.MOUTH_RIGHT),
    (JointType.LEFT_SHOULDER, JointType.RIGHT_SHOULDER),
    (JointType.LEFT_SHOULDER, JointType.LEFT_ELBOW),
    (JointType.LEFT_ELBOW, JointType.LEFT_WRIST),
    (JointType.LEFT_WRIST, JointType.LEFT_PINKY),
    (JointType.LEFT_WRIST, JointType.LEFT_INDEX),
    (JointType.LEFT_WRIST, JointType.LEFT_THUMB),
    (JointType.LEFT_PINKY, JointType.LEFT_INDEX),
    (JointType.RIGHT_SHOULDER, JointType.RIGHT_ELBOW),
    (JointType.RIGHT_ELBOW, JointType.RIGHT_WRIST),
    (JointType.RIGHT_WRIST, JointType.RIGHT_PINKY),
    (JointType.RIGHT_WRIST, JointType.RIGHT_INDEX),
    (JointType.RIGHT_WRIST, JointType.RIGHT_THUMB),
    (JointType.RIGHT_PINKY, JointType.RIGHT_INDEX),
    (JointType.LEFT_SHOULDER, JointType.LEFT_HIP),
    (JointType.RIGHT_SHOULDER, JointType.RIGHT_HIP),
    (JointType.LEFT_HIP, JointType.RIGHT_HIP),
    (JointType.LEFT_HIP, JointType.LEFT_KNEE),
    (JointType.LEFT_KNEE, JointType.LEFT_ANKLE),
    (JointType.LEFT_ANKLE, JointType.LEFT_HEEL),
    (JointType.LEFT_HEEL, JointType.LEFT_FOOT_INDEX),
    (JointType.LEFT_ANKLE, JointType.LEFT_FOOT_INDEX),
    (JointType.RIGHT_HIP, JointType.RIGHT_KNEE),
    (JointType.RIGHT_KNEE, JointType.RIGHT_ANKLE),
    (JointType.RIGHT_ANKLE, JointType.RIGHT_HEEL),
    (JointType.RIGHT_HEEL, JointType.RIGHT_FOOT_INDEX),
    (JointType.RIGHT_ANKLE, JointType.RIGHT_FOOT_INDEX),
)


# ═══════════════════════════════════════════════════════════════════════════════
# DATA CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Landmark:
    """A single pose landmark with normalized 3D coordinates and visibility."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z, "visibility": self.visibility}


@dataclass(frozen=True)
class LandmarkSet:
    """
    Landmarks of one detected body in one frame.

    Only a set holding all 33 joints is usable for analysis; shorter sets
    can exist (a provider may hand one back) but are treated as
    "no usable pose" downstream.
    """
    points: Tuple[Landmark, ...]

    @classmethod
    def from_points(cls, points: Iterable[Landmark]) -> "LandmarkSet":
        return cls(points=tuple(points))

    @property
    def is_complete(self) -> bool:
        return len(self.points) == POSE_LANDMARK_COUNT

    def __len__(self) -> int:
        return len(self.points)

    def __getitem__(self, joint: JointType) -> Landmark:
        return self.points[joint.value]

    def to_list(self) -> List[Dict[str, Any]]:
        """Convert landmarks to a JSON-serializable list."""
        return [
            {
                "id": idx,
                "name": JointType(idx).name.lower() if idx < POSE_LANDMARK_COUNT else f"point_{idx}",
                **lm.to_dict(),
            }
            for idx, lm in enumerate(self.points)
        ]


@dataclass(frozen=True)
class FeedbackItem:
    """One form-correctness observation."""
    severity: Severity
    title: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.severity.value, "title": self.title, "message": self.message}


class Classification(NamedTuple):
    """Exercise label with its heuristic confidence."""
    label: ExerciseLabel
    confidence: float


@dataclass(frozen=True)
class PoseAnalysis:
    """Complete result of processing one frame."""
    timestamp: float
    landmarks: LandmarkSet
    feedback: Tuple[FeedbackItem, ...]
    detected_exercise: ExerciseLabel
    confidence: float
    joint_angles: Dict[str, float] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict."""
        return {
            "timestamp": self.timestamp,
            "detected_exercise": self.detected_exercise.value,
            "confidence": self.confidence,
            "feedback": [item.to_dict() for item in self.feedback],
            "joint_angles": {name: round(angle, 1) for name, angle in self.joint_angles.items()},
            "landmarks": self.landmarks.to_list(),
        }
