"""
FORMCHECK Form Service - Exercise Classifier

Rule-based exercise recognition from a single frame of landmarks.

The classifier is an ordered decision table: every entry pairs a geometric
predicate with an exercise label and a fixed confidence prior. Entries are
tried in declared order and the first matching predicate wins. The
predicates overlap (a push-up also looks like a plank, a lunge can look
like a squat), so the order of EXERCISE_CASCADE is part of the contract.
"""

from typing import Callable, NamedTuple, Tuple

from .geometry import (
    SIDES,
    ankle_mid,
    body_horizontalness,
    elbow_angle,
    hip_mid,
    horizontal_spread,
    joint,
    knee_angle,
    knee_height_asymmetry,
    midpoint,
    shoulder_mid,
    vertical_distance,
    wrist_mid,
)
from .landmarks import Classification, ExerciseLabel, JointType, LandmarkSet


# Torso orientation
HORIZONTAL_MAX = 0.15          # |shoulder y - hip y| below this: body lies flat
VERTICAL_MIN = 0.20            # above this: body upright

# Predicate thresholds
WRIST_NEAR_SHOULDER_MAX = 0.15
HIP_COPLANAR_MAX = 0.10
PLANK_ELBOW_MAX = 100.0
BENT_KNEE_MAX = 130.0
LUNGE_KNEE_ASYMMETRY = 0.10
ARMS_RAISED_MARGIN = 0.05
JUMPING_JACK_ANKLE_SPREAD = 0.25
CLIMBER_KNEE_ASYMMETRY = 0.05
HIGH_KNEE_MARGIN = 0.02
STRAIGHT_KNEE_MIN = 160.0

UNKNOWN_CONFIDENCE = 0.5


class CascadeEntry(NamedTuple):
    """One row of the classification decision table."""
    label: ExerciseLabel
    confidence: float
    predicate: Callable[[LandmarkSet], bool]


# ═══════════════════════════════════════════════════════════════════════════════
# PREDICATES
# ═══════════════════════════════════════════════════════════════════════════════

def is_horizontal(lm: LandmarkSet) -> bool:
    return body_horizontalness(lm) < HORIZONTAL_MAX


def is_vertical(lm: LandmarkSet) -> bool:
    return body_horizontalness(lm) > VERTICAL_MIN


def is_push_up(lm: LandmarkSet) -> bool:
    return (
        is_horizontal(lm)
        and vertical_distance(wrist_mid(lm), shoulder_mid(lm)) < WRIST_NEAR_SHOULDER_MAX
    )


def is_plank(lm: LandmarkSet) -> bool:
    # Hips sit on the shoulder-ankle line when the body is one rigid plank
    body_line_mid = midpoint(shoulder_mid(lm), ankle_mid(lm))
    hips_coplanar = vertical_distance(hip_mid(lm), body_line_mid) < HIP_COPLANAR_MAX
    avg_elbow = sum(elbow_angle(lm, side) for side in SIDES) / 2
    return is_horizontal(lm) and hips_coplanar and avg_elbow < PLANK_ELBOW_MAX


def is_squat(lm: LandmarkSet) -> bool:
    knees_bent = all(knee_angle(lm, side) < BENT_KNEE_MAX for side in SIDES)
    avg_knee_y = (lm[JointType.LEFT_KNEE].y + lm[JointType.RIGHT_KNEE].y) / 2
    return knees_bent and avg_knee_y > hip_mid(lm).y


def is_lunge(lm: LandmarkSet) -> bool:
    return (
        knee_height_asymmetry(lm) > LUNGE_KNEE_ASYMMETRY
        and any(knee_angle(lm, side) < BENT_KNEE_MAX for side in SIDES)
    )


def is_jumping_jack(lm: LandmarkSet) -> bool:
    arms_up = all(
        joint(lm, side, "wrist").y < joint(lm, side, "shoulder").y - ARMS_RAISED_MARGIN
        for side in SIDES
    )
    legs_wide = horizontal_spread(lm[JointType.LEFT_ANKLE], lm[JointType.RIGHT_ANKLE]) > JUMPING_JACK_ANKLE_SPREAD
    return arms_up and legs_wide


def is_mountain_climber(lm: LandmarkSet) -> bool:
    return is_horizontal(lm) and knee_height_asymmetry(lm) > CLIMBER_KNEE_ASYMMETRY


def is_high_knee(lm: LandmarkSet) -> bool:
    hip_y = hip_mid(lm).y
    knee_raised = any(joint(lm, side, "knee").y < hip_y - HIGH_KNEE_MARGIN for side in SIDES)
    return is_vertical(lm) and knee_raised


def is_standing(lm: LandmarkSet) -> bool:
    return is_vertical(lm) and all(knee_angle(lm, side) > STRAIGHT_KNEE_MIN for side in SIDES)


# Priority order: first match wins
EXERCISE_CASCADE: Tuple[CascadeEntry, ...] = (
    CascadeEntry(ExerciseLabel.PUSH_UP, 0.9, is_push_up),
    CascadeEntry(ExerciseLabel.PLANK, 0.85, is_plank),
    CascadeEntry(ExerciseLabel.SQUAT, 0.9, is_squat),
    CascadeEntry(ExerciseLabel.LUNGE, 0.85, is_lunge),
    CascadeEntry(ExerciseLabel.JUMPING_JACK, 0.8, is_jumping_jack),
    CascadeEntry(ExerciseLabel.MOUNTAIN_CLIMBER, 0.75, is_mountain_climber),
    CascadeEntry(ExerciseLabel.HIGH_KNEE, 0.8, is_high_knee),
    CascadeEntry(ExerciseLabel.STANDING, 0.7, is_standing),
)


def classify_exercise(landmarks: LandmarkSet) -> Classification:
    """
    Classify the exercise visible in one frame.

    Args:
        landmarks: Landmarks of the detected body

    Returns:
        Classification(label, confidence). Incomplete landmark sets give
        (UNKNOWN, 0.0); complete sets matching no entry give
        (UNKNOWN, 0.5).
    """
    if not landmarks.is_complete:
        return Classification(ExerciseLabel.UNKNOWN, 0.0)

    for entry in EXERCISE_CASCADE:
        if entry.predicate(landmarks):
            return Classification(entry.label, entry.confidence)

    return Classification(ExerciseLabel.UNKNOWN, UNKNOWN_CONFIDENCE)
