"""
Synthetic landmark sets for tests.

Coordinates are normalized image coordinates (y grows downward). Keys
without a side prefix ("knee") set both sides; keys with one
("left_knee") set a single joint.
"""

from typing import Dict, Tuple

from form_service.models import JointType, Landmark, LandmarkSet

Point = Tuple[float, float]

STANDING: Dict[JointType, Point] = {
    **{joint: (0.50, 0.14) for joint in list(JointType)[:11]},
    JointType.NOSE: (0.50, 0.15),
    JointType.LEFT_SHOULDER: (0.58, 0.30),
    JointType.RIGHT_SHOULDER: (0.42, 0.30),
    JointType.LEFT_ELBOW: (0.60, 0.42),
    JointType.RIGHT_ELBOW: (0.40, 0.42),
    JointType.LEFT_WRIST: (0.61, 0.53),
    JointType.RIGHT_WRIST: (0.39, 0.53),
    JointType.LEFT_PINKY: (0.61, 0.55),
    JointType.RIGHT_PINKY: (0.39, 0.55),
    JointType.LEFT_INDEX: (0.61, 0.55),
    JointType.RIGHT_INDEX: (0.39, 0.55),
    JointType.LEFT_THUMB: (0.60, 0.54),
    JointType.RIGHT_THUMB: (0.40, 0.54),
    JointType.LEFT_HIP: (0.55, 0.55),
    JointType.RIGHT_HIP: (0.45, 0.55),
    JointType.LEFT_KNEE: (0.55, 0.72),
    JointType.RIGHT_KNEE: (0.45, 0.72),
    JointType.LEFT_ANKLE: (0.55, 0.90),
    JointType.RIGHT_ANKLE: (0.45, 0.90),
    JointType.LEFT_HEEL: (0.55, 0.92),
    JointType.RIGHT_HEEL: (0.45, 0.92),
    JointType.LEFT_FOOT_INDEX: (0.56, 0.93),
    JointType.RIGHT_FOOT_INDEX: (0.44, 0.93),
}


def build_pose(**joints: Point) -> LandmarkSet:
    """Standing pose with the given joints moved."""
    coords = dict(STANDING)
    for name, point in joints.items():
        key = name.upper()
        if key in JointType.__members__:
            coords[JointType[key]] = point
        else:
            coords[JointType[f"LEFT_{key}"]] = point
            coords[JointType[f"RIGHT_{key}"]] = point

    return LandmarkSet.from_points(Landmark(x=coords[j][0], y=coords[j][1]) for j in JointType)


def truncated(landmarks: LandmarkSet, count: int) -> LandmarkSet:
    return LandmarkSet.from_points(landmarks.points[:count])


def _variant(base: Dict[str, Point], overrides: Dict[str, Point]) -> LandmarkSet:
    # Overrides land after the base keys, so "left_knee" wins over "knee"
    return build_pose(**{**base, **overrides})


# Side view, bottom of the rep: wrists just below the shoulders, elbows bent
PUSH_UP = {
    "nose": (0.22, 0.50),
    "shoulder": (0.30, 0.50),
    "elbow": (0.38, 0.56),
    "wrist": (0.30, 0.62),
    "hip": (0.55, 0.52),
    "knee": (0.68, 0.53),
    "ankle": (0.80, 0.54),
}

# Forearm plank: elbows under shoulders, forearms on the floor
PLANK = {
    "nose": (0.22, 0.50),
    "shoulder": (0.30, 0.50),
    "elbow": (0.30, 0.68),
    "wrist": (0.18, 0.68),
    "hip": (0.55, 0.52),
    "knee": (0.68, 0.53),
    "ankle": (0.80, 0.54),
}

SQUAT = {
    "nose": (0.32, 0.45),
    "shoulder": (0.38, 0.50),
    "elbow": (0.45, 0.62),
    "wrist": (0.50, 0.75),
    "hip": (0.58, 0.52),
    "knee": (0.42, 0.62),
    "ankle": (0.44, 0.85),
}

# Left leg forward at ~94 degrees, right leg trailing
LUNGE = {
    "nose": (0.50, 0.15),
    "shoulder": (0.50, 0.30),
    "elbow": (0.50, 0.42),
    "wrist": (0.50, 0.52),
    "hip": (0.50, 0.55),
    "left_knee": (0.64, 0.56),
    "left_ankle": (0.64, 0.85),
    "right_knee": (0.40, 0.80),
    "right_ankle": (0.22, 0.90),
}

JUMPING_JACK = {
    "left_shoulder": (0.58, 0.30),
    "right_shoulder": (0.42, 0.30),
    "left_elbow": (0.66, 0.18),
    "right_elbow": (0.34, 0.18),
    "left_wrist": (0.70, 0.08),
    "right_wrist": (0.30, 0.08),
    "left_hip": (0.55, 0.55),
    "right_hip": (0.45, 0.55),
    "left_knee": (0.63, 0.72),
    "right_knee": (0.37, 0.72),
    "left_ankle": (0.70, 0.90),
    "right_ankle": (0.30, 0.90),
}

# High plank, right knee driven toward the chest
MOUNTAIN_CLIMBER = {
    "nose": (0.22, 0.45),
    "shoulder": (0.30, 0.45),
    "elbow": (0.30, 0.575),
    "wrist": (0.30, 0.70),
    "hip": (0.55, 0.47),
    "left_knee": (0.68, 0.48),
    "left_ankle": (0.80, 0.49),
    "right_knee": (0.42, 0.55),
    "right_ankle": (0.55, 0.62),
}

# Side view, left leg lifted above hip height
HIGH_KNEE = {
    "nose": (0.52, 0.15),
    "shoulder": (0.50, 0.30),
    "elbow": (0.50, 0.42),
    "wrist": (0.50, 0.52),
    "hip": (0.50, 0.55),
    "left_knee": (0.62, 0.52),
    "left_ankle": (0.75, 0.56),
    "right_knee": (0.50, 0.72),
    "right_ankle": (0.50, 0.90),
}


def push_up_pose(**overrides: Point) -> LandmarkSet:
    return _variant(PUSH_UP, overrides)


def plank_pose(**overrides: Point) -> LandmarkSet:
    return _variant(PLANK, overrides)


def squat_pose(**overrides: Point) -> LandmarkSet:
    return _variant(SQUAT, overrides)


def lunge_pose(**overrides: Point) -> LandmarkSet:
    return _variant(LUNGE, overrides)


def jumping_jack_pose(**overrides: Point) -> LandmarkSet:
    return _variant(JUMPING_JACK, overrides)


def mountain_climber_pose(**overrides: Point) -> LandmarkSet:
    return _variant(MOUNTAIN_CLIMBER, overrides)


def high_knee_pose(**overrides: Point) -> LandmarkSet:
    return _variant(HIGH_KNEE, overrides)


def standing_pose() -> LandmarkSet:
    return build_pose()


# Torso neither flat nor upright, legs straight: matches no cascade entry
def unrecognized_pose() -> LandmarkSet:
    return build_pose(left_shoulder=(0.58, 0.38), right_shoulder=(0.42, 0.38))
