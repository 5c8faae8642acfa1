"""
FORMCHECK Form Service - Geometric Feature Engine

Stateless numeric primitives over pose landmarks. All measurements work in
the 2D image plane (normalized x/y, y grows downward); z is ignored.
Callers are responsible for checking LandmarkSet completeness first.
"""

from typing import Dict

import numpy as np

from .landmarks import JointType, Landmark, LandmarkSet


SIDES = ("left", "right")

_SIDE_JOINTS = {
    "left": {
        "shoulder": JointType.LEFT_SHOULDER,
        "elbow": JointType.LEFT_ELBOW,
        "wrist": JointType.LEFT_WRIST,
        "hip": JointType.LEFT_HIP,
        "knee": JointType.LEFT_KNEE,
        "ankle": JointType.LEFT_ANKLE,
    },
    "right": {
        "shoulder": JointType.RIGHT_SHOULDER,
        "elbow": JointType.RIGHT_ELBOW,
        "wrist": JointType.RIGHT_WRIST,
        "hip": JointType.RIGHT_HIP,
        "knee": JointType.RIGHT_KNEE,
        "ankle": JointType.RIGHT_ANKLE,
    },
}


def calculate_angle(a: Landmark, b: Landmark, c: Landmark) -> float:
    """
    Calculate the interior angle at b formed by rays b->a and b->c.

    Uses the arctangent difference in the x/y plane and folds reflex
    results back, so the value always lies in [0, 180] and
    calculate_angle(a, b, c) == calculate_angle(c, b, a).

    Returns:
        Angle in degrees (0-180)
    """
    radians = np.arctan2(c.y - b.y, c.x - b.x) - np.arctan2(a.y - b.y, a.x - b.x)
    angle = abs(float(np.degrees(radians)))

    if angle > 180.0:
        angle = 360.0 - angle

    return angle


def vertical_distance(a: Landmark, b: Landmark) -> float:
    return abs(a.y - b.y)


def horizontal_spread(a: Landmark, b: Landmark) -> float:
    return abs(a.x - b.x)


def midpoint(a: Landmark, b: Landmark) -> Landmark:
    """Calculate midpoint between two landmarks."""
    return Landmark(
        x=(a.x + b.x) / 2,
        y=(a.y + b.y) / 2,
        z=(a.z + b.z) / 2,
        visibility=min(a.visibility, b.visibility),
    )


def point_to_line_distance(point: Landmark, line_a: Landmark, line_b: Landmark) -> float:
    """
    Perpendicular distance from point to the line through line_a and line_b.

    Returns:
        Distance in normalized coordinates
    """
    num = abs((line_b.y - line_a.y) * point.x -
              (line_b.x - line_a.x) * point.y +
              line_b.x * line_a.y - line_b.y * line_a.x)
    den = np.sqrt((line_b.y - line_a.y) ** 2 + (line_b.x - line_a.x) ** 2)
    return float(num / (den + 1e-8))


def lean_from_vertical(top: Landmark, bottom: Landmark) -> float:
    """Angle in degrees between bottom->top and straight up (0 = upright)."""
    above = Landmark(x=bottom.x, y=bottom.y - 0.1, z=bottom.z)
    return calculate_angle(top, bottom, above)


# ═══════════════════════════════════════════════════════════════════════════════
# BODY-LEVEL FEATURES
# ═══════════════════════════════════════════════════════════════════════════════

def joint(landmarks: LandmarkSet, side: str, name: str) -> Landmark:
    """Look up a side-specific joint, e.g. joint(lm, "left", "knee")."""
    return landmarks[_SIDE_JOINTS[side][name]]


def shoulder_mid(landmarks: LandmarkSet) -> Landmark:
    return midpoint(landmarks[JointType.LEFT_SHOULDER], landmarks[JointType.RIGHT_SHOULDER])


def hip_mid(landmarks: LandmarkSet) -> Landmark:
    return midpoint(landmarks[JointType.LEFT_HIP], landmarks[JointType.RIGHT_HIP])


def ankle_mid(landmarks: LandmarkSet) -> Landmark:
    return midpoint(landmarks[JointType.LEFT_ANKLE], landmarks[JointType.RIGHT_ANKLE])


def wrist_mid(landmarks: LandmarkSet) -> Landmark:
    return midpoint(landmarks[JointType.LEFT_WRIST], landmarks[JointType.RIGHT_WRIST])


def body_horizontalness(landmarks: LandmarkSet) -> float:
    """
    |avg(shoulder y) - avg(hip y)|.

    Small values mean the torso lies flat (prone poses), large values mean
    the torso is upright.
    """
    return vertical_distance(shoulder_mid(landmarks), hip_mid(landmarks))


def knee_angle(landmarks: LandmarkSet, side: str) -> float:
    """Hip-knee-ankle angle."""
    return calculate_angle(
        joint(landmarks, side, "hip"),
        joint(landmarks, side, "knee"),
        joint(landmarks, side, "ankle"),
    )


def elbow_angle(landmarks: LandmarkSet, side: str) -> float:
    """Shoulder-elbow-wrist angle."""
    return calculate_angle(
        joint(landmarks, side, "shoulder"),
        joint(landmarks, side, "elbow"),
        joint(landmarks, side, "wrist"),
    )


def hip_angle(landmarks: LandmarkSet, side: str) -> float:
    """Shoulder-hip-knee angle."""
    return calculate_angle(
        joint(landmarks, side, "shoulder"),
        joint(landmarks, side, "hip"),
        joint(landmarks, side, "knee"),
    )


def shoulder_angle(landmarks: LandmarkSet, side: str) -> float:
    """Elbow-shoulder-hip angle."""
    return calculate_angle(
        joint(landmarks, side, "elbow"),
        joint(landmarks, side, "shoulder"),
        joint(landmarks, side, "hip"),
    )


def knee_height_asymmetry(landmarks: LandmarkSet) -> float:
    return vertical_distance(landmarks[JointType.LEFT_KNEE], landmarks[JointType.RIGHT_KNEE])


def get_joint_angles(landmarks: LandmarkSet) -> Dict[str, float]:
    """
    Calculate all major joint angles from pose landmarks.

    Returns dict with angle names and values in degrees.
    """
    angles = {}
    for side in SIDES:
        angles[f"{side}_elbow"] = elbow_angle(landmarks, side)
        angles[f"{side}_shoulder"] = shoulder_angle(landmarks, side)
        angles[f"{side}_hip"] = hip_angle(landmarks, side)
        angles[f"{side}_knee"] = knee_angle(landmarks, side)

    angles["trunk_vertical"] = lean_from_vertical(shoulder_mid(landmarks), hip_mid(landmarks))
    return angles
