"""
FORMCHECK Form Service - Form-Rule Evaluator

Exercise-specific biomechanical checks. Each rule set is a pure function
LandmarkSet -> List[FeedbackItem]; each check inside a set measures one
scalar and maps it to exactly one severity tier. Checks are independent,
so one frame can carry good, warning and error items at the same time.
"""

from typing import Callable, Dict, List

from .geometry import (
    SIDES,
    ankle_mid,
    calculate_angle,
    elbow_angle,
    hip_angle,
    hip_mid,
    horizontal_spread,
    joint,
    knee_angle,
    lean_from_vertical,
    midpoint,
    point_to_line_distance,
    shoulder_mid,
)
from .landmarks import ExerciseLabel, FeedbackItem, JointType, Landmark, LandmarkSet, Severity


RuleSet = Callable[[LandmarkSet], List[FeedbackItem]]

GENERIC_FEEDBACK = FeedbackItem(
    Severity.WARNING,
    "No Exercise Detected",
    "Reposition yourself so your full body is visible while performing a recognized exercise",
)


def _good(title: str, message: str) -> FeedbackItem:
    return FeedbackItem(Severity.GOOD, title, message)


def _warning(title: str, message: str) -> FeedbackItem:
    return FeedbackItem(Severity.WARNING, title, message)


def _error(title: str, message: str) -> FeedbackItem:
    return FeedbackItem(Severity.ERROR, title, message)


def _body_line(lm: LandmarkSet, ankle: Landmark, good_title: str, good_message: str) -> FeedbackItem:
    """Hip distance from the shoulder-ankle line, split into sag and pike."""
    shoulders = shoulder_mid(lm)
    hips = hip_mid(lm)
    deviation = point_to_line_distance(hips, shoulders, ankle)

    if deviation < 0.05:
        return _good(good_title, good_message)

    sagging = hips.y > midpoint(shoulders, ankle).y
    make = _warning if deviation < 0.10 else _error
    if sagging:
        return make("Hips Sagging", "Engage your core and lift your hips into line")
    return make("Hips Too High", "Lower your hips until your body forms a straight line")


def _worst_offset(lm: LandmarkSet, upper: str, lower: str) -> float:
    """Largest horizontal offset between two stacked joints across both sides."""
    return max(horizontal_spread(joint(lm, side, upper), joint(lm, side, lower)) for side in SIDES)


# ═══════════════════════════════════════════════════════════════════════════════
# RULE SETS
# ═══════════════════════════════════════════════════════════════════════════════

def evaluate_squat(lm: LandmarkSet) -> List[FeedbackItem]:
    """Back alignment, knee tracking, depth and left/right symmetry."""
    feedback = []

    # Back angle is measured against a point straight below the hips
    hips = hip_mid(lm)
    below_hips = Landmark(x=hips.x, y=hips.y + 0.1, z=hips.z)
    back_angle = calculate_angle(shoulder_mid(lm), hips, below_hips)

    if 75 <= back_angle <= 105:
        feedback.append(_good("Good Back Position", "Your spine is properly aligned during the movement"))
    elif 60 <= back_angle <= 120:
        feedback.append(_warning("Back Alignment", "Try to maintain a more neutral spine position"))
    else:
        feedback.append(_error("Back Alignment Issue", "Your back angle is far from neutral, reset your torso"))

    knee_offset = _worst_offset(lm, "knee", "ankle")
    if knee_offset < 0.05:
        feedback.append(_good("Knee Tracking", "Knees are properly aligned over toes"))
    elif knee_offset <= 0.1:
        feedback.append(_warning("Knee Tracking", "Try to keep knees aligned over toes"))
    else:
        feedback.append(_error("Knee Tracking Issue", "Knees are drifting out of line with your toes"))

    avg_knee_y = (lm[JointType.LEFT_KNEE].y + lm[JointType.RIGHT_KNEE].y) / 2
    depth = avg_knee_y - hips.y
    if depth > 0.08:
        feedback.append(_good("Depth Achieved", "Excellent depth on your squat"))
    elif depth > 0.03:
        feedback.append(_warning("Moderate Depth", "Good range, go a little lower if you can"))
    else:
        feedback.append(_warning("Shallow Squat", "Try to go lower for better muscle engagement"))

    knee_diff = abs(knee_angle(lm, "left") - knee_angle(lm, "right"))
    if knee_diff < 10:
        feedback.append(_good("Balanced Stance", "Both legs are working evenly"))
    elif knee_diff < 20:
        feedback.append(_warning("Slight Imbalance", "Shift your weight evenly across both legs"))
    else:
        feedback.append(_error("Uneven Squat", "One leg is bending much more than the other"))

    return feedback


def evaluate_push_up(lm: LandmarkSet) -> List[FeedbackItem]:
    """Plank line, elbow depth and hand placement."""
    feedback = [_body_line(lm, ankle_mid(lm), "Straight Body Line", "Your body forms a solid plank")]

    avg_elbow = sum(elbow_angle(lm, side) for side in SIDES) / 2
    if avg_elbow < 100:
        feedback.append(_good("Full Depth", "Great range of motion on the way down"))
    elif avg_elbow < 140:
        feedback.append(_warning("Partial Range", "Lower your chest further toward the floor"))
    else:
        feedback.append(_warning("Bend Your Elbows", "Lower until your elbows reach about 90 degrees"))

    hand_offset = _worst_offset(lm, "wrist", "shoulder")
    if hand_offset < 0.05:
        feedback.append(_good("Hand Position", "Hands are stacked under your shoulders"))
    elif hand_offset < 0.1:
        feedback.append(_warning("Hand Position", "Move your hands closer to directly under your shoulders"))
    else:
        feedback.append(_error("Hand Placement Issue", "Hands are too far from your shoulders"))

    return feedback


def evaluate_plank(lm: LandmarkSet) -> List[FeedbackItem]:
    """Body straightness, shoulder stacking and neck position."""
    feedback = [_body_line(lm, ankle_mid(lm), "Straight Plank", "Your body is in a straight line")]

    elbow_offset = _worst_offset(lm, "elbow", "shoulder")
    if elbow_offset < 0.05:
        feedback.append(_good("Shoulders Stacked", "Elbows are directly under your shoulders"))
    elif elbow_offset < 0.1:
        feedback.append(_warning("Shoulder Alignment", "Bring your elbows under your shoulders"))
    else:
        feedback.append(_error("Shoulder Alignment Issue", "Elbows are too far from your shoulders"))

    neck_offset = abs(lm[JointType.NOSE].y - shoulder_mid(lm).y)
    if neck_offset < 0.08:
        feedback.append(_good("Neutral Neck", "Head is in line with your spine"))
    elif neck_offset < 0.15:
        feedback.append(_warning("Neck Alignment", "Keep your gaze down and your neck neutral"))
    else:
        feedback.append(_warning("Neck Alignment", "Your head is dropping or craning, realign it with your spine"))

    return feedback


def evaluate_lunge(lm: LandmarkSet) -> List[FeedbackItem]:
    """Front-knee angle, knee over toe and torso uprightness."""
    feedback = []

    # The front knee is the one held higher off the floor
    front = min(SIDES, key=lambda side: joint(lm, side, "knee").y)

    front_knee = knee_angle(lm, front)
    if 80 <= front_knee <= 100:
        feedback.append(_good("Front Knee at 90°", "Your front knee is bent to the right angle"))
    elif 70 <= front_knee <= 115:
        feedback.append(_warning("Front Knee Angle", "Aim for a 90 degree bend in your front knee"))
    else:
        feedback.append(_error("Front Knee Angle Issue", "Your front knee bend is far from 90 degrees"))

    knee_offset = horizontal_spread(joint(lm, front, "knee"), joint(lm, front, "ankle"))
    if knee_offset < 0.05:
        feedback.append(_good("Knee Over Ankle", "Front knee is stacked over your ankle"))
    elif knee_offset <= 0.1:
        feedback.append(_warning("Knee Position", "Keep your front knee above your ankle"))
    else:
        feedback.append(_error("Knee Past Toes", "Your front knee is travelling too far forward"))

    lean = lean_from_vertical(shoulder_mid(lm), hip_mid(lm))
    if lean < 15:
        feedback.append(_good("Upright Torso", "Chest up and torso upright"))
    elif lean < 30:
        feedback.append(_warning("Torso Leaning", "Lift your chest and keep your torso upright"))
    else:
        feedback.append(_error("Excessive Lean", "Your torso is leaning too far, stand taller"))

    return feedback


def evaluate_jumping_jack(lm: LandmarkSet) -> List[FeedbackItem]:
    """Arm extension overhead, leg spread and arm straightness."""
    feedback = []

    arm_raise = min(joint(lm, side, "shoulder").y - joint(lm, side, "wrist").y for side in SIDES)
    if arm_raise > 0.15:
        feedback.append(_good("Full Arm Extension", "Arms are reaching all the way overhead"))
    elif arm_raise > 0.05:
        feedback.append(_warning("Raise Arms Higher", "Bring your hands fully overhead"))
    else:
        feedback.append(_error("Arms Not Overhead", "Your arms are not getting above your shoulders"))

    shoulder_width = horizontal_spread(lm[JointType.LEFT_SHOULDER], lm[JointType.RIGHT_SHOULDER])
    ankle_spread = horizontal_spread(lm[JointType.LEFT_ANKLE], lm[JointType.RIGHT_ANKLE])
    spread_ratio = ankle_spread / max(shoulder_width, 1e-6)
    if spread_ratio >= 1.5:
        feedback.append(_good("Wide Stance", "Feet are landing wide"))
    elif spread_ratio >= 1.0:
        feedback.append(_warning("Jump Wider", "Land with your feet further apart"))
    else:
        feedback.append(_error("Feet Too Narrow", "Your feet are barely separating"))

    avg_elbow = sum(elbow_angle(lm, side) for side in SIDES) / 2
    if avg_elbow > 150:
        feedback.append(_good("Straight Arms", "Arms are extended through the movement"))
    elif avg_elbow > 120:
        feedback.append(_warning("Straighten Arms", "Extend your elbows a little more"))
    else:
        feedback.append(_warning("Arms Bent", "Keep your arms long as they swing overhead"))

    return feedback


def evaluate_mountain_climber(lm: LandmarkSet) -> List[FeedbackItem]:
    """Plank base stability, knee-drive amplitude and shoulders over hands."""
    feedback = []

    extended = max(SIDES, key=lambda side: knee_angle(lm, side))
    driven = "right" if extended == "left" else "left"

    feedback.append(_body_line(lm, joint(lm, extended, "ankle"), "Stable Base", "Hips are level with your shoulders"))

    drive = hip_angle(lm, driven)
    if drive < 90:
        feedback.append(_good("Strong Knee Drive", "Knee is driving well toward your chest"))
    elif drive < 120:
        feedback.append(_warning("Drive Knees Further", "Pull your knee closer to your chest"))
    else:
        feedback.append(_warning("Minimal Knee Drive", "Bring your knees in toward your chest each rep"))

    hand_offset = _worst_offset(lm, "wrist", "shoulder")
    if hand_offset < 0.05:
        feedback.append(_good("Shoulders Over Hands", "Shoulders are stacked over your wrists"))
    elif hand_offset < 0.1:
        feedback.append(_warning("Shoulder Position", "Shift your shoulders over your hands"))
    else:
        feedback.append(_error("Shoulders Off Hands", "Your shoulders are far from your hands"))

    return feedback


def evaluate_high_knee(lm: LandmarkSet) -> List[FeedbackItem]:
    """Knee lift height, posture and supporting-leg knee."""
    feedback = []

    raised = min(SIDES, key=lambda side: joint(lm, side, "knee").y)
    support = "right" if raised == "left" else "left"

    lift = hip_mid(lm).y - joint(lm, raised, "knee").y
    if lift > 0.02:
        feedback.append(_good("Great Knee Height", "Knees are coming up above hip height"))
    elif lift > -0.05:
        feedback.append(_warning("Lift Knees Higher", "Drive your knees up to hip height"))
    else:
        feedback.append(_warning("Knees Too Low", "Your knees are staying well below hip height"))

    lean = lean_from_vertical(shoulder_mid(lm), hip_mid(lm))
    if lean < 10:
        feedback.append(_good("Upright Posture", "Torso is tall and stable"))
    elif lean < 20:
        feedback.append(_warning("Posture", "Stay tall, avoid leaning"))
    else:
        feedback.append(_error("Leaning Posture", "You are leaning too far, bring your torso upright"))

    support_knee = knee_angle(lm, support)
    if support_knee > 160:
        feedback.append(_good("Stable Support Leg", "Supporting leg is firm"))
    elif support_knee > 140:
        feedback.append(_warning("Soft Support Knee", "Straighten your supporting leg a little"))
    else:
        feedback.append(_warning("Support Knee Bent", "Your supporting knee is collapsing, stay on the balls of your feet"))

    return feedback


# Labels without an entry fall back to GENERIC_FEEDBACK
RULE_SETS: Dict[ExerciseLabel, RuleSet] = {
    ExerciseLabel.SQUAT: evaluate_squat,
    ExerciseLabel.PUSH_UP: evaluate_push_up,
    ExerciseLabel.PLANK: evaluate_plank,
    ExerciseLabel.LUNGE: evaluate_lunge,
    ExerciseLabel.JUMPING_JACK: evaluate_jumping_jack,
    ExerciseLabel.MOUNTAIN_CLIMBER: evaluate_mountain_climber,
    ExerciseLabel.HIGH_KNEE: evaluate_high_knee,
}


def has_rule_set(label: ExerciseLabel) -> bool:
    return label in RULE_SETS


def evaluate_form(landmarks: LandmarkSet, label: ExerciseLabel) -> List[FeedbackItem]:
    """
    Produce ordered feedback for one frame.

    Args:
        landmarks: Landmarks of the detected body
        label: Exercise the frame was classified as

    Returns:
        Feedback items in check order, or a single generic item when the
        set is incomplete or the label has no rule set.
    """
    if not landmarks.is_complete:
        return [GENERIC_FEEDBACK]

    rule_set = RULE_SETS.get(label)
    if rule_set is None:
        return [GENERIC_FEEDBACK]

    return rule_set(landmarks)
