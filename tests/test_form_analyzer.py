"""
Form analyzer tests
"""

import pytest

from form_service.models import GENERIC_FEEDBACK, ExerciseLabel, FormAnalyzer, Severity

from tests import poses


def test_analyze_push_up():
    analysis = FormAnalyzer(min_feedback_confidence=0.0).analyze(poses.push_up_pose(), 1234.5)

    assert analysis.timestamp == 1234.5
    assert analysis.detected_exercise == ExerciseLabel.PUSH_UP
    assert analysis.confidence == pytest.approx(0.9)
    assert {item.severity for item in analysis.feedback} == {Severity.GOOD}
    assert "left_elbow" in analysis.joint_angles


def test_incomplete_landmarks():
    analysis = FormAnalyzer(min_feedback_confidence=0.0).analyze(poses.truncated(poses.push_up_pose(), 20), 0.0)

    assert analysis.detected_exercise == ExerciseLabel.UNKNOWN
    assert analysis.confidence == 0.0
    assert analysis.feedback == (GENERIC_FEEDBACK,)
    assert analysis.joint_angles == {}


def test_low_confidence_is_gated_to_generic_feedback():
    analyzer = FormAnalyzer(min_feedback_confidence=0.8)

    climber = analyzer.analyze(poses.mountain_climber_pose(), 0.0)
    assert climber.detected_exercise == ExerciseLabel.MOUNTAIN_CLIMBER
    assert climber.feedback == (GENERIC_FEEDBACK,)

    squat = analyzer.analyze(poses.squat_pose(), 0.0)
    assert GENERIC_FEEDBACK not in squat.feedback


def test_to_dict():
    data = FormAnalyzer(min_feedback_confidence=0.0).analyze(poses.squat_pose(), 10.0).to_dict()

    assert data["detected_exercise"] == "squat"
    assert data["confidence"] == pytest.approx(0.9)
    assert data["feedback"][0] == {
        "type": "good",
        "title": "Good Back Position",
        "message": "Your spine is properly aligned during the movement",
    }
    assert len(data["landmarks"]) == 33
    assert data["landmarks"][0]["name"] == "nose"
    assert data["landmarks"][25]["id"] == 25
    assert data["joint_angles"]["left_knee"] == round(data["joint_angles"]["left_knee"], 1)
