"""
MediaPipe provider lifecycle tests (no model is loaded)
"""

import numpy as np

from form_service.models import MediaPipeLandmarkProvider


def test_detect_before_initialize_returns_none():
    provider = MediaPipeLandmarkProvider(model_path="missing.task")
    assert not provider.is_initialized
    assert provider.detect(np.zeros((8, 8, 3), dtype=np.uint8), 0) is None


def test_dispose_is_safe_repeatedly():
    provider = MediaPipeLandmarkProvider(model_path="missing.task")
    provider.dispose()
    provider.dispose()
    assert not provider.is_initialized


def test_settings_defaults():
    provider = MediaPipeLandmarkProvider(model_path="missing.task", delegate="gpu")
    assert provider.delegate == "GPU"
    assert 0.0 <= provider.min_detection_confidence <= 1.0
