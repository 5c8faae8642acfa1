"""
FORMCHECK Form Service - Errors

Failures that end a form-check session. "No pose in this frame" is not an
error: providers return None for it and the loop keeps going.
"""


class FormCheckError(Exception):
    """Base class for form-check session failures."""


class CaptureError(FormCheckError):
    """The capture device could not be opened or stopped delivering frames."""


class PermissionDenied(CaptureError):
    """Access to the capture device was refused."""


class DeviceUnavailable(CaptureError):
    """No capture device, or it delivered no frames."""


class ModelLoadError(FormCheckError):
    """The landmark provider failed to initialize."""


class ProviderTimeout(FormCheckError):
    """A landmark provider call exceeded the configured timeout."""
