"""
FORMCHECK Shared Module

Logging and response helpers used by the app and the form service.
"""

from .utils import (
    error_response,
    log_duration,
    setup_logger,
    success_response,
    utc_now,
    ws_error,
    ws_message,
)

__all__ = [
    'error_response',
    'log_duration',
    'setup_logger',
    'success_response',
    'utc_now',
    'ws_error',
    'ws_message',
]
