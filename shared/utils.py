"""
FORMCHECK Shared Utilities

Logging setup, timing and the JSON envelopes used by REST and WebSocket
responses.
"""

import logging
import sys
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# ============================================
# Logging
# ============================================

def setup_logger(name: str = "formcheck", level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Return a logger writing formatted lines to stdout.

    Calling it again for the same name only updates the level.

    Usage:
        logger = setup_logger("formcheck.main", level="DEBUG")
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)
        # The root handler from basicConfig would print every line twice
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(level)

    return logger


@contextmanager
def log_duration(logger: logging.Logger, label: str, level: int = logging.DEBUG) -> Iterator[None]:
    """Log how long the wrapped block took, in milliseconds."""
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.log(level, f"{label} took {(time.perf_counter() - start) * 1000:.1f}ms")


# ============================================
# Response Envelopes
# ============================================

def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def success_response(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    """REST success envelope."""
    return {"success": True, "message": message, "data": data, "timestamp": utc_now()}


def error_response(error: str, error_code: Optional[str] = None, details: Optional[dict] = None) -> Dict[str, Any]:
    """REST error envelope."""
    return {
        "success": False,
        "error": error,
        "error_code": error_code,
        "details": details,
        "timestamp": utc_now(),
    }


def ws_message(message_type: str, **fields: Any) -> Dict[str, Any]:
    """WebSocket message: {"type": ..., **fields}."""
    return {"type": message_type, **fields}


def ws_error(message: str, error: Optional[Union[str, Exception]] = None) -> Dict[str, Any]:
    """WebSocket ERROR message; exceptions are reported by class name."""
    payload = ws_message("ERROR", message=message)
    if isinstance(error, Exception):
        payload["error"] = type(error).__name__
    elif error is not None:
        payload["error"] = error
    return payload
