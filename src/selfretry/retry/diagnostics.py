"""
Failure diagnostics sink.

The engine reports through ``log_failure`` only, so the logging toggle from
Settings is applied in one place.
"""

import traceback
from types import CodeType
from typing import Any

import structlog

from selfretry.retry.frames import StackEntry

logger = structlog.get_logger("selfretry")


def log_failure(enabled: bool, event: str, **context: Any) -> None:
    """Emit an error event with structured ``context`` when logging is enabled."""
    if enabled:
        logger.error(event, **context)


def failing_frame(error: BaseException, code: CodeType | None = None) -> StackEntry | None:
    """
    Innermost traceback frame of ``error`` that runs ``code``.

    Falls back to the innermost traceback frame when ``code`` is None or
    never appears in the traceback (e.g. the call failed on binding).
    """
    match = None
    innermost = None
    for frame, lineno in traceback.walk_tb(error.__traceback__):
        entry = StackEntry.from_frame(frame, lineno)
        innermost = entry
        if code is not None and frame.f_code is code:
            match = entry
    return match or innermost
