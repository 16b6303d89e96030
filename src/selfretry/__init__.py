"""
selfretry: functions that retry themselves.

A function asks for its retry context on entry; the engine works out from
the call stack which function is asking, binds it, and re-invokes it when it
raises, up to a configurable limit.

Architecture: stack-derived call-site keys + annotation-based overload
resolution + per-thread context store + bounded attempt loop
"""

from selfretry.logging_config import configure_logging
from selfretry.retry import (
    RetryContext,
    RetryContextStore,
    RetryStatus,
    get_instance,
    overloaded,
    run_callable,
    simple_run_current_method,
)

__version__ = "0.1.0"

__all__ = [
    "get_instance",
    "simple_run_current_method",
    "run_callable",
    "overloaded",
    "RetryContext",
    "RetryContextStore",
    "RetryStatus",
    "configure_logging",
]
