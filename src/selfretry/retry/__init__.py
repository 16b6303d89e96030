"""
Self-retry engine.

Lets a function re-invoke itself after raising, without a retry loop in its
body. The function asks for its retry context; the engine identifies the
caller from the call stack, resolves and binds the callable, and drives a
bounded retry loop:

1. **Frame location**: find the frame that requested the context
2. **Call-site key**: stable per call site, distinct per recursion depth
3. **Signature resolution**: pick among same-name variants by argument types
4. **Per-thread store**: one live context per (thread, call site)
5. **Attempt loop**: retry with failure handler, re-raise on exhaustion

Main Components:
    - get_instance / simple_run_current_method: stack-derived contexts
    - run_callable: retry loop around an explicit callable
    - RetryContext: bound callable, arguments, budget and status
    - RetryContextStore: thread-scoped registry of live contexts
    - overloaded: declare same-name variants

Usage:
    >>> from selfretry.retry import get_instance
    >>> def load(path: str) -> str:
    ...     retry = get_instance(None, path)
    ...     if retry.run_current_method():
    ...         return retry.result
    ...     return read_flaky_share(path)
"""

from selfretry.retry.context import FailureHandler, RetryContext, RetryStatus
from selfretry.retry.engine import get_instance, run_callable, simple_run_current_method
from selfretry.retry.exceptions import DeclaringTypeNotFound, NoMatchingOverload, SelfRetryError
from selfretry.retry.metadata import FailureRecord, HandlerFailure
from selfretry.retry.overloads import OverloadedFunction, overloaded
from selfretry.retry.store import RetryContextStore, default_store

__all__ = [
    "get_instance",
    "simple_run_current_method",
    "run_callable",
    "RetryContext",
    "RetryStatus",
    "FailureHandler",
    "RetryContextStore",
    "default_store",
    "overloaded",
    "OverloadedFunction",
    "FailureRecord",
    "HandlerFailure",
    "SelfRetryError",
    "DeclaringTypeNotFound",
    "NoMatchingOverload",
]
