"""
Entry points of the self-retry engine.

A function becomes self-retrying by asking for its retry context first::

    def fetch(self, url: str) -> bytes:
        retry = get_instance(self, url)
        if retry.run_current_method():
            return retry.result
        ...

The first (outer) call creates the context for its call site and runs the
loop, which re-invokes ``fetch``. Inside that nested activation the same
lookup finds the running context, ``run_current_method`` returns False and
the body executes. Exceptions from the body return to the loop, which
retries until success or exhaustion.
"""

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

import structlog

from selfretry.retry.context import FailureHandler, RetryContext
from selfretry.retry.diagnostics import log_failure
from selfretry.retry.frames import StackEntry, capture_stack, locate_request_frame
from selfretry.retry.keys import build_call_site_key, caller_line, describe_call_site
from selfretry.retry.resolver import resolve_method
from selfretry.retry.store import RetryContextStore, default_store

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_PACKAGE = __name__.split(".")[0]


def _internal_prefixes(store: RetryContextStore) -> tuple[str, ...]:
    return (_PACKAGE, *store.settings.SKIP_MODULE_PREFIXES)


def get_instance(target: Any, *arguments: Any, store: RetryContextStore | None = None) -> RetryContext:
    """
    Retry context for the function calling this.

    Args:
        target: Receiver the function runs on (``self``, the class for a
            classmethod, None for module functions and staticmethods)
        *arguments: The function's positional arguments, in order
        store: Store to use instead of the process default

    Returns:
        The context of this call site, created on first lookup. An invalid
        context (never runs) if the calling function cannot be resolved.
    """
    store = store if store is not None else default_store()
    stack = capture_stack()
    index = locate_request_frame(stack, _REQUEST_CODE, _CONVENIENCE_CODES)
    if index is None:
        log_failure(store.settings.LOG_ENABLED, "Retry handle requested outside a function")
        return RetryContext.invalid(store.settings.LOG_ENABLED)

    prefixes = _internal_prefixes(store)
    key = build_call_site_key(stack, index, prefixes, _DRIVER_CODES)
    context = store.get(key)
    if context is None:
        context = _create_context(stack, index, target, arguments, store)
        if context is None:
            log_failure(
                store.settings.LOG_ENABLED,
                "Failed to create retry context",
                call_site=stack[index].site,
                file=stack[index].filename,
                line=stack[index].lineno,
            )
            return RetryContext.invalid(store.settings.LOG_ENABLED)
        context.key = key
        store.put(key, context)
        logger.debug("Retry context created", key=key, retry_limit=context.retry_limit)
    return context


def simple_run_current_method(
    target: Any, *arguments: Any, store: RetryContextStore | None = None
) -> RetryContext:
    """``get_instance`` followed by ``run_current_method``; returns the context."""
    context = get_instance(target, *arguments, store=store)
    context.run_current_method()
    return context


def _create_context(
    stack: Sequence[StackEntry],
    index: int,
    target: Any,
    arguments: tuple[Any, ...],
    store: RetryContextStore,
) -> RetryContext | None:
    entry = stack[index]
    candidate = resolve_method(entry.module, entry.owner, entry.name, arguments)
    if candidate is None:
        return None
    method = candidate.bind(target)
    if method is None:
        logger.debug("Method resolved without a target to bind to", call_site=entry.site)
        return None
    return RetryContext(
        method,
        target,
        arguments,
        retry_limit=store.settings.DEFAULT_RETRY_LIMIT,
        description=describe_call_site(stack, index, _internal_prefixes(store)),
        called_line=caller_line(stack, index),
        code=candidate.code,
        store=store,
        log_enabled=store.settings.LOG_ENABLED,
    )


def run_callable(
    operation: Callable[[], T],
    *,
    retry_limit: int | None = None,
    failure_handler: FailureHandler | None = None,
    store: RetryContextStore | None = None,
) -> T:
    """
    Call ``operation`` until it returns, retrying on exceptions.

    Args:
        operation: Zero-argument callable
        retry_limit: Re-invocations after the first failure (settings default if None)
        failure_handler: Called with (context, error) after every failure
        store: Store whose settings supply the defaults

    Returns:
        The value of the first successful call

    Raises:
        Exception: The last call's exception once the budget is spent
    """
    settings = (store if store is not None else default_store()).settings
    stack = capture_stack()
    name = getattr(operation, "__qualname__", repr(operation))
    if len(stack) > 1:
        description = f"{name} is called on {stack[1]}"
    else:
        description = f"{name} is called"

    context = RetryContext(
        operation,
        retry_limit=settings.DEFAULT_RETRY_LIMIT if retry_limit is None else retry_limit,
        description=description,
        called_line=stack[1].lineno if len(stack) > 1 else None,
        code=getattr(operation, "__code__", None),
        log_enabled=settings.LOG_ENABLED,
    )
    context.set_failure_handler(failure_handler)
    context.run_current_method()
    return context.result


_REQUEST_CODE = get_instance.__code__
_CONVENIENCE_CODES = frozenset({simple_run_current_method.__code__})
# Frames of these entry points sit directly below a loop-driving activation
_DRIVER_CODES = frozenset(
    {
        RetryContext.run_current_method.__code__,
        RetryContext.get_result.__code__,
        simple_run_current_method.__code__,
    }
)
