"""
Retry context and its attempt loop.

A RetryContext owns one bound callable, the arguments for its next call, the
retry budget and the status of the loop. Status only moves forward::

    RUNNABLE -> RUNNING -> SUCCEEDED | EXHAUSTED | INTERRUPTED

INVALID marks a context whose callable could not be resolved; it never runs.
"""

from collections.abc import Callable
from enum import Enum
from types import CodeType
from typing import Any, TypeVar

import structlog

from selfretry.retry.diagnostics import failing_frame, log_failure
from selfretry.retry.metadata import FailureRecord, HandlerFailure
from selfretry.retry.store import RetryContextStore

logger = structlog.get_logger(__name__)

R = TypeVar("R")

FailureHandler = Callable[["RetryContext", Exception], None]

INVALID_DESCRIPTION = "Invalid call."


class RetryStatus(str, Enum):
    """Lifecycle of a retry context."""

    RUNNABLE = "runnable"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    INTERRUPTED = "interrupted"
    INVALID = "invalid"


class RetryContext:
    """
    Retryable state for one call site.

    The loop re-invokes ``method`` with the current arguments until it
    returns, or until ``retry_limit`` re-invocations after the first failure
    have failed too. The failure handler runs after every failed attempt,
    before the retry decision, and may replace arguments through
    ``update_arguments``. On exhaustion the last attempt's exception is
    re-raised unchanged.

    Attributes:
        key: Call-site key in the store (None for explicit callables)
        description: Provenance of the call, for diagnostics
        called_line: Line of the code that called the retried function
    """

    def __init__(
        self,
        method: Callable[..., Any] | None,
        target: Any = None,
        arguments: tuple[Any, ...] | list[Any] = (),
        *,
        retry_limit: int = 3,
        description: str = "",
        key: str | None = None,
        called_line: int | None = None,
        code: CodeType | None = None,
        store: RetryContextStore | None = None,
        log_enabled: bool = True,
        status: RetryStatus = RetryStatus.RUNNABLE,
    ) -> None:
        if retry_limit < 0:
            raise ValueError("retry_limit must be >= 0")
        self._method = method
        self._target = target
        self._arguments = list(arguments)
        self._retry_limit = retry_limit
        self._failure_handler: FailureHandler | None = None
        self._status = status
        self._result: Any = None
        self._has_next = False
        self._code = code
        self._store = store
        self._log_enabled = log_enabled
        self._failures: list[FailureRecord] = []
        self._handler_errors: list[HandlerFailure] = []
        self.key = key
        self.description = description
        self.called_line = called_line

    @classmethod
    def invalid(cls, log_enabled: bool = True) -> "RetryContext":
        """Context returned when no callable could be resolved for a call site."""
        return cls(
            None,
            description=INVALID_DESCRIPTION,
            log_enabled=log_enabled,
            status=RetryStatus.INVALID,
        )

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def run_current_method(self) -> bool:
        """
        Drive the attempt loop.

        Returns:
            True if an attempt succeeded. False for an invalid context, and
            for a context that is already running (a nested activation of the
            retried function then simply executes its body).

        Raises:
            Exception: The last attempt's exception once the budget is spent
            RecursionError: Never retried; ends the loop as INTERRUPTED, like
                any BaseException that is not an Exception
        """
        if self._status is RetryStatus.INVALID:
            log_failure(self._log_enabled, "Cannot run retry context", description=self.description)
            return False
        if self._status is not RetryStatus.RUNNABLE:
            return self._status is RetryStatus.SUCCEEDED

        self._status = RetryStatus.RUNNING
        failures = 0
        try:
            while True:
                try:
                    self._result = self._method(*self._arguments)
                except RecursionError:
                    raise
                except Exception as e:
                    failures += 1
                    if not self._handle_failure(e, failures):
                        self._status = RetryStatus.EXHAUSTED
                        raise
                    continue
                self._status = RetryStatus.SUCCEEDED
                return True
        finally:
            if self._status is RetryStatus.RUNNING:
                self._status = RetryStatus.INTERRUPTED
            self._evict()

    def _handle_failure(self, error: Exception, failures: int) -> bool:
        """Record, report and hand over one failed attempt; True if another follows."""
        self._has_next = failures <= self._retry_limit

        location = failing_frame(error, self._code)
        self._failures.append(
            FailureRecord(
                attempt=failures,
                error_type=type(error).__qualname__,
                message=str(error),
                filename=location.filename if location else None,
                lineno=location.lineno if location else None,
                will_retry=self._has_next,
            )
        )
        log_failure(
            self._log_enabled,
            "Retry attempt failed",
            description=self.description,
            declaring_type=location.declaring_type if location else None,
            method=location.name if location else None,
            file=location.filename if location else None,
            line=location.lineno if location else None,
            attempt=failures,
            retry_limit=self._retry_limit,
            error_type=type(error).__qualname__,
            error_message=str(error),
        )

        if self._failure_handler is not None:
            try:
                self._failure_handler(self, error)
            except Exception as handler_error:
                self._handler_errors.append(HandlerFailure(attempt=failures, error=handler_error))
                log_failure(
                    self._log_enabled,
                    "Failure handler raised",
                    description=self.description,
                    attempt=failures,
                    error_type=type(handler_error).__qualname__,
                    error_message=str(handler_error),
                )
        return self._has_next

    def _evict(self) -> None:
        if self._store is not None and self.key is not None:
            if self._store.remove(self.key, self):
                logger.debug("Retry context evicted", key=self.key, status=self._status.value)

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def update_arguments(self, *arguments: Any) -> "RetryContext":
        """
        Overwrite current arguments position by position.

        Only ``min(len(current), len(arguments))`` positions change; calling
        without arguments does nothing. Meant for use in a failure handler.
        """
        if self._status is RetryStatus.INVALID:
            return self
        for position, value in enumerate(arguments[: len(self._arguments)]):
            self._arguments[position] = value
        return self

    def set_retry_limit(self, retry_limit: int) -> "RetryContext":
        """Set the number of re-invocations; ignored once the loop has started."""
        if self._status is not RetryStatus.RUNNABLE:
            return self
        if retry_limit < 0:
            raise ValueError("retry_limit must be >= 0")
        self._retry_limit = retry_limit
        return self

    def set_failure_handler(self, handler: FailureHandler | None) -> "RetryContext":
        if self._status is not RetryStatus.INVALID:
            self._failure_handler = handler
        return self

    def get_result(self, expected_type: type[R] | None = None) -> R | Any:
        """
        Result of the successful attempt, running the loop first if needed.

        Args:
            expected_type: When given, results of another type read as None
        """
        if self._status is RetryStatus.RUNNABLE:
            self.run_current_method()
        if expected_type is not None and not isinstance(self._result, expected_type):
            return None
        return self._result

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def status(self) -> RetryStatus:
        return self._status

    @property
    def is_runnable(self) -> bool:
        return self._status is not RetryStatus.INVALID

    @property
    def is_running(self) -> bool:
        return self._status is RetryStatus.RUNNING

    @property
    def is_success(self) -> bool:
        return self._status is RetryStatus.SUCCEEDED

    @property
    def has_next(self) -> bool:
        """Whether the most recent failure left budget for another attempt."""
        return self._has_next

    @property
    def retry_limit(self) -> int:
        return self._retry_limit

    @property
    def failure_handler(self) -> FailureHandler | None:
        return self._failure_handler

    @property
    def method(self) -> Callable[..., Any] | None:
        return self._method

    @property
    def target(self) -> Any:
        return self._target

    @property
    def arguments(self) -> tuple[Any, ...]:
        return tuple(self._arguments)

    @property
    def result(self) -> Any:
        """Value returned by the most recent successful attempt."""
        return self._result

    @property
    def failures(self) -> tuple[FailureRecord, ...]:
        return tuple(self._failures)

    @property
    def handler_errors(self) -> tuple[HandlerFailure, ...]:
        return tuple(self._handler_errors)

    def __repr__(self) -> str:
        return f"<RetryContext {self.key or self.description!r} status={self._status.value}>"
