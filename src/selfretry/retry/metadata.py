"""
Retry attempt history.

Frozen records kept by a RetryContext for every failed attempt and for
every failure handler that raised. They back diagnostics and let tests
observe contained handler errors without the engine escalating them.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class FailureRecord:
    """
    One failed invocation of a retried callable.

    Attributes:
        attempt: 1-indexed number of the failed invocation
        error_type: Qualified class name of the raised exception
        message: str() of the raised exception
        filename: Source file of the failing frame, when known
        lineno: Line of the failing frame, when known
        will_retry: Whether another attempt followed this failure
    """

    attempt: int
    error_type: str
    message: str
    filename: str | None = None
    lineno: int | None = None
    will_retry: bool = False

    def __post_init__(self) -> None:
        if self.attempt < 1:
            raise ValueError("attempt must be >= 1")


@dataclass(frozen=True)
class HandlerFailure:
    """A failure handler that raised while handling attempt ``attempt``."""

    attempt: int
    error: Exception
