"""
Retry engine exceptions.

Only overload dispatch raises to user code. Resolution problems are caught
inside the engine and turned into an invalid retry context; attempt failures
are always propagated unchanged, never wrapped.
"""

from typing import Any


class SelfRetryError(Exception):
    """Base exception for errors raised by selfretry itself."""


class DeclaringTypeNotFound(SelfRetryError):
    """
    The namespace declaring a self-retrying function could not be loaded.

    Raised by the resolver when the module cannot be imported, when the
    owner class is missing from it, or when the function is defined inside
    another function (``<locals>`` in its qualified name).

    Attributes:
        module_name: Module the running function belongs to
        owner: Qualified name of the owner class ("" for module functions)
    """

    def __init__(self, module_name: str, owner: str, reason: str = "") -> None:
        self.module_name = module_name
        self.owner = owner
        self.reason = reason
        target = f"{module_name}.{owner}" if owner else module_name
        message = f"Cannot load declaring namespace {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class NoMatchingOverload(SelfRetryError, TypeError):
    """
    No registered variant of an overloaded function accepts the arguments.

    Subclasses TypeError, which is what Python raises for a call whose
    arguments do not fit a function's signature.
    """

    def __init__(self, qualname: str, arguments: tuple[Any, ...]) -> None:
        self.qualname = qualname
        self.arguments = arguments
        argument_types = ", ".join(
            "None" if value is None else type(value).__name__ for value in arguments
        )
        super().__init__(f"No variant of {qualname} matches ({argument_types})")
