"""
Same-name function variants.

Python keeps one object per name, so variants that should share a name are
collected by ``@overloaded`` and dispatched by runtime argument types::

    class Formatter:
        @overloaded
        def render(self, text: str, suffix: str) -> str: ...

        @render.register
        def render(self, text: str, suffix: object) -> str: ...

The resolver treats the registered variants as the candidates for a
self-retrying ``render`` and picks among them with the same rules.
"""

import functools
import types
from collections.abc import Callable, Sequence
from typing import Any

from selfretry.retry.exceptions import NoMatchingOverload
from selfretry.retry.signature import declared_parameter_types, select_signature


class OverloadedFunction:
    """Dispatcher over functions registered under one name."""

    def __init__(self, function: Callable[..., Any]) -> None:
        self._variants: list[Callable[..., Any]] = [function]
        self._is_method = False
        functools.update_wrapper(self, function)

    def register(self, function: Callable[..., Any]) -> "OverloadedFunction":
        """Add a variant; returns the dispatcher so the name keeps pointing at it."""
        self._variants.append(function)
        return self

    @property
    def variants(self) -> tuple[Callable[..., Any], ...]:
        return tuple(self._variants)

    @property
    def is_method(self) -> bool:
        return self._is_method

    def __set_name__(self, owner: type, name: str) -> None:
        self._is_method = True

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return types.MethodType(self, instance)

    def select(self, arguments: Sequence[Any]) -> Callable[..., Any] | None:
        """Variant chosen for positional ``arguments`` (receiver excluded)."""
        variants: list[Callable[..., Any]] = []
        signatures = []
        for variant in self._variants:
            declared = declared_parameter_types(variant, len(arguments), skip_first=self._is_method)
            if declared is not None:
                variants.append(variant)
                signatures.append(declared)
        index = select_signature(signatures, arguments)
        return None if index is None else variants[index]

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        receiver = args[:1] if self._is_method else ()
        positional = args[len(receiver):]
        variant = self.select(positional)
        if variant is None:
            raise NoMatchingOverload(self.__qualname__, positional)
        return variant(*args, **kwargs)

    def __repr__(self) -> str:
        return f"<overloaded {self.__qualname__} with {len(self._variants)} variants>"


def overloaded(function: Callable[..., Any]) -> OverloadedFunction:
    """Start a set of same-name variants with ``function`` as the first one."""
    return OverloadedFunction(function)
