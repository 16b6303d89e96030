"""
Resolution of the callable behind a running frame.

A frame only tells us a module, an owner qualname and a function name. The
resolver loads that namespace, lists the declared candidates of that name,
selects the best one for the call's arguments and binds it to the target.
"""

import importlib
import inspect
import sys
import types
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from selfretry.retry.exceptions import DeclaringTypeNotFound
from selfretry.retry.overloads import OverloadedFunction
from selfretry.retry.signature import declared_parameter_types, select_signature

logger = structlog.get_logger(__name__)


class CallableKind(str, Enum):
    """How a candidate is bound before it is invoked."""

    FUNCTION = "function"
    METHOD = "method"
    STATIC = "static"
    CLASS = "class"


@dataclass(frozen=True)
class Candidate:
    """
    A declared function that can be re-invoked by a retry context.

    Attributes:
        function: The declared function (taken out of static/classmethod,
            decorator wrappers kept so every attempt runs through them)
        kind: Binding rule for the function
        namespace: Class or module declaring the function
    """

    function: Callable[..., Any]
    kind: CallableKind
    namespace: Any

    @property
    def takes_receiver(self) -> bool:
        return self.kind in (CallableKind.METHOD, CallableKind.CLASS)

    @property
    def code(self) -> types.CodeType | None:
        """Code object the function's own frames run, beneath any decorator wrappers."""
        return getattr(inspect.unwrap(self.function), "__code__", None)

    def bind(self, target: Any) -> Callable[..., Any] | None:
        """
        Bind to ``target``; None when a method has no receiver to bind to.
        """
        if self.kind is CallableKind.METHOD:
            if target is None:
                return None
            return types.MethodType(self.function, target)
        if self.kind is CallableKind.CLASS:
            if target is None:
                owner = self.namespace
            elif isinstance(target, type):
                owner = target
            else:
                owner = type(target)
            return types.MethodType(self.function, owner)
        return self.function


def load_declaring_namespace(module_name: str, owner: str) -> Any:
    """
    Load the module or class declaring a function.

    Raises:
        DeclaringTypeNotFound: Module not importable, owner missing, or
            owner local to another function
    """
    module = sys.modules.get(module_name)
    if module is None:
        try:
            module = importlib.import_module(module_name)
        except ImportError as e:
            raise DeclaringTypeNotFound(module_name, owner, str(e)) from e

    namespace: Any = module
    if not owner:
        return namespace
    for part in owner.split("."):
        if part == "<locals>":
            raise DeclaringTypeNotFound(module_name, owner, "defined inside a function")
        try:
            namespace = getattr(namespace, part)
        except AttributeError as e:
            raise DeclaringTypeNotFound(module_name, owner, str(e)) from e
    return namespace


def declared_candidates(namespace: Any, name: str) -> list[Candidate]:
    """Candidates declared under ``name`` directly in ``namespace``, in declaration order."""
    try:
        attribute = vars(namespace).get(name)
    except TypeError:
        return []
    in_class = isinstance(namespace, type)
    plain_kind = CallableKind.METHOD if in_class else CallableKind.FUNCTION

    if isinstance(attribute, staticmethod):
        return [Candidate(attribute.__func__, CallableKind.STATIC, namespace)]
    if isinstance(attribute, classmethod):
        return [Candidate(attribute.__func__, CallableKind.CLASS, namespace)]
    if isinstance(attribute, OverloadedFunction):
        return [Candidate(variant, plain_kind, namespace) for variant in attribute.variants]
    if callable(attribute) and not isinstance(attribute, type):
        return [Candidate(attribute, plain_kind, namespace)]
    return []


def resolve_method(
    module_name: str,
    owner: str,
    name: str,
    arguments: Sequence[Any],
) -> Candidate | None:
    """
    Find the declared function best matching a call.

    Args:
        module_name: Module the running frame belongs to
        owner: Qualified name of the owner class ("" for module functions)
        name: Function name
        arguments: Runtime argument values (receiver excluded)

    Returns:
        The selected candidate, or None if nothing fits
    """
    try:
        namespace = load_declaring_namespace(module_name, owner)
    except DeclaringTypeNotFound as e:
        logger.debug("Declaring namespace not found", module=module_name, owner=owner, reason=e.reason)
        return None

    candidates: list[Candidate] = []
    signatures = []
    for candidate in declared_candidates(namespace, name):
        declared = declared_parameter_types(
            candidate.function, len(arguments), skip_first=candidate.takes_receiver
        )
        if declared is not None:
            candidates.append(candidate)
            signatures.append(declared)

    index = select_signature(signatures, arguments)
    if index is None:
        logger.debug(
            "No candidate matches call",
            module=module_name,
            owner=owner,
            function=name,
            candidates=len(candidates),
        )
        return None
    return candidates[index]
