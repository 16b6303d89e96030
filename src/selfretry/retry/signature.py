"""
Signature matching for same-name candidates.

Given the declared parameter types of several candidates and the runtime
argument values of a call, pick the best candidate:

1. **Zero arguments**: the first candidate
2. **Single candidate**: that candidate, whatever the runtime types
3. **Exact pass**: every non-None argument's type equals the declared type;
   when None arguments let several candidates through, the distance rules
   below decide among them
4. **Distance pass**: every non-None argument is an instance of the declared
   type, or promotes to it along the numeric tower (an int passed for a float
   costs one step past int itself); the candidate with the smallest total
   distance wins, declaration order breaking ties

``None`` arguments carry no type. In the exact pass they always match. In the
distance pass they are scored by how specific the candidate's declared type
is among all candidates at that position, but only when those declared types
form a single subclass chain; otherwise the position is free.

Declared types are normalised to tuples of classes (union members).
"""

import inspect
import types
import typing
from collections.abc import Callable, Iterable, Sequence
from typing import Any

DeclaredType = tuple[type, ...]

# PEP 484 numeric tower: (accepted class, extra steps) per declared class.
# Promotion only applies in the distance pass, never as an exact match.
_NUMERIC_PROMOTIONS: dict[type, tuple[tuple[type, int], ...]] = {
    float: ((int, 1),),
    complex: ((float, 1), (int, 2)),
}

_POSITIONAL_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def normalize_annotation(annotation: Any) -> DeclaredType:
    """
    Reduce a parameter annotation to the classes it accepts.

    Examples:
        >>> normalize_annotation(int | None)
        (<class 'int'>,)
        >>> normalize_annotation(list[str])
        (<class 'list'>,)
        >>> normalize_annotation(float)
        (<class 'float'>,)
        >>> normalize_annotation(inspect.Parameter.empty)
        (<class 'object'>,)
    """
    if annotation is inspect.Parameter.empty or annotation is Any:
        return (object,)
    if annotation is None or annotation is type(None):
        return (type(None),)
    if isinstance(annotation, typing.TypeVar):
        bound = annotation.__bound__
        return normalize_annotation(bound) if bound is not None else (object,)

    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members: list[type] = []
        for argument in typing.get_args(annotation):
            if argument is type(None):
                continue
            for member in normalize_annotation(argument):
                if member not in members:
                    members.append(member)
        return tuple(members) or (type(None),)
    if origin is typing.Annotated:
        return normalize_annotation(typing.get_args(annotation)[0])
    if origin is typing.Literal:
        literal_types: list[type] = []
        for value in typing.get_args(annotation):
            if type(value) not in literal_types:
                literal_types.append(type(value))
        return tuple(literal_types)
    if isinstance(origin, type):
        return (origin,)
    if isinstance(annotation, type):
        return (annotation,)
    # Unresolved forward references, NewType, etc.
    return (object,)


def _type_hints(function: Callable[..., Any]) -> dict[str, Any]:
    try:
        return typing.get_type_hints(function)
    except Exception:
        # Forward references that do not resolve: use what is literally there
        return dict(getattr(function, "__annotations__", {}))


def declared_parameter_types(
    function: Callable[..., Any],
    count: int,
    skip_first: bool = False,
) -> tuple[DeclaredType, ...] | None:
    """
    Declared types of the parameters that ``count`` positional arguments bind to.

    Args:
        function: Candidate callable
        count: Number of positional arguments of the call
        skip_first: Leave out the receiver (``self``/``cls``) parameter

    Returns:
        One DeclaredType per argument, or None if ``count`` positional
        arguments cannot be bound to the signature
    """
    try:
        signature = inspect.signature(function)
    except (TypeError, ValueError):
        return None
    parameters = list(signature.parameters.values())
    if skip_first:
        if not parameters or parameters[0].kind not in _POSITIONAL_KINDS:
            return None
        parameters = parameters[1:]

    hints = _type_hints(function)
    declared: list[DeclaredType] = []
    for parameter in parameters:
        annotation = hints.get(parameter.name, inspect.Parameter.empty)
        if isinstance(annotation, str):
            annotation = inspect.Parameter.empty
        if parameter.kind in _POSITIONAL_KINDS:
            if len(declared) < count:
                declared.append(normalize_annotation(annotation))
            elif parameter.default is inspect.Parameter.empty:
                return None
        elif parameter.kind is inspect.Parameter.VAR_POSITIONAL:
            while len(declared) < count:
                declared.append(normalize_annotation(annotation))
        elif parameter.kind is inspect.Parameter.KEYWORD_ONLY:
            if parameter.default is inspect.Parameter.empty:
                return None
    if len(declared) != count:
        return None
    return tuple(declared)


def _is_subclass(runtime_type: type, declared: type) -> bool:
    try:
        return issubclass(runtime_type, declared)
    except TypeError:
        # Non-runtime-checkable protocols and other exotic classes
        return False


def matches_exactly(runtime_type: type, declared: DeclaredType) -> bool:
    return runtime_type in declared


def inheritance_distance(runtime_type: type, declared: type) -> int | None:
    """
    Steps from ``runtime_type`` up to ``declared``, or None if unrelated.

    Real bases are measured by their MRO position. Virtual subclasses
    (ABC registration, ``__subclasshook__``) count one step past the deepest
    MRO class that still satisfies the check.
    """
    mro = runtime_type.__mro__
    if declared in mro:
        return mro.index(declared)
    if not _is_subclass(runtime_type, declared):
        return None
    deepest = 0
    for position, base in enumerate(mro):
        if _is_subclass(base, declared):
            deepest = position
    return deepest + 1


def promotion_distance(runtime_type: type, declared: type) -> int | None:
    """
    Distance of a numeric promotion, e.g. 1 for an int passed where float is declared.

    Examples:
        >>> promotion_distance(int, complex)
        2
        >>> promotion_distance(bool, float)
        2
        >>> promotion_distance(str, float) is None
        True
    """
    distances = []
    for source, steps in _NUMERIC_PROMOTIONS.get(declared, ()):
        distance = inheritance_distance(runtime_type, source)
        if distance is not None:
            distances.append(distance + steps)
    return min(distances) if distances else None


def parameter_distance(runtime_type: type, declared: DeclaredType) -> int | None:
    distances = []
    for member in declared:
        distance = inheritance_distance(runtime_type, member)
        if distance is None:
            distance = promotion_distance(runtime_type, member)
        if distance is not None:
            distances.append(distance)
    return min(distances) if distances else None


def rank_by_specificity(declared_types: Sequence[DeclaredType]) -> list[type] | None:
    """
    Order the distinct declared classes from most to least specific.

    Returns None when ranking cannot discriminate: a union is involved, fewer
    than two distinct classes exist, or the classes are not one subclass chain.
    """
    ranked: list[type] = []
    for declared in declared_types:
        if len(declared) != 1:
            return None
        if declared[0] not in ranked:
            ranked.append(declared[0])
    if len(ranked) < 2:
        return None
    ranked.sort(key=lambda cls: len(cls.__mro__), reverse=True)
    for specific, general in zip(ranked, ranked[1:]):
        if not _is_subclass(specific, general):
            return None
    return ranked


def select_signature(
    signatures: Sequence[tuple[DeclaredType, ...]],
    arguments: Sequence[Any],
) -> int | None:
    """
    Pick the best candidate for a call.

    Args:
        signatures: Declared types per candidate, in declaration order; every
            entry must have one DeclaredType per argument
        arguments: Runtime argument values

    Returns:
        Index into ``signatures`` of the selected candidate, or None
    """
    if not signatures:
        return None
    if not arguments or len(signatures) == 1:
        return 0

    runtime_types = [None if value is None else type(value) for value in arguments]

    exact = [
        index
        for index, declared in enumerate(signatures)
        if all(
            runtime_type is None or matches_exactly(runtime_type, declared_type)
            for runtime_type, declared_type in zip(runtime_types, declared)
        )
    ]
    if len(exact) == 1:
        return exact[0]
    # Several exact matches only happen through None arguments
    return _closest(signatures, runtime_types, exact or range(len(signatures)))


def _closest(
    signatures: Sequence[tuple[DeclaredType, ...]],
    runtime_types: Sequence[type | None],
    indices: Iterable[int],
) -> int | None:
    rankings = {
        position: rank_by_specificity([declared[position] for declared in signatures])
        for position, runtime_type in enumerate(runtime_types)
        if runtime_type is None
    }

    best: int | None = None
    best_distance = 0
    for index in indices:
        declared = signatures[index]
        total = 0
        for position, (runtime_type, declared_type) in enumerate(zip(runtime_types, declared)):
            if runtime_type is None:
                ranked = rankings[position]
                if ranked is not None:
                    total += ranked.index(declared_type[0])
                continue
            distance = parameter_distance(runtime_type, declared_type)
            if distance is None:
                break
            total += distance
        else:
            if best is None or total < best_distance:
                best, best_distance = index, total
    return best
