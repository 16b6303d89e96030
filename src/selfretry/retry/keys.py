"""
Call-site keys and provenance descriptions.

A key identifies one logical call site: repeated lookups from the same
activation share it, while recursive activations at different depths get
different keys because the source lines of the user frames between them and
the outermost activation are appended. Frames a retry loop passes through on
its way back into the function, such as decorator wrappers, never count.
"""

from collections.abc import Collection, Sequence
from types import CodeType

from selfretry.retry.frames import StackEntry, is_internal_module

_PACKAGE = __name__.split(".")[0]


def _is_driver(
    stack: Sequence[StackEntry],
    position: int,
    site: str,
    driver_codes: Collection[CodeType],
) -> bool:
    """An activation of ``site`` that is currently running the retry loop."""
    return (
        position > 0
        and stack[position].site == site
        and stack[position - 1].code in driver_codes
    )


def build_call_site_key(
    stack: Sequence[StackEntry],
    index: int,
    internal_prefixes: Collection[str],
    driver_codes: Collection[CodeType] = (),
) -> str:
    """
    Build the store key for the user frame at ``stack[index]``.

    Args:
        stack: Captured stack, innermost first
        index: Position of the user frame requesting a retry handle
        internal_prefixes: Modules whose frames never contribute a line
        driver_codes: Engine entry points that drive a retry loop

    Returns:
        ``declaringType#method`` optionally followed by ``:line`` segments
    """
    site = stack[index].site

    boundary = None
    for position in range(len(stack) - 1, index, -1):
        if stack[position].site == site:
            boundary = position
            break
    if boundary is None:
        return site

    # Outermost first: frames between a loop entry point and the next
    # activation (decorator wrappers) belong to that loop
    lines: list[str] = []
    loop_owned = False
    for position in range(boundary - 1, index, -1):
        entry = stack[position]
        if entry.code in driver_codes:
            loop_owned = True
            continue
        if entry.site == site:
            loop_owned = False
            if not _is_driver(stack, position, site, driver_codes):
                lines.append(str(entry.lineno))
            continue
        if is_internal_module(entry.module, (_PACKAGE,)):
            # Engine frames other than loop entry points, e.g. a failure handler call
            loop_owned = False
            continue
        if loop_owned or is_internal_module(entry.module, internal_prefixes):
            continue
        lines.append(str(entry.lineno))
    return ":".join([site, *reversed(lines)])


def describe_call_site(
    stack: Sequence[StackEntry],
    index: int,
    internal_prefixes: Collection[str],
) -> str:
    """Human-readable provenance, e.g. ``mod.Class.fetch is called on mod.main (mod.py:12)``."""
    current = stack[index]
    text = f"{current.declaring_type}.{current.name} is called"
    for position in range(index, len(stack) - 1):
        caller = stack[position + 1]
        if stack[position].site == current.site and not is_internal_module(
            caller.module, internal_prefixes
        ):
            return f"{text} on {caller}"
    return f"{text} of {current.filename}"


def caller_line(stack: Sequence[StackEntry], index: int) -> int | None:
    if index + 1 < len(stack):
        return stack[index + 1].lineno
    return None
