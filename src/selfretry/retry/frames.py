"""
Call stack capture and request-frame location.

The stack is snapshotted into immutable StackEntry records so that no frame
objects outlive the lookup. Index 0 is the innermost frame.
"""

import inspect
import os
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from types import CodeType, FrameType


@dataclass(frozen=True)
class StackEntry:
    """
    One frame of a captured call stack.

    Attributes:
        module: ``__name__`` of the module the frame executes in
        qualname: Qualified name of the running code (``Class.method``)
        filename: Source file of the running code
        lineno: Line currently executing in the frame
        code: Code object of the frame
    """

    module: str
    qualname: str
    filename: str
    lineno: int
    code: CodeType

    @classmethod
    def from_frame(cls, frame: FrameType, lineno: int | None = None) -> "StackEntry":
        code = frame.f_code
        if lineno is None:
            lineno = frame.f_lineno
        return cls(
            module=frame.f_globals.get("__name__", ""),
            qualname=code.co_qualname,
            filename=code.co_filename,
            lineno=lineno or 0,
            code=code,
        )

    @property
    def name(self) -> str:
        """Function name (last qualname component)."""
        return self.qualname.rpartition(".")[2]

    @property
    def owner(self) -> str:
        """Qualified name of the enclosing class, "" for module-level code."""
        return self.qualname.rpartition(".")[0]

    @property
    def declaring_type(self) -> str:
        if self.owner:
            return f"{self.module}.{self.owner}"
        return self.module

    @property
    def site(self) -> str:
        """``declaringType#methodName``, the base call-site key."""
        return f"{self.declaring_type}#{self.name}"

    def __str__(self) -> str:
        return f"{self.module}.{self.qualname} ({os.path.basename(self.filename)}:{self.lineno})"


def capture_stack(skip: int = 1) -> list[StackEntry]:
    """
    Snapshot the current call stack, innermost frame first.

    Args:
        skip: Number of innermost frames to leave out (1 drops capture_stack itself)

    Returns:
        Stack entries, empty when the interpreter offers no frame access
    """
    frame = inspect.currentframe()
    entries: list[StackEntry] = []
    try:
        for _ in range(skip):
            if frame is None:
                break
            frame = frame.f_back
        while frame is not None:
            entries.append(StackEntry.from_frame(frame))
            frame = frame.f_back
    finally:
        del frame
    return entries


def locate_request_frame(
    stack: Sequence[StackEntry],
    request_code: CodeType,
    convenience_codes: Collection[CodeType] = (),
) -> int | None:
    """
    Find the user frame that asked for a retry handle.

    Scans from the top of the stack for the handle-request entry point. A
    directly following convenience entry point frame is skipped as well; the
    frame after that belongs to the user.

    Args:
        stack: Captured stack, innermost first
        request_code: Code object of the handle-request entry point
        convenience_codes: Code objects of wrappers around the request entry point

    Returns:
        Index of the user frame, or None if the stack holds no such frame
    """
    for index, entry in enumerate(stack):
        if entry.code is not request_code:
            continue
        index += 1
        if index < len(stack) and stack[index].code in convenience_codes:
            index += 1
        if index < len(stack):
            return index
        return None
    return None


def is_internal_module(module: str, prefixes: Collection[str]) -> bool:
    """True if ``module`` is one of ``prefixes`` or a submodule of one."""
    return any(module == prefix or module.startswith(prefix + ".") for prefix in prefixes)
