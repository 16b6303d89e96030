"""
Per-thread store of live retry contexts.

Every thread sees its own mapping from call-site key to RetryContext, so a
context is never shared between threads. The mapping is created lazily on
first use in each thread.
"""

import threading
from typing import TYPE_CHECKING

from selfretry.config import Settings, settings as default_settings

if TYPE_CHECKING:
    from selfretry.retry.context import RetryContext


class RetryContextStore:
    """
    Thread-scoped registry of running retry contexts.

    Attributes:
        settings: Settings captured when the store was created; contexts
            created through this store take their defaults from it
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings if settings is not None else default_settings
        self._local = threading.local()

    def _contexts(self) -> "dict[str, RetryContext]":
        contexts = getattr(self._local, "contexts", None)
        if contexts is None:
            contexts = {}
            self._local.contexts = contexts
        return contexts

    def get(self, key: str) -> "RetryContext | None":
        return self._contexts().get(key)

    def put(self, key: str, context: "RetryContext") -> None:
        self._contexts()[key] = context

    def remove(self, key: str, context: "RetryContext") -> bool:
        """
        Evict ``context`` if it is the one stored under ``key``.

        Returns:
            True if an entry was removed
        """
        contexts = self._contexts()
        if contexts.get(key) is context:
            del contexts[key]
            return True
        return False

    def keys(self) -> list[str]:
        return list(self._contexts())

    def clear(self) -> None:
        self._contexts().clear()

    def __contains__(self, key: object) -> bool:
        return key in self._contexts()

    def __len__(self) -> int:
        return len(self._contexts())


_default_store: RetryContextStore | None = None
_default_store_lock = threading.Lock()


def default_store() -> RetryContextStore:
    """Process-wide store used when no explicit store is passed."""
    global _default_store
    if _default_store is None:
        with _default_store_lock:
            if _default_store is None:
                _default_store = RetryContextStore()
    return _default_store
