"""Binding of path monitor registrations to cache keys."""

import logging
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from asset_crusher.exceptions import InvalidInputError

from .monitor import FileStamp, MonitorReason, PathMonitor, WatchHandle

_LOGGER = logging.getLogger(__name__)

WatchCallback = Callable[[str, Any, MonitorReason], None]


class DependencyWatch:
    """Tracks at most one monitor registration per cache key.

    Registering a key that is already watched replaces the previous
    registration, and the callback of a replaced registration is never
    invoked.
    """

    def __init__(self, monitor: PathMonitor) -> None:
        """Initialize DependencyWatch."""
        self._monitor = monitor
        self._handles: dict[str, WatchHandle] = {}

    def __len__(self) -> int:
        """Return the number of watched keys."""
        return len(self._handles)

    def is_watching(self, key: str) -> bool:
        """Return True if the key has a live registration."""
        return key in self._handles

    def get_handle(self, key: str) -> WatchHandle | None:
        """Return the live registration for the key."""
        return self._handles.get(key)

    def snapshot(self, paths: Iterable[Path]) -> dict[Path, FileStamp]:
        """Return the current stamps of the paths, for use as a baseline."""
        return self._monitor.snapshot(paths)

    def register(
        self,
        paths: Iterable[Path],
        key: str,
        value: Any,
        callback: WatchCallback,
        baseline: Mapping[Path, FileStamp] | None = None,
    ) -> WatchHandle:
        """Watch the paths, invoking `callback(key, value, reason)` when the watch fires."""
        watched = set(paths)
        if not watched:
            raise InvalidInputError(f"No paths to watch for {key}")
        self.unregister(key)

        handle: WatchHandle | None = None

        def fired(reason: MonitorReason) -> None:
            if handle is None or self._handles.get(key) is not handle:
                _LOGGER.debug("Ignoring %s for replaced watch of %s", reason, key)
                return
            del self._handles[key]
            _LOGGER.debug("Watch for %s fired: %s", key, reason)
            try:
                callback(key, value, reason)
            except Exception:
                _LOGGER.exception("Watch callback failed for %s (%s)", key, reason)

        handle = self._monitor.register(watched, fired, baseline=baseline)
        self._handles[key] = handle
        return handle

    def unregister(self, key: str) -> bool:
        """Stop watching the key, returning True if it was watched."""
        if (handle := self._handles.pop(key, None)) is None:
            return False
        self._monitor.unregister(handle)
        return True

    def close(self) -> None:
        """Stop watching all keys."""
        for key in list(self._handles):
            self.unregister(key)
