"""Path-change monitor that detects changes by polling file stamps."""

import asyncio
import itertools
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from asset_crusher.exceptions import InvalidInputError
from asset_crusher.task import TaskService, get_task_service

_LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0


class MonitorReason(StrEnum):
    """The reason a registration fired."""

    CHANGED = "Changed"
    """A monitored path was modified, created or deleted."""

    EVICTED = "Evicted"
    """The monitor dropped the registration to make room for another."""

    EXPIRED = "Expired"
    """The registration outlived the monitor expiry time."""


@dataclass(frozen=True)
class FileStamp:
    """The observed state of a path used to detect changes."""

    exists: bool
    mtime_ns: int = 0
    size: int = 0

    @classmethod
    def from_path(cls, path: Path) -> "FileStamp":
        """Return the current stamp of the path."""
        try:
            stat = path.stat()
        except FileNotFoundError:
            return cls(exists=False)
        except OSError as err:
            _LOGGER.debug("Unable to stat %s, treating as missing: %s", path, err)
            return cls(exists=False)
        return cls(exists=True, mtime_ns=stat.st_mtime_ns, size=stat.st_size)


@dataclass(frozen=True, eq=False)
class WatchHandle:
    """A live registration with the monitor."""

    id: int
    """Unique id of the registration."""

    paths: frozenset[Path]
    """The paths monitored by the registration."""

    baseline: Mapping[Path, FileStamp] = field(default_factory=dict)
    """The stamps that changes are detected against."""


MonitorCallback = Callable[[MonitorReason], None]


class PathMonitor(ABC):
    """Interface of a host provided path-change monitor."""

    @abstractmethod
    def register(
        self,
        paths: Iterable[Path],
        callback: MonitorCallback,
        baseline: Mapping[Path, FileStamp] | None = None,
    ) -> WatchHandle:
        """Monitor the paths and invoke the callback once when the registration fires.

        The baseline may supply previously observed stamps for some of the
        paths so that changes made before registration are still reported.
        The callback is always invoked asynchronously, never from within
        `register`.
        """

    @abstractmethod
    def unregister(self, handle: WatchHandle) -> None:
        """Stop monitoring, it is fine to unregister a handle more than once."""

    @property
    def capacity(self) -> int | None:
        """Return the maximum number of registrations, or None if unbounded."""
        return None

    def snapshot(self, paths: Iterable[Path]) -> dict[Path, FileStamp]:
        """Return the current stamps of the paths."""
        return {path: FileStamp.from_path(path) for path in paths}


@dataclass
class _Registration:
    handle: WatchHandle
    callback: MonitorCallback
    registered_at: float


class PollingPathMonitor(PathMonitor):
    """Path monitor that compares file stamps on every tick.

    The monitor mimics a host cache with bounded capacity: registering past
    `capacity` evicts the oldest registration, and registrations older than
    `expiry` seconds expire. Both are reported to the owner of the
    registration just like a change.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL,
        capacity: int | None = None,
        expiry: float | None = None,
        task_service: TaskService | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize PollingPathMonitor."""
        if capacity is not None and capacity < 1:
            raise InvalidInputError(f"Monitor capacity must be positive: {capacity}")
        self._interval = interval
        self._capacity = capacity
        self._expiry = expiry
        self._task_service = task_service or get_task_service()
        self._clock = clock
        self._ids = itertools.count(1)
        # Insertion order is registration age
        self._registrations: dict[int, _Registration] = {}
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def capacity(self) -> int | None:
        """Return the maximum number of registrations."""
        return self._capacity

    def __len__(self) -> int:
        """Return the number of live registrations."""
        return len(self._registrations)

    def is_registered(self, handle: WatchHandle) -> bool:
        """Return True if the handle has not fired or been unregistered."""
        return handle.id in self._registrations

    def register(
        self,
        paths: Iterable[Path],
        callback: MonitorCallback,
        baseline: Mapping[Path, FileStamp] | None = None,
    ) -> WatchHandle:
        """Monitor the paths and invoke the callback once when the registration fires."""
        watched = frozenset(paths)
        if not watched:
            raise InvalidInputError("At least one path is required for a watch")
        if self._capacity is not None:
            while len(self._registrations) >= self._capacity:
                oldest = next(iter(self._registrations.values()))
                _LOGGER.debug("Evicting watch %d at capacity", oldest.handle.id)
                self._fire(oldest, MonitorReason.EVICTED)

        stamps = self.snapshot(watched)
        if baseline:
            stamps.update({p: s for p, s in baseline.items() if p in watched})
        handle = WatchHandle(id=next(self._ids), paths=watched, baseline=stamps)
        self._registrations[handle.id] = _Registration(
            handle=handle, callback=callback, registered_at=self._clock()
        )
        _LOGGER.debug("Registered watch %d for %d paths", handle.id, len(watched))
        return handle

    def unregister(self, handle: WatchHandle) -> None:
        """Stop monitoring the paths of the handle."""
        if self._registrations.pop(handle.id, None) is not None:
            _LOGGER.debug("Unregistered watch %d", handle.id)

    def _fire(self, registration: _Registration, reason: MonitorReason) -> None:
        """Drop the registration and schedule its callback."""
        del self._registrations[registration.handle.id]
        asyncio.get_running_loop().call_soon(registration.callback, reason)

    def _changed(self, handle: WatchHandle) -> bool:
        for path in handle.paths:
            if FileStamp.from_path(path) != handle.baseline.get(path):
                _LOGGER.debug("Watch %d detected change to %s", handle.id, path)
                return True
        return False

    async def check(self) -> None:
        """Run a single monitoring tick."""
        now = self._clock()
        for registration in list(self._registrations.values()):
            if registration.handle.id not in self._registrations:
                continue
            changed = await asyncio.to_thread(self._changed, registration.handle)
            if registration.handle.id not in self._registrations:
                continue
            # Changes take precedence so that re-registering after an expiry
            # never hides an edit.
            if changed:
                self._fire(registration, MonitorReason.CHANGED)
            elif (
                self._expiry is not None
                and now - registration.registered_at >= self._expiry
            ):
                self._fire(registration, MonitorReason.EXPIRED)

    async def _poll(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.check()
            except Exception:
                _LOGGER.exception("Monitor tick failed")

    def start(self) -> None:
        """Start checking for changes in the background."""
        if self._poll_task is not None:
            raise RuntimeError("Monitor already started")
        _LOGGER.debug("Starting monitor with interval %ss", self._interval)
        self._poll_task = self._task_service.create_background_task(
            self._poll(), name="path-monitor"
        )

    async def close(self) -> None:
        """Stop the background task and drop all registrations."""
        if self._poll_task is not None:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        self._registrations.clear()
