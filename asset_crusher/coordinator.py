"""Cache of artifacts that rebuild themselves when their sources change.

The `CacheCoordinator` owns the map from cache key to `CacheEntry`. Adding an
artifact builds it, writes the outputs and watches the outputs and sources.
When the watch fires the coordinator either rebuilds the artifact (a path
changed) or simply watches it again (the monitor evicted or expired the
registration), so an artifact stays monitored until it is removed.

Watch events are delivered into a per-key channel drained by a single task,
so the events for one key are handled sequentially. Builds started by callers
may still overlap with those triggered by events. Every build therefore takes
a generation token and only installs its result if no newer build (or remove)
for the same key started in the meantime.
"""

import asyncio
import dataclasses
import itertools
import logging
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
from typing import DefaultDict

from mashumaro import DataClassDictMixin

from .artifact import ArtifactKind, ArtifactSpec, CacheEntry
from .exceptions import CapacityError, ConfigurationError, CrusherException
from .exceptions import ProcessingTimeoutError
from .monitor import DependencyWatch, MonitorReason, PathMonitor
from .processor import ContentProcessor, ProcessResult, default_processors
from .store import ArtifactStore
from .task import TaskService, get_task_service

__all__ = [
    "CacheCoordinator",
    "CoordinatorConfig",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class CoordinatorConfig(DataClassDictMixin):
    """Configuration for the CacheCoordinator."""

    max_entries: int = 256
    """Maximum number of artifacts in the cache."""

    timeout_seconds: float = 60.0
    """Maximum time to wait for processing an artifact."""

    slow_warning_seconds: float = 5.0
    """Processing time after which a warning is logged."""


class CacheCoordinator:
    """Builds artifacts and keeps them up to date with their sources."""

    def __init__(
        self,
        monitor: PathMonitor,
        config: CoordinatorConfig | None = None,
        store: ArtifactStore | None = None,
        processors: Mapping[ArtifactKind, ContentProcessor] | None = None,
        task_service: TaskService | None = None,
    ) -> None:
        """Initialize CacheCoordinator."""
        self._monitor = monitor
        self._config = config or CoordinatorConfig()
        self._watch = DependencyWatch(monitor)
        self._store = store or ArtifactStore()
        self._processors = processors or default_processors()
        self._task_service = task_service or get_task_service()
        self._entries: dict[str, CacheEntry] = {}
        # Latest generation started for each key, including in-flight adds
        self._generations: dict[str, int] = {}
        self._tokens = itertools.count(1)
        self._locks: DefaultDict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._channels: dict[str, asyncio.Queue[tuple[CacheEntry, MonitorReason]]] = {}
        self._workers: dict[str, asyncio.Task[None]] = {}

        self._max_entries = self._config.max_entries
        if monitor.capacity is not None and monitor.capacity < self._max_entries:
            # Watching more keys than the monitor holds would evict and
            # re-register watches forever.
            _LOGGER.debug("Limiting cache to monitor capacity %d", monitor.capacity)
            self._max_entries = monitor.capacity

    @property
    def watch(self) -> DependencyWatch:
        """Return the watch registry shared with other consumers of the monitor."""
        return self._watch

    def __len__(self) -> int:
        """Return the number of artifacts in the cache."""
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Return True if the key is in the cache."""
        return key in self._entries

    def get(self, key: str) -> CacheEntry | None:
        """Return the current entry for the key."""
        return self._entries.get(key)

    def keys(self) -> list[str]:
        """Return the keys of all artifacts in the cache."""
        return list(self._entries)

    def _next_generation(self, key: str) -> int:
        generation = next(self._tokens)
        self._generations[key] = generation
        return generation

    def _is_current(self, key: str, generation: int) -> bool:
        return self._generations.get(key) == generation

    async def add(self, spec: ArtifactSpec) -> CacheEntry | None:
        """Build the artifact and keep it up to date with its sources.

        Returns the installed entry, or None if the key was removed or added
        again while this build was in progress.

        Raises:
            CapacityError: If the cache is full.
            IoError: If a source can not be read or an output can not be written.
            InvalidInputError: If the sources can not be processed.
        """
        key = spec.cache_key
        if key not in self._generations and len(self._generations) >= self._max_entries:
            raise CapacityError(
                f"Unable to add {key}: cache is full ({self._max_entries} entries)"
            )
        generation = self._next_generation(key)
        _LOGGER.info("Adding %s (generation %d)", key, generation)
        try:
            return await self._build(key, spec, generation)
        except BaseException:
            if key not in self._entries and self._is_current(key, generation):
                del self._generations[key]
            raise

    def remove(self, key: str) -> None:
        """Stop monitoring the artifact and drop it from the cache.

        Any build of the key that is still in progress is discarded.
        """
        self._generations.pop(key, None)
        self._watch.unregister(key)
        if self._entries.pop(key, None) is not None:
            _LOGGER.info("Removed %s", key)
        self._release_lock(key)

    def _release_lock(self, key: str) -> None:
        """Drop the lock of a removed key once no build holds it."""
        lock = self._locks.get(key)
        if lock is not None and not lock.locked() and key not in self._generations:
            del self._locks[key]

    async def on_watch_event(
        self, key: str, entry: CacheEntry, reason: MonitorReason
    ) -> None:
        """Handle a fired watch for the entry.

        Failures are logged since there is no caller to report them to. The
        last good outputs stay in place. When the sources could not be
        processed the artifact is left unwatched, otherwise the watch is
        restored so the next change retries the build.
        """
        current = self._entries.get(key)
        if current is None or current.generation != entry.generation:
            _LOGGER.debug("Ignoring %s for %s, entry is no longer current", reason, key)
            return
        try:
            if reason == MonitorReason.CHANGED:
                generation = self._next_generation(key)
                _LOGGER.info("Regenerating %s (generation %d)", key, generation)
                await self._build(key, current.spec, generation)
            else:
                self._rewatch(key, current, reason)
        except CrusherException as err:
            _LOGGER.error("Failed to regenerate %s, artifact is stale: %s", key, err)
        except Exception:
            _LOGGER.exception("Unexpected error handling %s for %s", reason, key)

    def _rewatch(self, key: str, entry: CacheEntry, reason: MonitorReason) -> None:
        """Watch the unchanged artifact again.

        A build in progress replaces this watch when it installs, and events
        fired for the old entry in the meantime are ignored.
        """
        _LOGGER.debug("Watching %s again after %s", key, reason)
        self._install_watch(key, entry)

    def _install_watch(self, key: str, entry: CacheEntry) -> None:
        # Keep the original baseline so changes while unwatched are not lost
        baseline = entry.handle.baseline if entry.handle is not None else None
        handle = self._watch.register(
            entry.spec.watch_paths, key, entry, self._on_fired, baseline=baseline
        )
        self._entries[key] = dataclasses.replace(entry, handle=handle)

    async def _process(
        self, processor: ContentProcessor, spec: ArtifactSpec
    ) -> ProcessResult:
        """Run the processor, warning when slow and failing when too slow."""
        task = asyncio.ensure_future(processor.process(spec))
        warn_after = min(self._config.slow_warning_seconds, self._config.timeout_seconds)
        try:
            try:
                return await asyncio.wait_for(asyncio.shield(task), warn_after)
            except asyncio.TimeoutError:
                _LOGGER.warning(
                    "Processing %s is taking more than %.1fs",
                    spec.output_path,
                    warn_after,
                )
            try:
                return await asyncio.wait_for(
                    task, self._config.timeout_seconds - warn_after
                )
            except asyncio.TimeoutError as err:
                raise ProcessingTimeoutError(
                    f"Processing {spec.output_path} timed out after {self._config.timeout_seconds}s"
                ) from err
        except asyncio.CancelledError:
            task.cancel()
            raise

    async def _build(
        self, key: str, spec: ArtifactSpec, generation: int
    ) -> CacheEntry | None:
        """Process, write and watch the artifact unless superseded."""
        if (processor := self._processors.get(spec.kind)) is None:
            raise ConfigurationError(f"No processor for artifact kind {spec.kind}")

        # Stamps taken before reading so edits made during processing fire
        baseline = self._watch.snapshot(spec.source_paths)
        result = await self._process(processor, spec)

        try:
            async with self._locks[key]:
                if not self._is_current(key, generation):
                    _LOGGER.debug("Discarding generation %d of %s", generation, key)
                    return None
                # Our own writes must not be reported as a change
                self._watch.unregister(key)
                try:
                    hashes = await self._store.write(result)
                except BaseException:
                    self._restore_watch(key)
                    raise
                if not self._is_current(key, generation):
                    _LOGGER.debug(
                        "Generation %d of %s superseded while writing", generation, key
                    )
                    self._restore_watch(key)
                    return None

                baseline.update(self._watch.snapshot(spec.output_paths))
                entry = CacheEntry(
                    key=key, spec=spec, generation=generation, hashes=hashes
                )
                handle = self._watch.register(
                    spec.watch_paths, key, entry, self._on_fired, baseline=baseline
                )
                entry = dataclasses.replace(entry, handle=handle)
                self._entries[key] = entry
        finally:
            self._release_lock(key)

        _LOGGER.info("Built %s (generation %d)", key, generation)
        return entry

    def _restore_watch(self, key: str) -> None:
        """Watch the installed entry again after a build gave up its watch."""
        if (entry := self._entries.get(key)) is None or self._watch.is_watching(key):
            return
        _LOGGER.debug("Restoring watch of %s (generation %d)", key, entry.generation)
        self._install_watch(key, entry)

    def _on_fired(self, key: str, entry: CacheEntry, reason: MonitorReason) -> None:
        """Queue the event for the worker of the key."""
        queue = self._channels.setdefault(key, asyncio.Queue())
        queue.put_nowait((entry, reason))
        if key not in self._workers:
            self._workers[key] = self._task_service.create_task(
                self._drain(key, queue), name=f"crusher-events-{key}"
            )

    async def _drain(
        self, key: str, queue: asyncio.Queue[tuple[CacheEntry, MonitorReason]]
    ) -> None:
        """Handle queued events for the key one at a time."""
        try:
            while not queue.empty():
                entry, reason = queue.get_nowait()
                await self.on_watch_event(key, entry, reason)
        finally:
            self._workers.pop(key, None)
            if queue.empty() and self._channels.get(key) is queue:
                del self._channels[key]

    async def block_till_done(self) -> None:
        """Wait until all fired watches have been handled."""
        await self._task_service.block_till_done()

    async def close(self) -> None:
        """Remove all artifacts and stop handling watch events."""
        for key in list(self._entries):
            self.remove(key)
        workers = list(self._workers.values())
        for task in workers:
            task.cancel()
        if workers:
            await asyncio.gather(*workers, return_exceptions=True)
        self._channels.clear()
