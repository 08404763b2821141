"""Filesystem monitoring for artifacts.

The monitor module tracks sets of paths and reports when any of them changes
on disk, or when the monitor drops a registration because of capacity pressure
or expiry. Registrations are one-shot: once a registration has fired, the
owner must register again to keep monitoring.

- `PathMonitor` is the interface of the host provided path-change monitor.
- `PollingPathMonitor` implements it by periodically comparing file stamps.
- `DependencyWatch` binds registrations to cache keys.
"""

from .monitor import (
    FileStamp,
    MonitorReason,
    PathMonitor,
    PollingPathMonitor,
    WatchHandle,
)
from .watch import DependencyWatch

__all__ = [
    "FileStamp",
    "MonitorReason",
    "PathMonitor",
    "PollingPathMonitor",
    "WatchHandle",
    "DependencyWatch",
]
