"""Helpers shared by the command line actions."""

from argparse import ArgumentParser
import pathlib

from asset_crusher.config import CrusherConfig
from asset_crusher.coordinator import CacheCoordinator
from asset_crusher.monitor import PollingPathMonitor
from asset_crusher.processor import default_processors

DEFAULT_CONFIG = "crusher.yaml"


def add_config_flags(args: ArgumentParser) -> None:
    """Add the flag selecting the configuration file."""
    args.add_argument(
        "--config",
        type=pathlib.Path,
        default=pathlib.Path(DEFAULT_CONFIG),
        help=f"Path to the configuration file (default: {DEFAULT_CONFIG})",
    )


def create_monitor(config: CrusherConfig) -> PollingPathMonitor:
    """Create the path monitor described by the configuration."""
    return PollingPathMonitor(
        interval=config.monitor.interval,
        capacity=config.monitor.capacity,
        expiry=config.monitor.expiry,
    )


def create_coordinator(
    config: CrusherConfig, monitor: PollingPathMonitor
) -> CacheCoordinator:
    """Create the artifact cache described by the configuration."""
    return CacheCoordinator(
        monitor,
        config=config.cache,
        processors=default_processors(config.query_key),
    )
