"""Test fixtures for asset-crusher."""

from collections.abc import AsyncGenerator, Mapping

import pytest

from asset_crusher.artifact import ArtifactKind
from asset_crusher.coordinator import CacheCoordinator, CoordinatorConfig
from asset_crusher.monitor import PollingPathMonitor
from asset_crusher.processor import ContentProcessor, ScriptProcessor, SpriteProcessor
from asset_crusher.task.service import TaskServiceImpl


def fake_minify(content: str) -> str:
    """Minifier with a predictable result."""
    return "/*min*/" + content.replace("\n", "")


class FakeClock:
    """Clock for the monitor that only moves when told to."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Fixture for a fake monitor clock."""
    return FakeClock()


@pytest.fixture
async def task_service() -> AsyncGenerator[TaskServiceImpl, None]:
    """Fixture for creating a TaskServiceImpl instance."""
    service = TaskServiceImpl()
    yield service
    await service.close()


@pytest.fixture
def monitor_capacity() -> int | None:
    """Fixture to override the capacity of the monitor."""
    return None


@pytest.fixture
def monitor_expiry() -> float | None:
    """Fixture to override the expiry of the monitor."""
    return None


@pytest.fixture
async def monitor(
    task_service: TaskServiceImpl,
    clock: FakeClock,
    monitor_capacity: int | None,
    monitor_expiry: float | None,
) -> AsyncGenerator[PollingPathMonitor, None]:
    """Fixture for a monitor that is only checked when the test asks."""
    monitor = PollingPathMonitor(
        interval=0.01,
        capacity=monitor_capacity,
        expiry=monitor_expiry,
        task_service=task_service,
        clock=clock,
    )
    yield monitor
    await monitor.close()


@pytest.fixture
def processors() -> Mapping[ArtifactKind, ContentProcessor]:
    """Fixture for the processors used by the coordinator."""
    return {
        ArtifactKind.SCRIPT: ScriptProcessor(fake_minify),
        ArtifactKind.STYLESHEET: ScriptProcessor(fake_minify),
        ArtifactKind.SPRITE: SpriteProcessor(query_key="etag"),
    }


@pytest.fixture
def coordinator_config() -> CoordinatorConfig:
    """Fixture for the coordinator configuration."""
    return CoordinatorConfig()


@pytest.fixture
async def coordinator(
    monitor: PollingPathMonitor,
    coordinator_config: CoordinatorConfig,
    processors: Mapping[ArtifactKind, ContentProcessor],
    task_service: TaskServiceImpl,
) -> AsyncGenerator[CacheCoordinator, None]:
    """Fixture for the coordinator under test."""
    coordinator = CacheCoordinator(
        monitor,
        config=coordinator_config,
        processors=processors,
        task_service=task_service,
    )
    yield coordinator
    await coordinator.close()
