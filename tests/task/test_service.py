"""Tests for the TaskServiceImpl."""

import asyncio
import logging
from typing import Any

import pytest

from asset_crusher.task import task_service_context, get_task_service
from asset_crusher.task.service import TaskServiceImpl


@pytest.fixture
def task_service() -> TaskServiceImpl:
    """Fixture for creating a TaskServiceImpl instance."""
    return TaskServiceImpl()


async def test_create_and_complete_task(task_service: TaskServiceImpl) -> None:
    """Test creating and completing a task."""

    async def build() -> Any:
        await asyncio.sleep(0.01)
        return "built"

    task = task_service.create_task(build(), name="build")
    assert task.get_name() == "build"
    assert len(task_service._active_tasks) == 1

    assert await task == "built"
    assert len(task_service._active_tasks) == 0


async def test_block_till_done_follows_new_tasks(
    task_service: TaskServiceImpl,
) -> None:
    """Test tasks created while blocking are waited on too."""
    finished: list[str] = []

    async def rebuild() -> None:
        await asyncio.sleep(0.01)
        finished.append("rebuild")

    async def event() -> None:
        await asyncio.sleep(0.01)
        task_service.create_task(rebuild())
        finished.append("event")

    task_service.create_task(event())
    await task_service.block_till_done()
    assert finished == ["event", "rebuild"]
    assert len(task_service._active_tasks) == 0


async def test_block_till_done_ignores_background(
    task_service: TaskServiceImpl,
) -> None:
    """Test background tasks do not block."""
    poll = task_service.create_background_task(asyncio.sleep(10), name="poll")
    assert len(task_service._active_tasks) == 0
    await task_service.block_till_done()
    assert not poll.done()
    await task_service.close()
    assert poll.cancelled()


async def test_task_failure_logged(
    task_service: TaskServiceImpl, caplog: pytest.LogCaptureFixture
) -> None:
    """Test a failed task is logged and no longer tracked."""

    async def failing() -> Any:
        await asyncio.sleep(0)
        raise ValueError("Test error")

    with caplog.at_level(logging.ERROR):
        task = task_service.create_task(failing(), name="failing")
        await task_service.block_till_done()

    with pytest.raises(ValueError, match="Test error"):
        task.result()
    assert "Task failing failed: Test error" in caplog.text
    assert len(task_service._active_tasks) == 0


async def test_task_cancellation(task_service: TaskServiceImpl) -> None:
    """Test a cancelled task is no longer tracked."""
    task = task_service.create_task(asyncio.sleep(10))
    task.cancel()
    await asyncio.sleep(0.01)
    assert task.cancelled()
    assert len(task_service._active_tasks) == 0


async def test_close(task_service: TaskServiceImpl) -> None:
    """Test closing cancels every tracked task."""
    tasks = [task_service.create_task(asyncio.sleep(10)) for _ in range(3)]
    await task_service.close()
    assert all(task.cancelled() for task in tasks)
    assert len(task_service._active_tasks) == 0


def test_task_service_context() -> None:
    """Test each context installs its own service."""
    with task_service_context() as task_service:
        service1 = get_task_service()
        assert service1 is task_service
        assert get_task_service() is service1

    provided = TaskServiceImpl()
    with task_service_context(provided) as task_service:
        assert task_service is provided
        assert get_task_service() is provided
        assert get_task_service() is not service1
