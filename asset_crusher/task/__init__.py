"""Task tracking module for asset-crusher.

Watch events are handled on background tasks owned by the cache, and the
monitor polls on a long running task. This module tracks those tasks so the
owners can wait for pending work or shut down cleanly.
"""

from .context import task_service_context, get_task_service
from .service import TaskService

__all__ = ["get_task_service", "task_service_context", "TaskService"]
