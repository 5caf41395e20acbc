"""
Process-wide registry of import tasks.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, Optional

from sketchforge.errors import FilesystemError
from sketchforge.io.sketch_loader import ArtifactManager
from sketchforge.models import ImportTask, TaskStatus

logger = logging.getLogger(__name__)


class TaskStore:
    """
    In-memory task map mirrored to durable records on terminal transitions.

    The in-memory task is authoritative until it reaches a terminal state.
    Once its record is persisted it is evicted from memory and reads fall
    back to the record, so results survive restarts. Status changes go
    through compare_and_swap_status, which gives each task a single writer.
    """

    def __init__(self, artifacts: Optional[ArtifactManager] = None):
        self.artifacts = artifacts
        self._tasks: Dict[str, ImportTask] = {}
        self._lock = threading.Lock()

    def put(self, task: ImportTask):
        with self._lock:
            if task.id in self._tasks:
                raise ValueError(f"Task {task.id} already registered")
            self._tasks[task.id] = task.model_copy(deep=True)

    def get(self, task_id: str) -> Optional[ImportTask]:
        """Snapshot of a live task, else its persisted record, else None."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is not None:
                return task.model_copy(deep=True)
        if self.artifacts is None:
            return None
        return self.artifacts.load_record(task_id)

    def compare_and_swap_status(
        self,
        task_id: str,
        expected: TaskStatus,
        new: TaskStatus,
        **changes,
    ) -> bool:
        """
        Move a task from ``expected`` to ``new``, applying ``changes``.

        Returns:
            False if the task is unknown or not in ``expected``.

        Raises:
            FilesystemError: If a terminal record cannot be persisted; the
                task then stays in memory in its terminal state.
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.status != expected:
                return False
            updated = task.model_copy(update={**changes, "status": new, "updated_at": datetime.now()})
            self._tasks[task_id] = updated

        logger.info("Task %s: %s -> %s", task_id, expected.value, new.value)
        if new.is_terminal and self.artifacts is not None:
            try:
                self.artifacts.save_record(updated)
            except FilesystemError:
                logger.error("Task %s stays in memory, its record could not be saved", task_id)
                raise
            with self._lock:
                if self._tasks.get(task_id) is updated:
                    del self._tasks[task_id]
        return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
