"""
Sketch submission and result retrieval.

A submission is validated, registered as a pending task and handed to a
background worker; callers poll for status by task id.
"""

import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Optional, Union

from sketchforge.config import Settings
from sketchforge.errors import FilesystemError, TaskNotFoundError
from sketchforge.io.sketch_loader import ArtifactManager, SketchLoader
from sketchforge.models import ImportResult, ImportStatusView, ImportTask, TaskStatus
from sketchforge.orchestration.extraction import ExtractionController
from sketchforge.pipeline.client import GenerativeClient
from sketchforge.pipeline.prompts import EXTRACTION_SYSTEM_PROMPT
from sketchforge.rendering.preview_renderer import PreviewRenderer
from sketchforge.tasks.store import TaskStore

logger = logging.getLogger(__name__)


PROGRESS = {
    TaskStatus.PENDING: 10,
    TaskStatus.PROCESSING: 50,
    TaskStatus.COMPLETED: 100,
    TaskStatus.FAILED: 100,
}


class ImportService:
    """Accepts sketches and turns them into canvas elements out of band."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        controller: Optional[ExtractionController] = None,
        store: Optional[TaskStore] = None,
        loader: Optional[SketchLoader] = None,
        artifacts: Optional[ArtifactManager] = None,
        renderer: Optional[PreviewRenderer] = None,
    ):
        self.settings = settings or Settings.from_env()
        self.artifacts = artifacts or ArtifactManager(self.settings.data_dir)
        self.loader = loader or SketchLoader(
            max_bytes=self.settings.max_upload_bytes,
            allowed_extensions=self.settings.allowed_extensions,
        )
        if controller is None:
            client = GenerativeClient(
                settings=self.settings,
                component="extraction",
                system_prompt=EXTRACTION_SYSTEM_PROMPT,
            )
            controller = ExtractionController(client, settings=self.settings)
        self.controller = controller
        self.store = store or TaskStore(self.artifacts)
        self.renderer = renderer or PreviewRenderer()
        self._executor = ThreadPoolExecutor(
            max_workers=self.settings.import_workers,
            thread_name_prefix="sketch-import",
        )
        self._futures: Dict[str, Future] = {}

    def submit(self, file_path: Union[str, Path], user_id: str) -> str:
        """
        Accept a sketch and schedule its processing.

        Returns:
            Task id, immediately.

        Raises:
            SketchValidationError: If the file is rejected.
        """
        path = self.loader.validate_upload(file_path)
        task = ImportTask(id=uuid.uuid4().hex, user_id=user_id, source_path=str(path))
        self.store.put(task)
        future = self._executor.submit(self._run, task.id)
        self._futures[task.id] = future
        future.add_done_callback(lambda _: self._futures.pop(task.id, None))
        logger.info("Accepted sketch %s for user %s as task %s", path.name, user_id, task.id)
        return task.id

    def process(self, task: ImportTask) -> ImportResult:
        """Read, normalize, extract and render the preview for one task."""
        image_bytes = self.loader.normalize(self.loader.read_bytes(task.source_path))
        extraction = self.controller.extract(image_bytes, run_id=task.id)
        self.renderer.render_to_file(extraction.elements, self.artifacts.preview_path(task.id))
        return ImportResult(
            elements=extraction.elements,
            preview=self.artifacts.preview_reference(task.id),
            used_fallback=extraction.used_fallback,
        )

    def _run(self, task_id: str):
        if not self.store.compare_and_swap_status(task_id, TaskStatus.PENDING, TaskStatus.PROCESSING):
            logger.warning("Task %s is not pending, skipping", task_id)
            return
        task = self.store.get(task_id)

        try:
            result = self.process(task)
        except Exception as e:
            logger.exception("Task %s failed", task_id)
            self._finish(task_id, TaskStatus.FAILED, error=str(e) or type(e).__name__)
            return
        self._finish(task_id, TaskStatus.COMPLETED, result=result)

    def _finish(self, task_id: str, status: TaskStatus, **changes):
        try:
            self.store.compare_and_swap_status(task_id, TaskStatus.PROCESSING, status, **changes)
        except FilesystemError as e:
            logger.error("Task %s reached %s but was not persisted: %s", task_id, status.value, e)

    def get_status(self, task_id: str) -> ImportStatusView:
        """
        Current view of a task.

        Raises:
            TaskNotFoundError: If the id is neither live nor persisted.
        """
        task = self.store.get(task_id)
        if task is None:
            raise TaskNotFoundError(f"Unknown task: {task_id}")

        view = ImportStatusView(task_id=task.id, status=task.status, progress=PROGRESS[task.status])
        if task.status == TaskStatus.COMPLETED and task.result is not None:
            view.elements = [element.to_payload() for element in task.result.elements]
            view.preview = task.result.preview
        elif task.status == TaskStatus.FAILED:
            view.error = task.error
        return view

    def wait(self, task_id: str, timeout: Optional[float] = None) -> ImportStatusView:
        """
        Block until a task submitted here reaches a terminal state.

        Tasks that already finished, or were submitted elsewhere, return their
        current status right away.

        Raises:
            concurrent.futures.TimeoutError: If the task is still running after ``timeout``.
        """
        future = self._futures.get(task_id)
        if future is not None:
            future.result(timeout=timeout)
            self._futures.pop(task_id, None)
        return self.get_status(task_id)

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> "ImportService":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()
        return False
