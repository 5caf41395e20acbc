"""
Tests for the import service and task store.
"""

import json
import struct
import zlib

import pytest
from conftest import ScriptedClient

from sketchforge.errors import FilesystemError, SketchValidationError, TaskNotFoundError
from sketchforge.io.sketch_loader import ArtifactManager
from sketchforge.models import ImportTask, TaskStatus
from sketchforge.orchestration import DEFAULT_ELEMENTS, ExtractionController
from sketchforge.tasks.importer import ImportService
from sketchforge.tasks.store import TaskStore

REFUSAL = "Sorry, I cannot interpret this image."


def _png_chunk(kind, data):
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


def oversized_png():
    """A tiny PNG whose header claims 100000x100000 pixels."""
    header = struct.pack(">IIBBBBB", 100000, 100000, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b""))
        + _png_chunk(b"IEND", b"")
    )


class FailingController:
    def extract(self, image_bytes, run_id=None):
        raise RuntimeError("model backend exploded")


@pytest.fixture
def service_factory(settings):
    services = []

    def build(controller=None, responses=None):
        if controller is None:
            controller = ExtractionController(ScriptedClient(responses or [REFUSAL] * 3), settings=settings)
        service = ImportService(settings=settings, controller=controller)
        services.append(service)
        return service

    yield build
    for service in services:
        service.shutdown()


def test_corrupted_image_completes_with_default_elements(service_factory, settings, tmp_path):
    sketch = tmp_path / "broken.png"
    sketch.write_bytes(b"definitely not a png")
    service = service_factory()

    task_id = service.submit(sketch, "alice")
    view = service.wait(task_id, timeout=10)

    assert view.status == TaskStatus.COMPLETED
    assert view.progress == 100
    assert [element["objectId"] for element in view.elements] == [e["objectId"] for e in DEFAULT_ELEMENTS]
    assert view.preview == f"previews/preview-{task_id}.jpg"
    assert (settings.data_dir / view.preview).is_file()

    record = json.loads((settings.data_dir / "records" / f"{task_id}.json").read_text())
    assert record["status"] == "completed"
    assert record["user_id"] == "alice"
    assert len(service.store) == 0


def test_oversized_image_header_completes_with_default_elements(service_factory, tmp_path):
    sketch = tmp_path / "huge.png"
    sketch.write_bytes(oversized_png())
    service = service_factory()

    view = service.wait(service.submit(sketch, "alice"), timeout=10)

    assert view.status == TaskStatus.COMPLETED
    assert [element["objectId"] for element in view.elements] == [e["objectId"] for e in DEFAULT_ELEMENTS]


def test_finished_tasks_are_released(service_factory, tmp_path, sketch_bytes):
    sketch = tmp_path / "sketch.png"
    sketch.write_bytes(sketch_bytes)
    service = service_factory()

    task_id = service.submit(sketch, "alice")
    service.wait(task_id, timeout=10)

    assert task_id not in service._futures
    assert service.wait(task_id).status == TaskStatus.COMPLETED


def test_elements_from_model_are_returned(service_factory, tmp_path, sketch_bytes):
    sketch = tmp_path / "sketch.png"
    sketch.write_bytes(sketch_bytes)
    service = service_factory(responses=[
        '{"elements": [{"type": "rectangle", "left": 40, "top": 40, "width": 160, "height": 100}]}'
    ])

    view = service.wait(service.submit(sketch, "bob"), timeout=10)

    assert view.status == TaskStatus.COMPLETED
    assert len(view.elements) == 1
    assert view.elements[0]["type"] == "rectangle"
    assert view.elements[0]["objectId"]


def test_result_survives_restart(service_factory, settings, tmp_path, sketch_bytes):
    sketch = tmp_path / "sketch.png"
    sketch.write_bytes(sketch_bytes)
    first = service_factory()
    task_id = first.submit(sketch, "carol")
    first.wait(task_id, timeout=10)
    first.shutdown()

    view = service_factory().get_status(task_id)

    assert view.status == TaskStatus.COMPLETED
    assert [element["type"] for element in view.elements] == ["rectangle", "circle", "text"]


def test_controller_failure_marks_task_failed(service_factory, tmp_path, sketch_bytes):
    sketch = tmp_path / "sketch.jpg"
    sketch.write_bytes(sketch_bytes)
    service = service_factory(controller=FailingController())

    view = service.wait(service.submit(sketch, "dave"), timeout=10)

    assert view.status == TaskStatus.FAILED
    assert view.progress == 100
    assert view.error == "model backend exploded"
    assert view.elements is None


def test_rejected_uploads(service_factory, settings, tmp_path):
    service = service_factory()
    text_file = tmp_path / "notes.txt"
    text_file.write_text("hello")
    big = tmp_path / "big.png"
    big.write_bytes(b"x" * (settings.max_upload_bytes + 1))

    with pytest.raises(SketchValidationError):
        service.submit(text_file, "eve")
    with pytest.raises(SketchValidationError):
        service.submit(big, "eve")
    assert len(service.store) == 0


def test_pending_progress_and_unknown_id(service_factory):
    service = service_factory()
    service.store.put(ImportTask(id="queued", user_id="frank", source_path="/tmp/x.png"))

    view = service.get_status("queued")

    assert view.status == TaskStatus.PENDING
    assert view.progress == 10
    with pytest.raises(TaskNotFoundError):
        service.get_status("no-such-task")


def test_store_compare_and_swap(tmp_path):
    store = TaskStore(ArtifactManager(tmp_path))
    store.put(ImportTask(id="t1", user_id="u", source_path="/tmp/a.png"))

    assert not store.compare_and_swap_status("t1", TaskStatus.PROCESSING, TaskStatus.COMPLETED)
    assert store.compare_and_swap_status("t1", TaskStatus.PENDING, TaskStatus.PROCESSING)
    assert store.get("t1").status == TaskStatus.PROCESSING
    assert store.compare_and_swap_status("t1", TaskStatus.PROCESSING, TaskStatus.FAILED, error="boom")
    assert not store.compare_and_swap_status("t1", TaskStatus.FAILED, TaskStatus.COMPLETED)

    assert len(store) == 0
    persisted = store.get("t1")
    assert persisted.status == TaskStatus.FAILED
    assert persisted.error == "boom"


def test_store_rejects_duplicate_ids():
    store = TaskStore()
    task = ImportTask(id="dup", user_id="u", source_path="/tmp/a.png")
    store.put(task)

    with pytest.raises(ValueError):
        store.put(task)


def test_store_keeps_task_when_record_cannot_be_saved(tmp_path):
    class BrokenArtifacts(ArtifactManager):
        def save_record(self, task):
            raise FilesystemError("disk full")

    store = TaskStore(BrokenArtifacts(tmp_path))
    store.put(ImportTask(id="t2", user_id="u", source_path="/tmp/a.png", status=TaskStatus.PROCESSING))

    with pytest.raises(FilesystemError):
        store.compare_and_swap_status("t2", TaskStatus.PROCESSING, TaskStatus.COMPLETED)
    assert store.get("t2").status == TaskStatus.COMPLETED
