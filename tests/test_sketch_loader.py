"""
Tests for sketch loader and artifact manager.
"""

import base64
from io import BytesIO

import pytest
from PIL import Image

from sketchforge.errors import FilesystemError, SketchValidationError
from sketchforge.io.sketch_loader import ArtifactManager, SketchLoader
from sketchforge.models import ImportResult, ImportTask, TaskStatus, shape_adapter


@pytest.fixture
def sample_sketch(tmp_path):
    """Create a sample sketch image for testing."""
    image = Image.new("RGB", (640, 480), color="white")
    file_path = tmp_path / "sketch.png"
    image.save(file_path)
    return file_path


def test_validate_upload_accepts_png(sample_sketch):
    loader = SketchLoader()

    assert loader.validate_upload(sample_sketch) == sample_sketch


def test_validate_upload_rejects_extension(tmp_path):
    path = tmp_path / "sketch.bmp"
    path.write_bytes(b"BM....")

    with pytest.raises(SketchValidationError, match="Unsupported"):
        SketchLoader().validate_upload(path)


def test_validate_upload_rejects_empty_and_missing(tmp_path):
    empty = tmp_path / "empty.jpg"
    empty.write_bytes(b"")
    loader = SketchLoader()

    with pytest.raises(SketchValidationError, match="Empty"):
        loader.validate_upload(empty)
    with pytest.raises(SketchValidationError, match="not found"):
        loader.validate_upload(tmp_path / "missing.png")


def test_validate_upload_enforces_size_limit(sample_sketch):
    loader = SketchLoader(max_bytes=10)

    with pytest.raises(SketchValidationError, match="limit"):
        loader.validate_upload(sample_sketch)


def test_read_bytes_wraps_os_errors(tmp_path):
    with pytest.raises(FilesystemError):
        SketchLoader().read_bytes(tmp_path / "nope.png")


def test_decode_canvas_image_strips_data_uri(sample_sketch):
    raw = sample_sketch.read_bytes()
    encoded = base64.b64encode(raw).decode("ascii")

    assert SketchLoader.decode_canvas_image(f"data:image/png;base64,{encoded}") == raw
    assert SketchLoader.decode_canvas_image(encoded) == raw
    assert SketchLoader.decode_canvas_image(raw) == raw


def test_guess_media_type():
    assert SketchLoader.guess_media_type(b"\x89PNG\r\n\x1a\nrest") == "image/png"
    assert SketchLoader.guess_media_type(b"\xff\xd8\xff\xe0rest") == "image/jpeg"
    assert SketchLoader.guess_media_type(b"GIF89a...") == "image/gif"
    assert SketchLoader.guess_media_type(b"garbage") == "image/png"


def test_normalize_downscales_large_images():
    image = Image.new("RGB", (4000, 1000), color="white")
    buffer = BytesIO()
    image.save(buffer, format="JPEG")

    normalized = SketchLoader(max_side=1000).normalize(buffer.getvalue())

    result = Image.open(BytesIO(normalized))
    assert result.format == "PNG"
    assert result.size == (1000, 250)


def test_normalize_passes_corrupt_bytes_through():
    assert SketchLoader().normalize(b"not an image") == b"not an image"


def test_normalize_passes_decompression_bombs_through(monkeypatch):
    buffer = BytesIO()
    Image.new("RGB", (64, 64), "white").save(buffer, format="PNG")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 100)

    assert SketchLoader().normalize(buffer.getvalue()) == buffer.getvalue()


def test_artifact_manager_layout(tmp_path):
    manager = ArtifactManager(tmp_path)

    assert (tmp_path / "previews").is_dir()
    assert (tmp_path / "records").is_dir()
    assert manager.preview_path("abc") == tmp_path / "previews" / "preview-abc.jpg"
    assert manager.preview_reference("abc") == "previews/preview-abc.jpg"


def test_record_round_trip(tmp_path):
    manager = ArtifactManager(tmp_path)
    element = shape_adapter.validate_python({"type": "circle", "left": 1, "top": 2, "radius": 3, "objectId": "c1"})
    task = ImportTask(
        id="task-1",
        user_id="alice",
        source_path="/tmp/sketch.png",
        status=TaskStatus.COMPLETED,
        result=ImportResult(elements=[element], preview="previews/preview-task-1.jpg"),
    )

    path = manager.save_record(task)
    loaded = manager.load_record("task-1")

    assert path == tmp_path / "records" / "task-1.json"
    assert loaded.status == TaskStatus.COMPLETED
    assert loaded.user_id == "alice"
    assert loaded.result.elements[0].object_id == "c1"
    assert loaded.result.preview == "previews/preview-task-1.jpg"


def test_load_record_unknown_or_unsafe_id(tmp_path):
    manager = ArtifactManager(tmp_path)

    assert manager.load_record("missing") is None
    assert manager.load_record("../etc/passwd") is None
