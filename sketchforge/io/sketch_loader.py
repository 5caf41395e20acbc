"""
Utilities for loading, validating and normalizing sketch images, and for the
on-disk artifact area (previews and persisted task records).
"""

import base64
import binascii
import json
import logging
import re
from io import BytesIO
from pathlib import Path
from typing import Iterable, Optional, Union

from PIL import Image, UnidentifiedImageError

from sketchforge.errors import FilesystemError, SketchValidationError
from sketchforge.models import ImportTask

logger = logging.getLogger(__name__)

_TASK_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]+")

_MAGIC_MEDIA_TYPES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
)


class SketchLoader:
    """Loads, validates and normalizes sketch images."""

    def __init__(
        self,
        max_bytes: int = 5 * 1024 * 1024,
        allowed_extensions: Iterable[str] = (".jpg", ".jpeg", ".png", ".gif"),
        max_side: int = 2048,
    ):
        """
        Initialize sketch loader.

        Args:
            max_bytes: Upper bound for accepted sketch files.
            allowed_extensions: Accepted file extensions (lowercase, with dot).
            max_side: Longest side after normalization, in pixels.
        """
        self.max_bytes = max_bytes
        self.allowed_extensions = tuple(ext.lower() for ext in allowed_extensions)
        self.max_side = max_side

    def validate_upload(self, image_path: Union[str, Path]) -> Path:
        """
        Check a submitted sketch against the extension and size bounds.

        Raises:
            SketchValidationError: If the file is missing, empty, too large or
                has an unsupported extension.
        """
        image_path = Path(image_path)
        if image_path.suffix.lower() not in self.allowed_extensions:
            raise SketchValidationError(
                f"Unsupported sketch type '{image_path.suffix}'. "
                f"Allowed: {', '.join(self.allowed_extensions)}"
            )
        if not image_path.is_file():
            raise SketchValidationError(f"Sketch not found: {image_path}")

        size = image_path.stat().st_size
        if size == 0:
            raise SketchValidationError("Empty sketch file")
        if size > self.max_bytes:
            raise SketchValidationError(
                f"Sketch is {size:,} bytes; the limit is {self.max_bytes:,} bytes"
            )
        return image_path

    def read_bytes(self, image_path: Union[str, Path]) -> bytes:
        try:
            return Path(image_path).read_bytes()
        except OSError as e:
            raise FilesystemError(f"Could not read sketch {image_path}: {e}") from e

    @staticmethod
    def decode_canvas_image(canvas_image: Union[str, bytes]) -> bytes:
        """
        Turn a canvas snapshot into raw image bytes.

        Accepts raw bytes, a bare base64 string, or a ``data:`` URI whose
        prefix is stripped before decoding.
        """
        if isinstance(canvas_image, bytes):
            return canvas_image
        payload = canvas_image.strip()
        if "base64," in payload:
            payload = payload.split("base64,", 1)[1]
        try:
            return base64.b64decode(payload, validate=False)
        except (binascii.Error, ValueError) as e:
            raise SketchValidationError(f"Canvas image is not valid base64: {e}") from e

    @staticmethod
    def guess_media_type(image_bytes: bytes) -> str:
        """Sniff the media type from magic bytes, defaulting to PNG."""
        for magic, media_type in _MAGIC_MEDIA_TYPES:
            if image_bytes.startswith(magic):
                return media_type
        if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
            return "image/webp"
        return "image/png"

    def normalize(self, image_bytes: bytes) -> bytes:
        """
        Downscale an oversized sketch and re-encode it as PNG.

        Unreadable images are passed through unchanged so that the model, not
        the loader, decides what to make of them.
        """
        try:
            image = Image.open(BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError, SyntaxError) as e:
            logger.warning("Sketch is not a readable image, sending raw bytes: %s", e)
            return image_bytes

        if max(image.size) <= self.max_side and image.format == "PNG":
            return image_bytes

        image = image.convert("RGB")
        image.thumbnail((self.max_side, self.max_side), Image.Resampling.LANCZOS)
        buffer = BytesIO()
        image.save(buffer, format="PNG")
        return buffer.getvalue()

    @staticmethod
    def image_to_base64(image_bytes: bytes) -> str:
        return base64.b64encode(image_bytes).decode("utf-8")


class ArtifactManager:
    """Manages previews and persisted task records under the data directory."""

    def __init__(self, output_dir: Union[str, Path] = "outputs"):
        """
        Initialize artifact manager.

        Args:
            output_dir: Root directory for pipeline outputs.
        """
        self.output_dir = Path(output_dir)
        self.previews_dir = self.output_dir / "previews"
        self.records_dir = self.output_dir / "records"
        self.previews_dir.mkdir(parents=True, exist_ok=True)
        self.records_dir.mkdir(parents=True, exist_ok=True)

    def preview_path(self, task_id: str) -> Path:
        return self.previews_dir / f"preview-{task_id}.jpg"

    def preview_reference(self, task_id: str) -> str:
        """Reference handed to callers, relative to the data directory."""
        return f"previews/preview-{task_id}.jpg"

    def record_path(self, task_id: str) -> Path:
        return self.records_dir / f"{task_id}.json"

    def save_record(self, task: ImportTask) -> Path:
        """
        Persist a task record, content-addressed by task id.

        The record is written to a temporary file first and moved into place
        so readers never observe a partial document.
        """
        path = self.record_path(task.id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(
                json.dumps(task.model_dump(mode="json", by_alias=True, exclude_none=True), indent=2),
                encoding="utf-8",
            )
            tmp_path.replace(path)
        except OSError as e:
            raise FilesystemError(f"Could not persist task record {task.id}: {e}") from e
        return path

    def load_record(self, task_id: str) -> Optional[ImportTask]:
        if not _TASK_ID_PATTERN.fullmatch(task_id or ""):
            return None
        path = self.record_path(task_id)
        if not path.exists():
            return None
        return ImportTask.model_validate_json(path.read_text(encoding="utf-8"))
