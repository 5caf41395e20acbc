"""
Staging directory for one generated project.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from typing import Dict, List

from sketchforge.errors import FilesystemError

logger = logging.getLogger(__name__)


class ProjectTree:
    """
    A project directory exclusively owned by one export run.

    Every tree lives under its own ``mkdtemp`` directory, so concurrent runs
    never share files. Paths passed to the accessors are POSIX-style and
    relative to the project root.
    """

    def __init__(self, base: Path, root: Path):
        self.base = base
        self.root = root
        self._cleaned = False

    @classmethod
    def create(cls, project_name: str) -> "ProjectTree":
        try:
            base = Path(tempfile.mkdtemp(prefix="sketchforge-"))
            root = base / project_name
            root.mkdir()
        except OSError as e:
            raise FilesystemError(f"Could not create staging directory: {e}") from e
        logger.debug("Staging project %s in %s", project_name, base)
        return cls(base, root)

    @property
    def name(self) -> str:
        return self.root.name

    def path(self, relative: str) -> Path:
        target = (self.root / relative).resolve()
        if target != self.root.resolve() and self.root.resolve() not in target.parents:
            raise FilesystemError(f"Path escapes project root: {relative}")
        return target

    def write_text(self, relative: str, content: str) -> Path:
        target = self.path(relative)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            raise FilesystemError(f"Could not write {relative}: {e}") from e
        return target

    def read_text(self, relative: str) -> str:
        try:
            return self.path(relative).read_text(encoding="utf-8")
        except OSError as e:
            raise FilesystemError(f"Could not read {relative}: {e}") from e

    def exists(self, relative: str) -> bool:
        return self.path(relative).exists()

    def remove(self, relative: str):
        target = self.path(relative)
        try:
            if target.is_file():
                target.unlink()
        except OSError as e:
            raise FilesystemError(f"Could not remove {relative}: {e}") from e

    def mkdir(self, relative: str) -> Path:
        target = self.path(relative)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(f"Could not create directory {relative}: {e}") from e
        return target

    def files(self) -> List[str]:
        """Relative POSIX paths of every file, sorted."""
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())

    def directories(self) -> List[str]:
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_dir())

    def snapshot(self) -> Dict[str, bytes]:
        """Map of relative path to file bytes."""
        return {rel: (self.root / rel).read_bytes() for rel in self.files()}

    def cleanup(self):
        """Remove the staging directory. Failures are logged, never raised."""
        if self._cleaned:
            return
        self._cleaned = True
        try:
            shutil.rmtree(self.base)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not remove staging directory %s: %s", self.base, e)

    def __enter__(self) -> "ProjectTree":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False
