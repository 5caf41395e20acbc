"""
Compresses a staged project into a zip archive.
"""

import logging
import os
import zipfile
from io import BytesIO
from pathlib import Path

from sketchforge.errors import FilesystemError
from sketchforge.project.tree import ProjectTree

logger = logging.getLogger(__name__)


ARCHIVE_COMMENT = b"Angular project generated by SketchForge"
COMPRESSION_LEVEL = 6
# Fixed entry timestamp keeps archives reproducible
ENTRY_DATE_TIME = (1980, 1, 1, 0, 0, 0)
UNIX_SYSTEM = 3


class Packager:
    """Turns a ProjectTree into archive bytes and removes the staging directory."""

    def _entry(self, arcname: str, is_dir: bool) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(arcname, date_time=ENTRY_DATE_TIME)
        info.create_system = UNIX_SYSTEM
        info.compress_type = zipfile.ZIP_DEFLATED
        if is_dir:
            info.external_attr = (0o40755 << 16) | 0x10
        else:
            info.external_attr = 0o100644 << 16
        return info

    def pack(self, tree: ProjectTree) -> bytes:
        """
        Archive every file and directory under the tree, depth-first.

        Entry names are POSIX paths prefixed with the project folder. The
        staging directory is removed whether or not packing succeeds.

        Raises:
            FilesystemError: If a staged file cannot be read.
        """
        buffer = BytesIO()
        try:
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=COMPRESSION_LEVEL) as archive:
                archive.comment = ARCHIVE_COMMENT
                for dirpath, dirnames, filenames in os.walk(tree.root):
                    dirnames.sort()
                    directory = Path(dirpath)
                    rel_dir = directory.relative_to(tree.base).as_posix()
                    archive.writestr(self._entry(rel_dir + "/", True), b"")
                    for filename in sorted(filenames):
                        file_path = directory / filename
                        archive.writestr(
                            self._entry(f"{rel_dir}/{filename}", False),
                            file_path.read_bytes(),
                            compresslevel=COMPRESSION_LEVEL,
                        )
        except OSError as e:
            raise FilesystemError(f"Could not package {tree.name}: {e}") from e
        finally:
            tree.cleanup()

        data = buffer.getvalue()
        logger.info("Packed %s into %d bytes", tree.name, len(data))
        return data
