"""
Full-project pipeline: canvas snapshot in, project archive out.
"""

import logging
import uuid
from typing import Optional, Union

from sketchforge.config import Settings
from sketchforge.errors import DecodeError, ExportError, UpstreamError
from sketchforge.io.sketch_loader import SketchLoader
from sketchforge.models import ExportResult, ProjectOptions
from sketchforge.pipeline.synthesis import SynthesisRequestor
from sketchforge.project.architecture import ArchitectureAdapter, detect_architecture
from sketchforge.project.merger import ArtifactMerger
from sketchforge.project.packager import Packager
from sketchforge.project.skeleton import SkeletonBuilder

logger = logging.getLogger(__name__)


class ProjectExporter:
    """Runs synthesis, skeleton, merge, adaptation and packaging in sequence."""

    def __init__(
        self,
        requestor: Optional[SynthesisRequestor] = None,
        settings: Optional[Settings] = None,
        skeleton_builder: Optional[SkeletonBuilder] = None,
        packager: Optional[Packager] = None,
    ):
        self.requestor = requestor or SynthesisRequestor(settings=settings)
        self.skeleton_builder = skeleton_builder or SkeletonBuilder()
        self.packager = packager or Packager()

    def export(
        self,
        canvas_image: Union[str, bytes],
        options: ProjectOptions,
        run_id: Optional[str] = None,
    ) -> ExportResult:
        """
        Generate a complete project archive from a canvas snapshot.

        Args:
            canvas_image: Raw bytes, bare base64 or a ``data:`` URI.
            options: Project options.
            run_id: Optional id grouping LLM traces (generated if omitted).

        Returns:
            ExportResult holding the archive bytes and adaptation warnings.

        Raises:
            ExportError: If synthesis fails; no archive is produced.
            FilesystemError: If staging fails; the staging tree is removed first.
        """
        run_id = run_id or f"export-{uuid.uuid4().hex[:12]}"
        image_bytes = SketchLoader.decode_canvas_image(canvas_image)

        try:
            bundle = self.requestor.synthesize(image_bytes, options, run_id=run_id)
        except (UpstreamError, DecodeError) as e:
            logger.error("Project synthesis failed for %s: %s", options.package_name, e)
            raise ExportError(f"Project generation failed: {e}") from e

        tree = self.skeleton_builder.build(options)
        try:
            architecture = detect_architecture(tree, options)
            merger = ArtifactMerger()
            merger.merge(tree, bundle, options)
            adapter = ArchitectureAdapter(architecture, options)
            adapter.adapt(tree, bundle)
            file_count = len(tree.files())
            archive = self.packager.pack(tree)
        finally:
            tree.cleanup()

        warnings = [str(warning) for warning in merger.warnings + adapter.warnings]
        logger.info(
            "Exported %s (%s, %d files, %d warnings)",
            options.package_name,
            architecture.kind.value,
            file_count,
            len(warnings),
        )
        return ExportResult(
            filename=f"{options.package_name}.zip",
            archive=archive,
            architecture=architecture,
            warnings=warnings,
            file_count=file_count,
        )
