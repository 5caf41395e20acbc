"""
Writes a generated artifact bundle into a skeleton tree.
"""

import logging
from typing import List

from sketchforge.errors import StructuralAdaptationWarning
from sketchforge.models import GeneratedArtifactBundle, ProjectOptions
from sketchforge.project.architecture import (
    APP_DIR,
    ROUTES_FILE,
    ROUTING_MODULE,
    SHELL_SOURCE,
    SHELL_TEMPLATE,
    shell_style_path,
)
from sketchforge.project.tree import ProjectTree

logger = logging.getLogger(__name__)


class ArtifactMerger:
    """
    Places every artifact of a bundle at its conventional path.

    Categories are processed in a fixed order (components, services, models,
    modules, routing, shell) so file writes are reproducible. Merging the same
    bundle into a fresh skeleton always yields the same tree.
    """

    def __init__(self):
        self.warnings: List[StructuralAdaptationWarning] = []

    def merge(self, tree: ProjectTree, bundle: GeneratedArtifactBundle, options: ProjectOptions) -> ProjectTree:
        ext = options.style_format.value

        for name, artifact in bundle.components.items():
            base = f"{APP_DIR}/components/{name}/{name}.component"
            tree.write_text(f"{base}.ts", artifact.source)
            tree.write_text(f"{base}.html", artifact.template)
            tree.write_text(f"{base}.{ext}", artifact.style)

        for name, source in bundle.services.items():
            tree.write_text(f"{APP_DIR}/services/{name}.service.ts", source)

        for name, source in bundle.models.items():
            tree.write_text(f"{APP_DIR}/models/{name}.model.ts", source)

        for name, source in bundle.modules.items():
            tree.write_text(f"{APP_DIR}/{name}.module.ts", source)

        if bundle.routing:
            target = next((path for path in (ROUTES_FILE, ROUTING_MODULE) if tree.exists(path)), None)
            if target is None:
                warning = StructuralAdaptationWarning(
                    f"{APP_DIR}/routing",
                    "routing is disabled; generated routing file ignored",
                )
                logger.warning("%s", warning)
                self.warnings.append(warning)
            else:
                tree.write_text(target, bundle.routing)

        if bundle.shell is not None:
            if bundle.shell.source:
                tree.write_text(SHELL_SOURCE, bundle.shell.source)
            if bundle.shell.template:
                tree.write_text(SHELL_TEMPLATE, bundle.shell.template)
            if bundle.shell.style:
                tree.write_text(shell_style_path(options), bundle.shell.style)

        logger.info(
            "Merged %d components, %d services, %d models and %d modules into %s",
            len(bundle.components),
            len(bundle.services),
            len(bundle.models),
            len(bundle.modules),
            tree.name,
        )
        return tree
