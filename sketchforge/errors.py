"""
Exception taxonomy for the generation and materialization pipeline.
"""


class SketchForgeError(Exception):
    """Base class for all pipeline errors."""


class UpstreamError(SketchForgeError):
    """Transport failure or non-success answer from the generative model."""


class DecodeError(SketchForgeError):
    """No JSON-shaped payload could be recovered from model text."""


class RefusalDetected(SketchForgeError):
    """The model declined to interpret the sketch."""


class EmptyResult(SketchForgeError):
    """Well-formed model output that carries no usable elements."""


class FilesystemError(SketchForgeError):
    """Staging directory I/O failure."""


class ExportError(SketchForgeError):
    """Full-project generation failed; no archive is produced."""


class SketchValidationError(SketchForgeError):
    """Rejected sketch submission (extension, size or empty file)."""


class TaskNotFoundError(SketchForgeError):
    """No live or persisted import task exists for the given id."""


class StructuralAdaptationWarning(UserWarning):
    """
    An expected text anchor was missing while adapting generated sources.

    Collected and logged by the adapters, never raised.
    """

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message
