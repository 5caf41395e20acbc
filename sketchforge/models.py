"""
Data models and schemas for the sketch interpretation and project generation pipeline.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


# Logical canvas all element coordinates are expressed on
CANVAS_SIZE = 1000


class ShapeType(str, Enum):
    """Drawable element kinds."""
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    TRIANGLE = "triangle"
    LINE = "line"
    TEXT = "text"
    PATH = "path"


class ShapeBase(BaseModel):
    """Fields shared by every drawable element."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    object_id: Optional[str] = Field(default=None, alias="objectId")
    fill: Optional[str] = None
    stroke: Optional[str] = None
    stroke_width: Optional[float] = Field(default=None, alias="strokeWidth")

    def to_payload(self) -> Dict[str, Any]:
        """Serialize using the canvas wire names (objectId, strokeWidth, ...)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class RectangleElement(ShapeBase):
    type: Literal["rectangle"] = "rectangle"
    left: float = 0.0
    top: float = 0.0
    width: float
    height: float


class CircleElement(ShapeBase):
    type: Literal["circle"] = "circle"
    left: float = 0.0
    top: float = 0.0
    radius: float


class TriangleElement(ShapeBase):
    type: Literal["triangle"] = "triangle"
    left: float = 0.0
    top: float = 0.0
    width: float
    height: float


class LineElement(ShapeBase):
    type: Literal["line"] = "line"
    points: List[float]

    @field_validator("points", mode="before")
    @classmethod
    def _flatten_points(cls, value: Any) -> Any:
        # Models emit [x1, y1, x2, y2], [[x1], [y1], ...] or [{"x": .., "y": ..}, ...]
        if not isinstance(value, (list, tuple)):
            return value
        flat: List[Any] = []
        for item in value:
            if isinstance(item, (list, tuple)):
                flat.extend(item)
            elif isinstance(item, dict) and "x" in item and "y" in item:
                flat.extend([item["x"], item["y"]])
            else:
                flat.append(item)
        return flat

    @field_validator("points")
    @classmethod
    def _require_pair(cls, value: List[float]) -> List[float]:
        if len(value) < 4:
            raise ValueError("a line needs at least two points")
        return value[:4]


class TextElement(ShapeBase):
    type: Literal["text"] = "text"
    left: float = 0.0
    top: float = 0.0
    text: str
    font_family: str = Field(default="Helvetica", alias="fontFamily")
    font_size: float = Field(default=36, alias="fontSize")
    font_weight: str = Field(default="400", alias="fontWeight")

    @field_validator("font_weight", mode="before")
    @classmethod
    def _weight_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(int(value))
        return value


class PathElement(ShapeBase):
    type: Literal["path"] = "path"
    path: str
    left: Optional[float] = None
    top: Optional[float] = None


ShapeElement = Annotated[
    Union[
        RectangleElement,
        CircleElement,
        TriangleElement,
        LineElement,
        TextElement,
        PathElement,
    ],
    Field(discriminator="type"),
]

shape_adapter: TypeAdapter = TypeAdapter(ShapeElement)


class PromptVariant(str, Enum):
    """Prompt strategies, in escalation order."""
    DETAILED = "detailed"
    SIMPLIFIED = "simplified"
    MINIMAL = "minimal"


class AttemptOutcome(str, Enum):
    """Classification of one extraction attempt."""
    SUCCESS = "success"
    REFUSED = "refused"
    PARSE_ERROR = "parse_error"
    UPSTREAM_ERROR = "upstream_error"
    EMPTY = "empty"


class ExtractionAttempt(BaseModel):
    """One pass of the extraction retry loop (never persisted)."""
    index: int
    variant: PromptVariant
    temperature: float
    outcome: Optional[AttemptOutcome] = None
    detail: str = ""


class ExtractionResult(BaseModel):
    """Elements produced by the extraction controller."""
    elements: List[ShapeElement] = Field(default_factory=list)
    attempts: List[ExtractionAttempt] = Field(default_factory=list)
    used_fallback: bool = False

    def element_payloads(self) -> List[Dict[str, Any]]:
        return [element.to_payload() for element in self.elements]


class StylingAddOn(str, Enum):
    """Styling add-on installed into the generated project."""
    NONE = "none"
    TAILWIND = "tailwind"  # utility framework
    MATERIAL = "material"  # component library


_STYLING_ALIASES = {
    "": StylingAddOn.NONE,
    "css": StylingAddOn.NONE,
    "utility-framework": StylingAddOn.TAILWIND,
    "utility": StylingAddOn.TAILWIND,
    "tailwindcss": StylingAddOn.TAILWIND,
    "component-library": StylingAddOn.MATERIAL,
    "angular-material": StylingAddOn.MATERIAL,
}


class StyleFormat(str, Enum):
    """Stylesheet dialect used by the generated project."""
    SCSS = "scss"
    CSS = "css"


class ProjectOptions(BaseModel):
    """User-selected options for a generated project."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = "sketch-app"
    title: Optional[str] = None
    version: str = "17.3"
    include_routing: bool = Field(default=True, alias="includeRouting")
    styling: StylingAddOn = Field(default=StylingAddOn.NONE, alias="cssFramework")
    style_format: StyleFormat = Field(default=StyleFormat.SCSS, alias="styleFormat")
    component_prefix: str = Field(default="app", alias="componentPrefix")

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("styling", mode="before")
    @classmethod
    def _styling_alias(cls, value: Any) -> Any:
        if value is None:
            return StylingAddOn.NONE
        if isinstance(value, str):
            return _STYLING_ALIASES.get(value.strip().lower(), value.strip().lower())
        return value

    @property
    def major_version(self) -> int:
        """Major framework version, 0 when undetermined."""
        match = re.match(r"\D*(\d+)", self.version or "")
        return int(match.group(1)) if match else 0

    @property
    def minor_version(self) -> int:
        match = re.match(r"\D*\d+\.(\d+)", self.version or "")
        return int(match.group(1)) if match else 0

    @property
    def package_name(self) -> str:
        """Filesystem and npm safe project name."""
        slug = re.sub(r"[^a-z0-9]+", "-", (self.name or "").lower()).strip("-")
        return slug or "sketch-app"

    @property
    def display_name(self) -> str:
        if self.title:
            return self.title
        return " ".join(word.capitalize() for word in self.package_name.split("-"))


class ComponentArtifact(BaseModel):
    """Source, template and stylesheet of one generated component."""
    source: str = ""
    template: str = ""
    style: str = ""


class GeneratedArtifactBundle(BaseModel):
    """Decoded result of one synthesis call; all keys are kebab-case."""
    components: Dict[str, ComponentArtifact] = Field(default_factory=dict)
    services: Dict[str, str] = Field(default_factory=dict)
    models: Dict[str, str] = Field(default_factory=dict)
    modules: Dict[str, str] = Field(default_factory=dict)
    routing: Optional[str] = None
    shell: Optional[ComponentArtifact] = None
    description: Optional[str] = None


class ArchitectureKind(str, Enum):
    """Mutually exclusive project architectures."""
    MODULE_BASED = "module"
    STANDALONE_BASED = "standalone"


class ArchitectureSignals(BaseModel):
    """Inputs the architecture decision is a pure function of."""
    version: int = 0
    shell_has_standalone_marker: bool = False
    has_app_config: bool = False
    has_routes_file: bool = False
    has_routing_module: bool = False


class ProjectArchitecture(BaseModel):
    """Architecture in force for one generation request."""
    model_config = ConfigDict(frozen=True)

    kind: ArchitectureKind
    version: int = 0

    @property
    def is_standalone(self) -> bool:
        return self.kind == ArchitectureKind.STANDALONE_BASED


class TaskStatus(str, Enum):
    """Import task lifecycle states."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


class ImportResult(BaseModel):
    """Completed import payload."""
    elements: List[ShapeElement] = Field(default_factory=list)
    preview: Optional[str] = None
    used_fallback: bool = False


class ImportTask(BaseModel):
    """One accepted sketch submission."""
    id: str
    user_id: str
    source_path: str
    status: TaskStatus = TaskStatus.PENDING
    result: Optional[ImportResult] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class ImportStatusView(BaseModel):
    """What a status-polling caller sees for a task id."""
    task_id: str
    status: TaskStatus
    progress: int
    elements: Optional[List[Dict[str, Any]]] = None
    preview: Optional[str] = None
    error: Optional[str] = None


class ExportResult(BaseModel):
    """Archive produced by the full-project pipeline."""
    filename: str
    archive: bytes
    architecture: ProjectArchitecture
    warnings: List[str] = Field(default_factory=list)
    file_count: int = 0
