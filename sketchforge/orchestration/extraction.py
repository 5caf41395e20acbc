"""
Sketch-to-elements extraction with bounded retry and deterministic fallback.

The controller escalates through three prompt variants with rising sampling
temperature. Upstream, decode, refusal and empty failures only ever end an
attempt; after the last attempt the fixed default element set is returned.
"""

import logging
import re
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sketchforge.config import Settings
from sketchforge.errors import DecodeError, EmptyResult, RefusalDetected, UpstreamError
from sketchforge.models import (
    AttemptOutcome,
    ExtractionAttempt,
    ExtractionResult,
    PromptVariant,
    shape_adapter,
)
from sketchforge.orchestration.graph import create_extraction_graph
from sketchforge.orchestration.state import ExtractionState
from sketchforge.pipeline.decoder import ResponseDecoder
from sketchforge.pipeline.prompts import EXTRACTION_PROMPTS

logger = logging.getLogger(__name__)


# English and Spanish phrasings of a declined request
REFUSAL_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\bsorry\b",
        r"\bunable to\b",
        r"\bcannot\b",
        r"\bcan[’']t\b",
        r"\bnot able to\b",
        r"\blo siento\b",
        r"\bno puedo\b",
        r"\bno es posible\b",
        r"\bdisculp",
        r"\bincapaz\b",
    )
]

_FENCED_BLOCK = re.compile(r"```.*?(?:```|$)", re.DOTALL)

TYPE_SYNONYMS = {
    "rect": "rectangle",
    "square": "rectangle",
    "ellipse": "circle",
    "textbox": "text",
    "i-text": "text",
    "label": "text",
    "polyline": "line",
}

DEFAULT_ELEMENTS: List[Dict[str, Any]] = [
    {
        "type": "rectangle",
        "objectId": "default-rectangle",
        "left": 100,
        "top": 100,
        "width": 300,
        "height": 200,
        "fill": "#e0e0e0",
        "stroke": "#333333",
    },
    {
        "type": "circle",
        "objectId": "default-circle",
        "left": 550,
        "top": 150,
        "radius": 80,
        "fill": "#cfd8dc",
        "stroke": "#333333",
    },
    {
        "type": "text",
        "objectId": "default-text",
        "left": 100,
        "top": 450,
        "text": "Sketch could not be interpreted",
        "fill": "#333333",
        "fontFamily": "Helvetica",
        "fontSize": 36,
        "fontWeight": "400",
    },
]


def _preview(text: str, max_len: int = 120) -> str:
    flat = " ".join((text or "").split())
    return flat if len(flat) <= max_len else flat[:max_len] + "..."


def default_elements() -> List[Any]:
    """Fresh copy of the fixed placeholder set (rectangle, circle, text)."""
    return [shape_adapter.validate_python(dict(payload)) for payload in DEFAULT_ELEMENTS]


def detect_refusal(response_text: str) -> bool:
    """
    Check the prose of a response for a refusal phrasing.

    Fenced blocks and the JSON body are ignored so that element text such as
    "Cannot connect" inside a payload is not mistaken for a refusal.
    """
    prose = _FENCED_BLOCK.sub(" ", response_text or "")
    start = prose.find("{")
    end = prose.rfind("}")
    if start >= 0 and end > start:
        prose = prose[:start] + " " + prose[end + 1:]
    return any(pattern.search(prose) for pattern in REFUSAL_PATTERNS)


def normalize_elements(payload: Any) -> List[Dict[str, Any]]:
    """
    Reduce a decoded payload to a list of raw element dicts.

    Prefers ``elements``, then ``shapes`` or ``objects``; otherwise collects
    every top-level value that carries a ``type`` field.
    """
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if not isinstance(payload, dict):
        return []

    for key in ("elements", "shapes", "objects"):
        value = payload.get(key)
        if isinstance(value, list):
            return [item for item in value if isinstance(item, dict)]

    if "type" in payload:
        return [payload]

    found: List[Dict[str, Any]] = []
    for value in payload.values():
        if isinstance(value, dict) and "type" in value:
            found.append(value)
        elif isinstance(value, list):
            found.extend(item for item in value if isinstance(item, dict) and "type" in item)
    return found


def coerce_elements(raw_elements: List[Dict[str, Any]]) -> List[Any]:
    """Validate raw dicts into typed elements, dropping ones that do not fit."""
    elements = []
    for raw in raw_elements:
        candidate = dict(raw)
        kind = str(candidate.get("type", "")).strip().lower()
        candidate["type"] = TYPE_SYNONYMS.get(kind, kind)
        try:
            elements.append(shape_adapter.validate_python(candidate))
        except ValidationError as e:
            logger.info("Dropping element of type %r: %s", kind, e.errors()[0].get("msg"))
    return elements


def assign_object_ids(elements: List[Any]) -> List[Any]:
    """
    Give every element a non-empty, unique objectId.

    Elements missing an id get a fresh one; on a duplicate, the first
    occurrence keeps the id and later ones are re-assigned.
    """
    seen = set()
    for element in elements:
        if not element.object_id or element.object_id in seen:
            element.object_id = str(uuid.uuid4())
        seen.add(element.object_id)
    return elements


class ExtractionController:
    """Runs the extraction state machine against a generative client."""

    def __init__(self, client, settings: Optional[Settings] = None, decoder: Optional[ResponseDecoder] = None):
        """
        Initialize the controller.

        Args:
            client: Anything with ``request(prompt_text, image_bytes, temperature, run_id=None)``
            settings: Retry configuration (attempt count and temperature step)
            decoder: Response decoder
        """
        self.client = client
        self.settings = settings or getattr(client, "settings", None) or Settings()
        self.decoder = decoder or ResponseDecoder()
        self.app = create_extraction_graph(self._attempt_node, self._succeeded_node, self._fallback_node)

    @property
    def max_attempts(self) -> int:
        return max(1, self.settings.max_attempts)

    def plan_attempt(self, index: int) -> ExtractionAttempt:
        """
        Choose the prompt variant and temperature for attempt ``index``.

        The first attempt is detailed, the last one minimal and any attempt in
        between simplified. Temperature is ``index * temperature_step``.
        """
        if index == 0:
            variant = PromptVariant.DETAILED
        elif index >= self.max_attempts - 1:
            variant = PromptVariant.MINIMAL
        else:
            variant = PromptVariant.SIMPLIFIED
        temperature = round(index * self.settings.temperature_step, 3)
        return ExtractionAttempt(index=index, variant=variant, temperature=temperature)

    def run_attempt(self, attempt: ExtractionAttempt, image_bytes: bytes, run_id: Optional[str] = None) -> List[Any]:
        """
        Execute one attempt, recording its outcome on ``attempt``.

        Returns:
            Validated elements, empty when the attempt failed.
        """
        try:
            response_text = self.client.request(
                EXTRACTION_PROMPTS[attempt.variant],
                image_bytes,
                attempt.temperature,
                run_id=run_id,
            )
            if detect_refusal(response_text):
                raise RefusalDetected(_preview(response_text))
            payload = self.decoder.decode(response_text)
            elements = coerce_elements(normalize_elements(payload))
            if not elements:
                raise EmptyResult("No usable elements in response")
        except UpstreamError as e:
            attempt.outcome, attempt.detail = AttemptOutcome.UPSTREAM_ERROR, str(e)
        except RefusalDetected as e:
            attempt.outcome, attempt.detail = AttemptOutcome.REFUSED, str(e)
        except DecodeError as e:
            attempt.outcome, attempt.detail = AttemptOutcome.PARSE_ERROR, str(e)
        except EmptyResult as e:
            attempt.outcome, attempt.detail = AttemptOutcome.EMPTY, str(e)
        else:
            attempt.outcome = AttemptOutcome.SUCCESS
            attempt.detail = f"{len(elements)} elements"
            return elements

        logger.warning(
            "Extraction attempt %d (%s, temperature=%.2f) failed: %s: %s",
            attempt.index + 1,
            attempt.variant.value,
            attempt.temperature,
            attempt.outcome.value,
            attempt.detail,
        )
        return []

    def _attempt_node(self, state: ExtractionState) -> Dict[str, Any]:
        index = state.get("attempt_index", 0)
        attempt = self.plan_attempt(index)
        elements = self.run_attempt(attempt, state["image_bytes"], state.get("run_id"))
        return {
            "attempt_index": index + 1,
            "attempts": list(state.get("attempts", [])) + [attempt],
            "elements": elements,
        }

    def _succeeded_node(self, state: ExtractionState) -> Dict[str, Any]:
        return {"elements": assign_object_ids(list(state["elements"])), "used_fallback": False}

    def _fallback_node(self, state: ExtractionState) -> Dict[str, Any]:
        logger.warning(
            "Extraction exhausted %d attempts, returning default elements",
            state.get("attempt_index", 0),
        )
        return {"elements": default_elements(), "used_fallback": True}

    def extract(self, image_bytes: bytes, run_id: Optional[str] = None) -> ExtractionResult:
        """
        Turn a sketch image into canvas elements.

        Never raises for upstream, decode, refusal or empty failures; those
        degrade to the default element set.

        Args:
            image_bytes: Raw sketch bytes
            run_id: Optional id grouping the LLM traces of this run

        Returns:
            ExtractionResult with elements and the attempt history
        """
        initial_state: ExtractionState = {
            "image_bytes": image_bytes,
            "run_id": run_id,
            "attempt_index": 0,
            "max_attempts": self.max_attempts,
            "attempts": [],
            "elements": [],
            "used_fallback": False,
        }
        final_state = self.app.invoke(
            initial_state,
            config={"recursion_limit": self.max_attempts + 5},
        )
        return ExtractionResult(
            elements=final_state["elements"],
            attempts=final_state.get("attempts", []),
            used_fallback=final_state.get("used_fallback", False),
        )

