"""
LangGraph orchestration of the sketch-to-elements extraction loop.

The loop escalates prompt variants and sampling temperature across a bounded
number of attempts and always terminates in either an accepted element list
or the fixed default element set.
"""

from sketchforge.orchestration.extraction import (
    DEFAULT_ELEMENTS,
    ExtractionController,
    assign_object_ids,
    detect_refusal,
    normalize_elements,
)
from sketchforge.orchestration.graph import create_extraction_graph, route_after_attempt
from sketchforge.orchestration.state import ExtractionState

__all__ = [
    "DEFAULT_ELEMENTS",
    "ExtractionController",
    "ExtractionState",
    "assign_object_ids",
    "create_extraction_graph",
    "detect_refusal",
    "normalize_elements",
    "route_after_attempt",
]
