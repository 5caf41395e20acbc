"""
State management for the extraction retry loop.

Defines ExtractionState as a TypedDict carried between the attempt,
succeeded and fallback nodes of the extraction graph.
"""

from typing import Any, List, Optional, TypedDict

from sketchforge.models import ExtractionAttempt


class ExtractionState(TypedDict, total=False):
    """
    State for one sketch-to-elements extraction run.

    All fields are optional (total=False) so nodes can return partial updates.
    """

    # Input
    image_bytes: bytes
    run_id: Optional[str]

    # Retry loop control
    attempt_index: int  # attempts already made
    max_attempts: int
    attempts: List[ExtractionAttempt]

    # Validated elements from the latest attempt (empty on failure)
    elements: List[Any]

    # Terminal output
    used_fallback: bool
