"""
Recovery of JSON payloads from free-form model text.
"""

import json
import re
from typing import Any, Dict

from sketchforge.errors import DecodeError


_JSON_FENCE = re.compile(r"```json[ \t]*\r?\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[\w+.-]*[ \t]*\r?\n?(.*?)```", re.DOTALL)


class ResponseDecoder:
    """Extracts a JSON object from model output.

    Handles, in order: a fenced block tagged ``json``, any fenced block, and
    finally the bare text. Leading prose is skipped up to the first ``{`` and
    anything after the first complete JSON value is ignored.
    """

    def __init__(self):
        self._decoder = json.JSONDecoder()

    @staticmethod
    def extract_candidate(response_text: str) -> str:
        """
        Pick the part of the response most likely to hold the payload.

        Args:
            response_text: Raw model response.

        Returns:
            Content of the first JSON fence, else of the first fence, else the
            whole text.
        """
        match = _JSON_FENCE.search(response_text)
        if match is None:
            match = _ANY_FENCE.search(response_text)
        if match is not None:
            return match.group(1)
        return response_text

    def decode(self, response_text: str) -> Dict[str, Any]:
        """
        Parse the JSON object carried by a model response.

        Raises:
            DecodeError: If no ``{`` is present or the payload does not parse.
        """
        if not response_text or not response_text.strip():
            raise DecodeError("Model returned an empty response")

        candidate = self.extract_candidate(response_text).strip()
        if not candidate.startswith("{"):
            start = candidate.find("{")
            if start < 0:
                raise DecodeError("No JSON object found in model response")
            candidate = candidate[start:]

        try:
            value, _ = self._decoder.raw_decode(candidate)
        except json.JSONDecodeError as e:
            raise DecodeError(f"Model response is not valid JSON: {e}") from e
        return value
