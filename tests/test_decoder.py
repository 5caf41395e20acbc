"""
Tests for JSON recovery from model text.
"""

import pytest

from sketchforge.errors import DecodeError
from sketchforge.pipeline.decoder import ResponseDecoder


@pytest.fixture
def decoder():
    return ResponseDecoder()


def test_json_fence_with_surrounding_prose(decoder):
    text = 'Sure! Here is the result:\n```json\n{"elements": [{"type": "circle"}]}\n```\nLet me know {if} you need more.'

    assert decoder.decode(text) == {"elements": [{"type": "circle"}]}


def test_json_fence_preferred_over_other_fences(decoder):
    text = '```text\nnot this\n```\n```JSON\n{"picked": true}\n```'

    assert decoder.decode(text) == {"picked": True}


def test_untagged_fence(decoder):
    assert decoder.decode('```\n{"a": 1}\n```') == {"a": 1}


def test_leading_prose_without_fence(decoder):
    assert decoder.decode('The answer is {"a": [1, 2]}') == {"a": [1, 2]}


def test_trailing_text_after_object_is_ignored(decoder):
    assert decoder.decode('{"a": 1}\n\nHope this helps!') == {"a": 1}


def test_no_brace_fails(decoder):
    with pytest.raises(DecodeError):
        decoder.decode("I cannot help with that request.")


def test_malformed_json_fails(decoder):
    with pytest.raises(DecodeError):
        decoder.decode('```json\n{"a": [1, 2\n```')


def test_empty_response_fails(decoder):
    with pytest.raises(DecodeError):
        decoder.decode("   ")


def test_extract_candidate_without_fence_returns_text():
    assert ResponseDecoder.extract_candidate("plain") == "plain"
