"""Tests for defensive JSON parsing of LLM responses."""

import json

import pytest

from sanchalaak.errors import MalformedResponse
from sanchalaak.tools.keyword_grading.response_parser import (
    ARRAY, OBJECT, parse_json_response, validate_object_keys, validate_string_array
)


EVALUATION = {
    "matched_keywords": ["API"],
    "missing_keywords": ["REST"],
    "rubric_scores": {"content_quality": 7},
    "overall_score": 70,
    "feedback": "Good",
}


@pytest.mark.parametrize("wrap", [
    lambda s: s,
    lambda s: f"```json\n{s}\n```",
    lambda s: f"```\n{s}\n```",
    lambda s: f"Sure! Here is the result:\n\n{s}\n\nHope this helps.",
    lambda s: f"Some notes first.\n```JSON\n{s}\n```\nTrailing prose.",
])
def test_object_found_with_and_without_wrapping(wrap):
    """The same object comes back however the model dresses it up."""
    text = json.dumps(EVALUATION)
    result = parse_json_response(wrap(text), OBJECT)
    assert result.ok
    assert result.value == EVALUATION


@pytest.mark.parametrize("wrap", [
    lambda s: s,
    lambda s: f"```json\n{s}\n```",
    lambda s: f"Keywords extracted: {s}",
])
def test_array_found_with_and_without_wrapping(wrap):
    keywords = ["gradient descent", "loss function", "overfitting"]
    result = parse_json_response(wrap(json.dumps(keywords)), ARRAY)
    assert result.ok
    assert result.value == keywords


def test_no_bracket_is_failure():
    raw = "I'm sorry, I cannot evaluate this submission."
    result = parse_json_response(raw, OBJECT)
    assert not result.ok
    assert isinstance(result.error, MalformedResponse)
    assert result.error.raw_text == raw


def test_invalid_json_is_failure():
    result = parse_json_response('{"feedback": "missing quote}', OBJECT)
    assert not result.ok
    assert "Invalid JSON" in str(result.error)


def test_array_inside_object_and_scalar():
    """The bracket search reaches an array nested in an object; a bare scalar fails."""
    result = parse_json_response('{"keywords": ["a", "b"]}', ARRAY)
    # The greedy span finds the inner array, which is still an array of strings
    assert result.ok
    assert result.value == ["a", "b"]

    result = parse_json_response('"just a string"', ARRAY)
    assert not result.ok


def test_array_expected_but_object_parsed():
    result = parse_json_response('[{"a": 1}]', OBJECT)
    assert result.ok
    assert result.value == {"a": 1}

    result = parse_json_response('[1, 2, 3]', OBJECT)
    assert not result.ok


@pytest.mark.parametrize("raw", ["", "   \n", None, 42])
def test_empty_or_non_text_input(raw):
    result = parse_json_response(raw, OBJECT)
    assert not result.ok


def test_unwrap_raises_malformed_response():
    result = parse_json_response("nothing here", ARRAY)
    with pytest.raises(MalformedResponse) as exc_info:
        result.unwrap()
    assert exc_info.value.raw_text == "nothing here"


def test_unwrap_returns_value():
    assert parse_json_response('["x"]', ARRAY).unwrap() == ["x"]


def test_bad_expect_argument():
    with pytest.raises(ValueError):
        parse_json_response("[]", "list")


def test_validate_string_array():
    raw = '["a", 2, null]'
    result = validate_string_array(parse_json_response(raw, ARRAY), raw)
    assert not result.ok
    assert "array of strings" in str(result.error)

    raw = '["a", "b"]'
    assert validate_string_array(parse_json_response(raw, ARRAY), raw).ok


def test_validate_object_keys():
    raw = json.dumps(EVALUATION)
    parsed = parse_json_response(raw, OBJECT)

    assert validate_object_keys(parsed, raw, required=["feedback"], one_of=["overall_score"]).ok

    missing = validate_object_keys(parsed, raw, required=["feedback", "strengths"])
    assert not missing.ok
    assert "strengths" in str(missing.error)

    no_score = validate_object_keys(parsed, raw, required=[], one_of=["total_score", "percentage"])
    assert not no_score.ok


def test_validators_pass_failures_through():
    raw = "garbage"
    failed = parse_json_response(raw, OBJECT)
    assert validate_object_keys(failed, raw, required=["x"]) is failed
