"""Defensive parsing of JSON embedded in free-text LLM responses."""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sanchalaak.errors import MalformedResponse

LOG = logging.getLogger(__name__)

ARRAY = "array"
OBJECT = "object"

_BRACKETS = {ARRAY: ("[", "]"), OBJECT: ("{", "}")}
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class JsonParseResult:
    """Tagged outcome of parsing: either ``value`` or ``error`` is set."""

    value: Any = None
    error: Optional[MalformedResponse] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the parsed value or raise the stored MalformedResponse."""
        if self.error is not None:
            raise self.error
        return self.value


def _failure(message: str, raw_text: str) -> JsonParseResult:
    LOG.debug("Unparseable LLM response (%s): %.200r", message, raw_text)
    return JsonParseResult(error=MalformedResponse(message, raw_text=raw_text))


def extract_json_candidate(raw_text: str, expect: str) -> Optional[str]:
    """
    Locate the JSON text of the expected shape inside ``raw_text``.

    Fenced code blocks win over surrounding prose. When the text does not
    start with the expected bracket, the span from the first opening bracket
    to the last closing bracket is used.
    """
    opening, closing = _BRACKETS[expect]

    fence = _FENCE_RE.search(raw_text)
    text = fence.group(1) if fence else raw_text
    text = text.strip()

    if text.startswith(opening):
        return text

    start = text.find(opening)
    end = text.rfind(closing)
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def parse_json_response(raw_text: Any, expect: str = OBJECT) -> JsonParseResult:
    """
    Parse the first JSON array or object embedded in an LLM response.

    Args:
        raw_text: Text returned by the model
        expect: ``"array"`` or ``"object"``

    Returns:
        JsonParseResult; never raises for bad input text
    """
    if expect not in _BRACKETS:
        raise ValueError(f"expect must be 'array' or 'object', got {expect!r}")
    if not isinstance(raw_text, str) or not raw_text.strip():
        return _failure("Empty response", raw_text if isinstance(raw_text, str) else "")

    candidate = extract_json_candidate(raw_text, expect)
    if candidate is None:
        return _failure(f"No JSON {expect} found in response", raw_text)

    try:
        value = json.loads(candidate)
    except json.JSONDecodeError as e:
        return _failure(f"Invalid JSON: {e}", raw_text)

    expected_type = list if expect == ARRAY else dict
    if not isinstance(value, expected_type):
        return _failure(f"Expected a JSON {expect}, got {type(value).__name__}", raw_text)

    return JsonParseResult(value=value)


def validate_string_array(result: JsonParseResult, raw_text: str) -> JsonParseResult:
    """Require a parsed array to contain only strings."""
    if not result.ok:
        return result
    if not all(isinstance(item, str) for item in result.value):
        return _failure("Expected an array of strings", raw_text)
    return result


def validate_object_keys(result: JsonParseResult, raw_text: str,
                         required: Iterable[str],
                         one_of: Iterable[str] = ()) -> JsonParseResult:
    """
    Require a parsed object to carry every key in ``required`` and, when
    ``one_of`` is given, at least one of those keys.
    """
    if not result.ok:
        return result
    missing = [key for key in required if key not in result.value]
    if missing:
        return _failure(f"Response is missing keys: {', '.join(missing)}", raw_text)
    one_of = list(one_of)
    if one_of and not any(key in result.value for key in one_of):
        return _failure(f"Response needs one of: {', '.join(one_of)}", raw_text)
    return result
