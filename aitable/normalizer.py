# aitable/normalizer.py
"""
Recover the JSON payload from a raw LLM reply.

Models are told to answer with bare JSON but routinely wrap it in a
```json fence or surround it with prose. ``normalize_response`` digs the
payload out and decodes it.
"""
import json
import re
from typing import Any, List, Optional, Tuple, Union

JSONValue = Union[list, dict]

FENCE_RE = re.compile(r"```json\s*(.*?)\s*```", re.IGNORECASE | re.DOTALL)
OPENERS = "[{"

_decoder = json.JSONDecoder()


class NormalizationError(ValueError):
    """Base class for everything that can go wrong while recovering JSON."""

    condition = "normalization failed"


class NoStructuredDataError(NormalizationError):
    condition = "no structured data located"


class MalformedDataError(NormalizationError):
    condition = "structured data malformed"


class UnsupportedInputError(NormalizationError):
    condition = "unsupported input shape"


def _candidate_starts(text: str) -> List[int]:
    return [i for i, ch in enumerate(text) if ch in OPENERS]


def _balanced_end(text: str, start: int) -> Optional[int]:
    """Index just past the bracket that closes ``text[start]``, or None if it never closes."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "[{":
            depth += 1
        elif ch in "]}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def _decode_first_literal(text: str) -> Tuple[JSONValue, int, int]:
    """Decode the first top-level array/object literal found in ``text``.

    Openers nested inside a span that already failed to decode are never
    tried on their own, so a broken array cannot shrink to one of its rows.
    Returns the value together with the span it occupied.
    """
    starts = _candidate_starts(text)
    if not starts:
        raise NoStructuredDataError("No JSON array or object found in the response.")

    first_error: Optional[json.JSONDecodeError] = None
    skip_until = 0
    for start in starts:
        if start < skip_until:
            continue
        end = _balanced_end(text, start)
        if end is None:
            raise MalformedDataError(f"Response JSON starting at offset {start} is never closed (truncated reply?).")
        try:
            value, decoded_end = _decoder.raw_decode(text[:end], start)
        except json.JSONDecodeError as e:
            first_error = first_error or e
            skip_until = end
            continue
        return value, start, decoded_end

    raise MalformedDataError(f"Response JSON could not be decoded: {first_error}") from first_error


def _locate(raw: str) -> Tuple[JSONValue, int, int]:
    fence = FENCE_RE.search(raw)
    if fence:
        body = fence.group(1)
        try:
            value = json.loads(body)
        except json.JSONDecodeError as e:
            raise MalformedDataError(f"Fenced JSON block could not be decoded: {e}") from e
        if not isinstance(value, (list, dict)):
            raise MalformedDataError("Fenced JSON block is not an array or object.")
        return value, fence.start(), fence.end()
    return _decode_first_literal(raw)


def normalize_response(raw: Any) -> JSONValue:
    """
    Turn a model reply into a decoded JSON array or object.

    - an already decoded list/dict is returned unchanged
    - a ```json fenced block wins over any bare literal elsewhere in the text
    - otherwise the first top-level [...] or {...} literal is decoded
    """
    if isinstance(raw, (list, dict)):
        return raw
    if not isinstance(raw, str):
        raise UnsupportedInputError(f"Cannot normalize a value of type {type(raw).__name__}.")

    value, _, _ = _locate(raw)
    return value


def split_parsing_notes(raw: str) -> Tuple[JSONValue, str]:
    """Return the decoded payload and whatever prose surrounded it."""
    if not isinstance(raw, str):
        return normalize_response(raw), ""
    value, start, end = _locate(raw)
    notes = (raw[:start] + " " + raw[end:]).strip()
    return value, re.sub(r"\s+\n", "\n", notes)
