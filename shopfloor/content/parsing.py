"""Helpers for turning model output into validated content objects."""

import json
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from ..errors import ContentGenerationError

T = TypeVar("T")


def extract_json_text(raw: str) -> str:
    """
    Pull the JSON payload out of a model reply.

    Handles:
    - bare JSON
    - JSON inside a ```json fenced block
    - JSON surrounded by chatter (first opening bracket to last closing one)
    """
    s = raw.strip()

    if s.startswith("```"):
        s = s.strip("`").strip()
        if s.lower().startswith("json"):
            s = s.split("\n", 1)[-1].strip()

    if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
        return s

    starts = [i for i in (s.find("{"), s.find("[")) if i != -1]
    if starts:
        first = min(starts)
        closer = "}" if s[first] == "{" else "]"
        last = s.rfind(closer)
        if last > first:
            return s[first : last + 1]

    # Let json.loads fail with a clear error
    return s


def parse_model(raw: str, model: type[T], error: type[Exception] = ContentGenerationError) -> T:
    """
    Decode `raw` and validate it as `model`.

    Raises `error` (ContentGenerationError by default) on any decode or
    validation failure.
    """
    text = extract_json_text(raw)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise error(f"Model reply is not JSON: {raw[:200]!r}") from e

    try:
        return TypeAdapter(model).validate_python(data)
    except ValidationError as e:
        raise error(f"Model reply failed validation: {e.error_count()} error(s)") from e
