from __future__ import annotations

import json
import logging
import re
from typing import Any

from jsonschema import ValidationError, validate

from smartinsights.errors import MalformedResponseError, SchemaValidationError

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"^```(?P<tag>[A-Za-z0-9_+\-]*)[ \t]*\n?(?P<body>.*?)\s*```$", re.DOTALL)
_OPEN_FENCE_PATTERN = re.compile(r"^```[A-Za-z0-9_+\-]*[ \t]*\n?")


def strip_code_fences(text: str) -> str:
    """Remove a markdown code fence (```json ... ``` or ``` ... ```) wrapped around a payload."""
    stripped = text.strip()
    match = _FENCE_PATTERN.match(stripped)
    if match:
        return match.group("body").strip()
    # opening fence without a closing one
    return _OPEN_FENCE_PATTERN.sub("", stripped, count=1).strip()


def validate_schema(output: Any, schema: dict[str, Any]) -> None:
    try:
        validate(instance=output, schema=schema)
    except ValidationError as exc:
        raise SchemaValidationError(exc.message) from exc


def decode_json(text: str, schema: dict[str, Any] | None = None) -> Any:
    """
    Parse a model response as JSON.

    Fence wrapping is stripped first. When a schema is given the parsed value
    must conform to it. Any failure raises MalformedResponseError.
    """
    payload = strip_code_fences(text or "")
    if not payload:
        raise MalformedResponseError("Response contained no JSON payload.")
    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.warning("Failed to parse JSON response: %s", exc)
        raise MalformedResponseError(f"Response is not valid JSON: {exc.msg}") from exc
    if schema is not None:
        try:
            validate_schema(parsed, schema)
        except SchemaValidationError as exc:
            logger.warning("Response does not match the requested schema: %s", exc)
            raise
    return parsed
