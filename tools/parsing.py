"""Extraction and validation of JSON payloads from raw model text.

Models asked for JSON frequently wrap it in prose ("Here is the result: {...}")
or Markdown code fences. extract_json tolerates both by slicing from the
first '{' to the last '}'. It is not a balanced-brace parser:
braces inside string values are fine, but a stray '}' after the real payload
produces invalid JSON and a ParseError.

Validation happens in two steps:
    1. validate_shape: required top-level keys are present
    2. pydantic model validation: types are correct

Only a validated payload model leaves this module.
"""

import json
import logging
import re
from typing import Any, Iterable, TypeVar

from pydantic import AliasChoices, BaseModel, ValidationError

from errors import EmptyResponseError, ParseError, SchemaError

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```(?:json)?", re.IGNORECASE)

PayloadT = TypeVar("PayloadT", bound=BaseModel)


def clean_json_text(raw: str) -> str:
    """Return the substring of raw that most likely holds the JSON object.

    Args:
        raw: Raw model response text

    Returns:
        Text from the first '{' to the last '}' inclusive, or the fence-stripped,
        trimmed text when no brace pair exists
    """
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1:
        return _FENCE_PATTERN.sub("", raw).strip()
    return raw[start:end + 1]


def extract_json(raw: str, stage: str = "") -> Any:
    """Extract and decode the JSON payload embedded in a model response.

    Args:
        raw: Raw model response text
        stage: Stage name for error attribution

    Returns:
        Decoded JSON value

    Raises:
        ParseError: If the extracted text is not valid JSON
    """
    candidate = clean_json_text(raw)
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        logger.debug("JSON decode failed | stage=%s error=%s text=%r", stage or "-", e, candidate[:200])
        raise ParseError(f"Failed to parse JSON payload: {e.msg}", stage=stage) from e


def validate_shape(
    payload: Any,
    required_fields: Iterable[str | tuple[str, ...]],
    stage: str = "",
) -> None:
    """Check that payload is a JSON object containing every required field.

    Args:
        payload: Decoded JSON value
        required_fields: Field names; a tuple lists accepted alternative names
        stage: Stage name for error attribution

    Raises:
        SchemaError: If payload is not an object or a required field is absent
    """
    if not isinstance(payload, dict):
        raise SchemaError(
            f"Expected a JSON object, got {type(payload).__name__}",
            stage=stage,
        )

    missing = []
    for field in required_fields:
        names = (field,) if isinstance(field, str) else field
        if not any(name in payload for name in names):
            missing.append(names[0])

    if missing:
        raise SchemaError(f"Missing required field(s): {', '.join(missing)}", stage=stage)


def required_fields(model: type[BaseModel]) -> list[tuple[str, ...]]:
    """List the required top-level JSON keys of a payload model.

    Each entry holds every accepted input name for one field (validation
    alias choices first, then the attribute name).
    """
    fields: list[tuple[str, ...]] = []
    for name, info in model.model_fields.items():
        if not info.is_required():
            continue
        names: list[str] = []
        alias = info.validation_alias
        if isinstance(alias, AliasChoices):
            names.extend(choice for choice in alias.choices if isinstance(choice, str))
        elif isinstance(alias, str):
            names.append(alias)
        if name not in names:
            names.append(name)
        fields.append(tuple(names))
    return fields


def parse_stage_response(text: str | None, model: type[PayloadT], stage: str = "") -> PayloadT:
    """Turn a raw stage response into a validated payload model.

    Args:
        text: Raw response text from the backend (may be None)
        model: Pydantic payload model for the stage
        stage: Stage name for error attribution

    Returns:
        Validated payload model instance

    Raises:
        EmptyResponseError: If the backend returned no text
        ParseError: If no JSON could be extracted
        SchemaError: If required fields are absent or have wrong types
    """
    if not text or not text.strip():
        raise EmptyResponseError("No response text from backend", stage=stage)

    payload = extract_json(text, stage=stage)
    validate_shape(payload, required_fields(model), stage=stage)

    try:
        return model.model_validate(payload)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise SchemaError(f"Invalid payload: {problems}", stage=stage) from e
