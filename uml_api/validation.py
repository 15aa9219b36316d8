"""Ordered request validation for the diagram and assistant endpoints.

Each endpoint checks for missing fields first, then types, then values, and
reports the first failure. A field counts as missing when it is absent or
falsy (empty string, zero, ``false`` or ``null``). Defaults only apply to
absent keys, so an explicit ``null`` for an optional field is a type error.
"""

from typing import Any

from .exceptions import InvalidInputError, MissingInputError
from .models import ExaminerQuery, GeneratorQuery, RenderRequest, ScaleRequest

RESPONSE_TYPES = ("SVG", "PNG")

_ABSENT = object()


def is_missing(value: Any) -> bool:
    """Whether a JSON value counts as not provided (absent, null, false, 0 or "")."""
    if value is None or isinstance(value, bool):
        return not value
    if isinstance(value, int | float):
        return value == 0
    if isinstance(value, str):
        return value == ""
    return False


def is_int(value: Any) -> bool:
    """Whether a JSON value is an integer (``100.0`` counts, booleans do not)."""
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        try:
            float(value)
        except OverflowError:
            return False
        return True
    return isinstance(value, float) and value.is_integer()


def _optional_int(payload: dict[str, Any], field: str, default: Any = _ABSENT) -> Any:
    value = payload.get(field, _ABSENT)
    if value is _ABSENT:
        return None if default is _ABSENT else default
    if not is_int(value):
        raise InvalidInputError(f"{field} must be an int if it is passed.")
    return int(value)


def _optional_bool(payload: dict[str, Any], field: str, default: bool = False) -> bool:
    value = payload.get(field, default)
    if not isinstance(value, bool):
        raise InvalidInputError(f"{field} must be a boolean (default {str(default).lower()}).")
    return value


def validate_render_request(payload: dict[str, Any]) -> RenderRequest:
    """Validate a ``/fetch-plant-uml`` body."""
    uml_code = payload.get("uml_code")
    response_type = payload.get("response_type")

    if is_missing(uml_code) or is_missing(response_type):
        raise MissingInputError(
            "Both uml_code and response_type are required as non-empty parameters."
        )
    if not isinstance(uml_code, str):
        raise InvalidInputError("uml_code must be a string.")
    if response_type not in RESPONSE_TYPES:
        raise InvalidInputError('response_type must be "SVG" or "PNG".')
    return_as_uri = _optional_bool(payload, "return_as_uri")

    return RenderRequest(
        uml_code=uml_code,
        response_type=response_type,
        return_as_uri=return_as_uri,
    )


def validate_scale_request(payload: dict[str, Any]) -> ScaleRequest:
    """Validate an ``/add-scale-to-uml`` body."""
    uml_code = payload.get("uml_code")

    if is_missing(uml_code):
        raise MissingInputError("uml_code is required as non-empty parameter.")
    if is_missing(payload.get("scale_width")) and is_missing(payload.get("scale_height")):
        raise MissingInputError(
            "At least one of scale_width and scale_height is required as a parameter."
        )
    if not isinstance(uml_code, str):
        raise InvalidInputError("uml_code must be a string.")
    scale_width = _optional_int(payload, "scale_width")
    scale_height = _optional_int(payload, "scale_height")
    max_only = _optional_bool(payload, "max")

    return ScaleRequest(
        uml_code=uml_code,
        scale_width=scale_width,
        scale_height=scale_height,
        max=max_only,
    )


def validate_generator_query(payload: dict[str, Any], default_timeout: int = 60000) -> GeneratorQuery:
    """Validate a ``/query-assistant-code-generator`` body."""
    uml_code = payload.get("uml_code")
    prompt = payload.get("prompt")

    if is_missing(prompt):
        raise MissingInputError("prompt is required as non-empty parameter.")
    if uml_code is not None and not isinstance(uml_code, str):
        raise InvalidInputError("uml_code must be a string if it is passed.")
    if not isinstance(prompt, str):
        raise InvalidInputError("prompt must be a string.")
    timeout = _optional_int(payload, "timeout", default_timeout)

    return GeneratorQuery(uml_code=uml_code, prompt=prompt, timeout=timeout)


def validate_examiner_query(payload: dict[str, Any], default_timeout: int = 10000) -> ExaminerQuery:
    """Validate a ``/query-assistant-code-examiner`` body."""
    uml_code = payload.get("uml_code")
    query = payload.get("query")

    if is_missing(uml_code):
        raise MissingInputError("uml_code is required as non-empty parameter.")
    if is_missing(query):
        raise MissingInputError("query is required as non-empty parameter.")
    if not isinstance(uml_code, str):
        raise InvalidInputError("uml_code must be a string.")
    if not isinstance(query, str):
        raise InvalidInputError("query must be a string.")
    timeout = _optional_int(payload, "timeout", default_timeout)

    return ExaminerQuery(uml_code=uml_code, query=query, timeout=timeout)
