"""
Request Validator - shared input checks for the API routes

Validates:
- Numeric identifiers (path, query and body)
- Pagination parameters
- JSON request bodies
- Closed enumerations
"""
from typing import Any, Iterable, Optional, Tuple

from flask import current_app, request

from examguard.errors import ValidationError


def is_int(value: Any) -> bool:
    """True for real integers (bool is not an integer here)"""
    return isinstance(value, int) and not isinstance(value, bool)


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def parse_id(value: Any, code: str = "INVALID_ID", label: str = "ID") -> int:
    """
    Parse an integer identifier from a path segment, query arg or body field.

    Raises:
        ValidationError: value is not a positive integer or numeric string
    """
    if is_int(value):
        parsed = value
    elif isinstance(value, str) and value.strip().isdecimal():
        parsed = int(value.strip())
    else:
        raise ValidationError(code, f"Valid {label} is required")

    if parsed <= 0:
        raise ValidationError(code, f"Valid {label} is required")
    return parsed


def parse_optional_id(value: Any, code: str, label: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return parse_id(value, code, label)


def parse_pagination(args=None) -> Tuple[int, int]:
    """
    Read limit/offset from query args.

    limit defaults to DEFAULT_PAGE_SIZE and is capped at MAX_PAGE_SIZE,
    offset defaults to 0.
    """
    args = args if args is not None else request.args
    default_size = current_app.config.get("DEFAULT_PAGE_SIZE", 10)
    max_size = current_app.config.get("MAX_PAGE_SIZE", 100)

    raw_limit = args.get("limit")
    raw_offset = args.get("offset")

    try:
        limit = int(raw_limit) if raw_limit not in (None, "") else default_size
    except (TypeError, ValueError):
        raise ValidationError("INVALID_LIMIT", "limit must be an integer")

    try:
        offset = int(raw_offset) if raw_offset not in (None, "") else 0
    except (TypeError, ValueError):
        raise ValidationError("INVALID_OFFSET", "offset must be an integer")

    if limit < 1:
        raise ValidationError("INVALID_LIMIT", "limit must be at least 1")
    if offset < 0:
        raise ValidationError("INVALID_OFFSET", "offset must be non-negative")

    return min(limit, max_size), offset


def get_json_body() -> dict:
    """Return the JSON object body of the current request"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("INVALID_JSON", "Request body must be a JSON object")
    return data


def validate_choice(value: Any, choices: Iterable[str], code: str, label: str) -> str:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(code, f"Invalid {label}. Must be one of: {', '.join(choices)}")
    return value
