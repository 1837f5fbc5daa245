"""Best-effort extraction of a displayable message from any error value.

Step failures surface ``message`` directly to the user, so whatever a business
function raises (exceptions, httpx errors, SDK error objects, plain dicts,
even non-exception values) is reduced to a short human-readable string here.
The result is never empty and never an unbounded object dump.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

UNKNOWN_ERROR = "Unknown error"

_MAX_LEN = 300

# Attribute / key names checked in order for a meaningful message
_MESSAGE_KEYS: tuple[str, ...] = ("message", "error", "errors", "detail", "reason")


def _clip(text: str) -> str:
    text = text.strip()
    if len(text) > _MAX_LEN:
        return text[: _MAX_LEN - 3] + "..."
    return text


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError):
        return repr(value)


def _from_mapping(data: dict[str, Any]) -> str:
    for key in _MESSAGE_KEYS:
        value = data.get(key)
        if value in (None, "", [], {}):
            continue
        if isinstance(value, dict):
            nested = _from_mapping(value)
            if nested:
                return nested
        return _stringify(value)
    return ""


def error_body_message(response: httpx.Response) -> str:
    """Pull an upstream error message out of a response body.

    Looks for ``errors`` / ``error`` / ``message`` in a JSON body; string values
    are used as-is, other values are JSON-encoded. Returns "" when the body is
    empty, not JSON, or carries none of those keys.
    """
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return ""
    if isinstance(data, dict):
        return _clip(_from_mapping(data))
    return ""


def extract_error_message(error: Any) -> str:
    """Return meaningful text for ``error``; falls back to UNKNOWN_ERROR."""
    message = ""

    if isinstance(error, httpx.HTTPStatusError):
        message = error_body_message(error.response) or f"HTTP {error.response.status_code}"
    elif isinstance(error, httpx.TimeoutException):
        message = str(error) or "Request timed out"
    elif isinstance(error, httpx.TransportError):
        message = str(error) or f"{type(error).__name__}: connection failed"
    elif isinstance(error, BaseException):
        message = str(error)
        if not message.strip():
            # SDK errors often keep the useful text on an attribute
            for key in _MESSAGE_KEYS:
                attr = getattr(error, key, None)
                if attr:
                    message = _stringify(attr)
                    break
        if not message.strip():
            cause = error.__cause__ or error.__context__
            if cause is not None and cause is not error:
                message = extract_error_message(cause)
        if not message.strip():
            message = type(error).__name__
    elif isinstance(error, str):
        message = error
    elif isinstance(error, dict):
        message = _from_mapping(error) or _stringify(error)
    elif error is not None:
        for key in _MESSAGE_KEYS:
            attr = getattr(error, key, None)
            if attr:
                message = _stringify(attr)
                break
        else:
            message = repr(error)

    message = _clip(message)
    return message or UNKNOWN_ERROR
