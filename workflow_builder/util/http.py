"""Input normalization helpers shared by integration steps."""

from __future__ import annotations

import math
import re
from typing import Any

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def normalize_store_domain(domain: str) -> str:
    """Strip a leading http(s):// scheme and one trailing slash.

    "https://shop.myshopify.com/" -> "shop.myshopify.com"
    """
    domain = _SCHEME_RE.sub("", domain.strip())
    if domain.endswith("/"):
        domain = domain[:-1]
    return domain


def parse_int(value: Any) -> int | None:
    """Parse a leading base-10 integer the way JS parseInt(value, 10) does.

    Returns None when no integer prefix is present ("abc", "", None).
    "10" -> 10, "-5" -> -5, "12px" -> 12, 7 -> 7.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if not isinstance(value, str):
        return None
    match = _INT_RE.match(value)
    if match is None:
        return None
    return int(match.group(1))
