"""Declarative field translation between upstream payloads and step results.

Each integration describes its response mapping as a small table of
``output_name -> upstream_name`` instead of hand-written dict literals.
Only the fields listed in a table are carried over.

Example::

    CUSTOMER_FIELDS = {"id": "id", "firstName": "first_name"}
    map_fields({"id": 1, "first_name": "Ada", "note": "x"}, CUSTOMER_FIELDS)
    # -> {"id": 1, "firstName": "Ada"}
"""

from __future__ import annotations

from typing import Any, Mapping

FieldMap = Mapping[str, str]


def map_fields(source: Mapping[str, Any] | None, table: FieldMap) -> dict[str, Any]:
    """Translate ``source`` through ``table``; missing upstream keys map to None."""
    src = source if isinstance(source, Mapping) else {}
    return {out_key: src.get(in_key) for out_key, in_key in table.items()}


def map_list(items: list[Mapping[str, Any]] | None, table: FieldMap) -> list[dict[str, Any]]:
    """map_fields over a list; non-dict entries are skipped."""
    return [
        map_fields(item, table)
        for item in items or []
        if isinstance(item, Mapping)
    ]


def map_optional(source: Mapping[str, Any] | None, table: FieldMap) -> dict[str, Any] | None:
    """map_fields, but None when the upstream object itself is absent."""
    if not isinstance(source, Mapping) or not source:
        return None
    return map_fields(source, table)


def build_payload(values: Mapping[str, Any], table: FieldMap) -> dict[str, Any]:
    """Reverse direction: build an upstream request body from step input.

    Only truthy values are included, matching optional-field semantics of the
    upstream APIs (an omitted field keeps the server default).
    """
    payload: dict[str, Any] = {}
    for in_key, out_key in table.items():
        value = values.get(in_key)
        if value:
            payload[out_key] = value
    return payload
