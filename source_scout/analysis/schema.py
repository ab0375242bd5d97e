# === FILE: source_scout/analysis/schema.py ===
"""
Structural schema inference for parsed response bodies.

Schemas are plain dicts using JSON Schema keywords (``type``, ``properties``,
``required``, ``items``, ``additionalProperties``, ``examples``, ``oneOf``),
so they serialize as-is.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

JSONSchema = Dict[str, Any]

MAX_EXAMPLES = 3
MAX_DEPTH = 10
EXAMPLE_STRING_LIMIT = 100
SAMPLE_ARRAY_ITEMS = 2
SAMPLE_STRING_LIMIT = 200
ELLIPSIS = "..."


def _json_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "integer" if value.is_integer() else "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "unknown"


def _branch_types(schema: JSONSchema) -> List[str]:
    t = schema.get("type", "unknown")
    return list(t) if isinstance(t, list) else [t]


def merge_schemas(a: JSONSchema, b: JSONSchema) -> JSONSchema:
    """Merge two item schemas.

    Objects of the same type merge their properties recursively; differing
    types become a ``oneOf`` union with one branch per distinct type.
    """
    type_a, type_b = a.get("type"), b.get("type")
    if type_a is not None and type_a == type_b:
        if type_a == "object" and "properties" in a and "properties" in b:
            merged: Dict[str, JSONSchema] = dict(a["properties"])
            for key, schema in b["properties"].items():
                merged[key] = merge_schemas(merged[key], schema) if key in merged else schema
            result: JSONSchema = {"type": "object", "properties": merged, "additionalProperties": True}
            required = [k for k in a.get("required", []) if k in b.get("required", [])]
            if required:
                result["required"] = required
            return result
        return a

    seen: set[str] = set()
    branches: List[JSONSchema] = []
    for side in (a, b):
        for schema in side.get("oneOf", [side]):
            fresh = [t for t in _branch_types(schema) if t not in seen]
            if fresh:
                seen.update(fresh)
                branches.append(schema)
    if len(branches) == 1:
        return branches[0]
    return {"oneOf": branches}


def infer_schema(value: Any, max_examples: int = MAX_EXAMPLES, max_depth: int = MAX_DEPTH) -> JSONSchema:
    """Infer a schema for *value*; below *max_depth* levels an open object is returned."""
    if max_depth <= 0:
        return {"type": "object", "additionalProperties": True}

    kind = _json_type(value)
    if kind == "null":
        return {"type": "null"}
    if kind == "string":
        return {"type": "string", "examples": [_truncate(value, EXAMPLE_STRING_LIMIT)]}
    if kind in ("integer", "number", "boolean"):
        return {"type": kind, "examples": [value]}

    if kind == "array":
        item_schema: Optional[JSONSchema] = None
        for item in list(value)[:max_examples]:
            schema = infer_schema(item, max_examples, max_depth - 1)
            item_schema = schema if item_schema is None else merge_schemas(item_schema, schema)
        return {"type": "array", "items": item_schema or {}}

    if kind == "object":
        properties: Dict[str, JSONSchema] = {}
        required: List[str] = []
        for key, val in value.items():
            properties[key] = infer_schema(val, max_examples, max_depth - 1)
            if val is not None:
                required.append(key)
        schema = {"type": "object", "properties": properties, "additionalProperties": True}
        if required:
            schema["required"] = required
        return schema

    return {"type": "unknown"}


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + ELLIPSIS if len(text) > limit else text


def create_sample(
    data: Any,
    max_array_items: int = SAMPLE_ARRAY_ITEMS,
    max_string_length: int = SAMPLE_STRING_LIMIT,
    max_depth: int = MAX_DEPTH,
) -> Any:
    """Size-capped copy of *data* with the same structure.

    Containers below *max_depth* levels are replaced by empty ones.
    """
    if isinstance(data, str):
        return _truncate(data, max_string_length)
    if isinstance(data, (list, tuple)):
        if max_depth <= 0:
            return []
        return [
            create_sample(item, max_array_items, max_string_length, max_depth - 1)
            for item in data[:max_array_items]
        ]
    if isinstance(data, dict):
        if max_depth <= 0:
            return {}
        return {
            key: create_sample(val, max_array_items, max_string_length, max_depth - 1)
            for key, val in data.items()
        }
    return data


__all__ = ["JSONSchema", "infer_schema", "merge_schemas", "create_sample"]
