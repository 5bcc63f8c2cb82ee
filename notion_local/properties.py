"""
Schema-aware decoding of database page properties.

A collection's schema maps opaque property ids to a display name, a type
and (for selects) an option list. Page properties are keyed by the same
ids, so the schema is what turns ``{"aB3x": [["Yes"]]}`` into
``{"Done": {"name": "Done", "type": "checkbox", "value": True}}``.
"""

import math
from dataclasses import dataclass
from typing import Any, Optional

from .richtext import extract_plain_text, extract_relation_ids, load_json


@dataclass(frozen=True)
class SchemaProperty:
    """One property definition from a collection schema."""
    name: str
    type: str
    options: tuple[str, ...] = ()


def parse_schema(schema_json: Optional[str]) -> dict[str, SchemaProperty]:
    """Parse a collection schema column into property definitions.

    Returns an empty dict when the column is missing or malformed.
    """
    raw = load_json(schema_json)
    if not isinstance(raw, dict):
        return {}

    schema: dict[str, SchemaProperty] = {}
    for prop_id, definition in raw.items():
        if not isinstance(definition, dict):
            continue
        options = tuple(
            opt["value"]
            for opt in definition.get("options") or []
            if isinstance(opt, dict) and isinstance(opt.get("value"), str)
        )
        schema[prop_id] = SchemaProperty(
            name=str(definition.get("name") or prop_id),
            type=str(definition.get("type") or "unknown"),
            options=options,
        )
    return schema


def decode_value(prop_type: str, raw_value: Any) -> Any:
    """Decode one raw rich-text property value according to its type."""
    if prop_type == "relation":
        return extract_relation_ids(raw_value)

    text = extract_plain_text(raw_value)
    if prop_type == "checkbox":
        return text == "Yes"
    if prop_type == "number":
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return number if math.isfinite(number) else None
    if prop_type == "multi_select":
        if not text:
            return []
        return [piece.strip() for piece in text.split(",")]
    # dates, selects, urls and unknown types keep the stored text as-is
    return text


def project_properties(
    properties_json: Optional[str],
    schema: dict[str, SchemaProperty],
) -> Optional[dict[str, dict]]:
    """
    Decode a page's raw properties into display-named typed values.

    Args:
        properties_json: The page's ``properties`` column
        schema: Parsed schema of the page's collection

    Returns:
        Mapping of display name to ``{name, type, value}``, or None if the
        properties blob is absent or unparsable. Properties unknown to the
        schema keep their raw id as name and get type ``"unknown"``. When
        two properties share a display name the later one wins.
    """
    raw = load_json(properties_json)
    if not isinstance(raw, dict):
        return None

    result: dict[str, dict] = {}
    for prop_id, raw_value in raw.items():
        if raw_value is None:
            continue
        definition = schema.get(prop_id)
        name = definition.name if definition else prop_id
        prop_type = definition.type if definition else "unknown"
        result[name] = {
            "name": name,
            "type": prop_type,
            "value": decode_value(prop_type, raw_value),
        }
    return result


def format_schema_for_display(schema: dict[str, SchemaProperty]) -> dict[str, dict]:
    """Summarize a schema as ``{name: {type, options?}}``."""
    display: dict[str, dict] = {}
    for definition in schema.values():
        entry: dict[str, Any] = {"type": definition.type}
        if definition.options:
            entry["options"] = list(definition.options)
        display[definition.name] = entry
    return display
