"""
Decoding of Notion's stored rich-text and property encodings.

Notion keeps block properties as JSON in the local cache:

- Simple text:  {"title": [["Hello World"]]}
- Formatted:    {"title": [["Hello", ["b"]], [" "], ["World", ["i"]]]}
- Page mention: {"title": [["‣", [["p", "<page-id>"]]]]}

A rich-text value is a list of segments ``[text]`` or
``[text, annotations]``; annotations are style marks (``"b"``) or
``[kind, payload]`` pairs.

Nothing in this module raises on bad input: malformed JSON or segments
decode to empty values, since the upstream format changes without notice.
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

# Placeholder text Notion stores for an inline page mention
PAGE_REFERENCE_GLYPH = "‣"

ELLIPSIS = "…"


def load_json(text: Optional[str]) -> Any:
    """Parse a JSON column value, returning None if absent or invalid."""
    if not text:
        return None
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


def _segment_text(segment: Any) -> str:
    if not isinstance(segment, list) or not segment:
        return ""
    text = segment[0]
    if not isinstance(text, str) or text == PAGE_REFERENCE_GLYPH:
        return ""
    return text


def extract_plain_text(rich_text: Any) -> str:
    """Concatenate segment texts, skipping page-mention glyphs."""
    if not isinstance(rich_text, list):
        return ""
    return "".join(_segment_text(segment) for segment in rich_text).strip()


def extract_title(properties_json: Optional[str]) -> str:
    """Extract the plain-text title from a properties JSON blob."""
    properties = load_json(properties_json)
    if not isinstance(properties, dict):
        return ""
    return extract_plain_text(properties.get("title"))


def extract_all_text(properties_json: Optional[str]) -> str:
    """Extract the text of every rich-text property, space-separated."""
    properties = load_json(properties_json)
    if not isinstance(properties, dict):
        return ""
    texts = []
    for value in properties.values():
        if isinstance(value, list):
            text = extract_plain_text(value)
            if text:
                texts.append(text)
    return " ".join(texts).strip()


def extract_rich_text_json(text: Optional[str]) -> str:
    """Decode a JSON column that holds a bare rich-text value.

    Collection names are stored this way (``[["My Database"]]``). A
    property map is accepted too and read through its title.
    """
    value = load_json(text)
    if isinstance(value, list):
        return extract_plain_text(value)
    if isinstance(value, dict):
        return extract_plain_text(value.get("title"))
    return ""


def extract_relation_ids(rich_text: Any) -> list[str]:
    """Collect page ids from ``["p", id]`` annotations, in order."""
    ids: list[str] = []
    if not isinstance(rich_text, list):
        return ids
    for segment in rich_text:
        if not isinstance(segment, list) or len(segment) < 2:
            continue
        annotations = segment[1]
        if not isinstance(annotations, list):
            continue
        for annotation in annotations:
            if (
                isinstance(annotation, list)
                and len(annotation) >= 2
                and annotation[0] == "p"
                and isinstance(annotation[1], str)
            ):
                ids.append(annotation[1])
    return ids


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + ELLIPSIS


def format_timestamp(timestamp: Optional[int]) -> str:
    """Format a millisecond epoch as ISO-8601 UTC (``...T03:04:05.678Z``).

    Null and zero timestamps format as the empty string.
    """
    if not timestamp:
        return ""
    try:
        millis = int(timestamp)
        dt = datetime.fromtimestamp(millis // 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return ""
    return f"{dt.strftime('%Y-%m-%dT%H:%M:%S')}.{millis % 1000:03d}Z"
