"""Normalization of raw field values into the shapes the CMA accepts.

The host only produces strings or already-structured values, so string
values are decoded according to the field's encoding: JSON string sets are
re-serialized, localized values become locale maps, list fields become
native lists, and JSON-looking strings are parsed when they can be.
Malformed JSON is never an error: it is kept as a literal string.
"""

import json
from typing import Any

from datocms_node.models.enums import EncodingHint
from datocms_node.models.fields import LIST_KINDS, FieldDescriptor
from datocms_node.observability.logging import get_logger

logger = get_logger(__name__)


def is_helper_key(key: str) -> bool:
    """Host-internal helper keys look like ``_something_helper``."""
    return key.startswith("_") and "helper" in key


def _parse_json(text: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except ValueError:
        return False, None


def coerce_string_set(value: Any) -> list[str]:
    """Coerce a value into a list of strings.

    Lists pass through, strings that hold a JSON array are parsed and any
    other scalar is wrapped. None and blank strings give an empty list.
    Non-string elements are JSON-encoded, so True is stored as "true".
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple, set)):
        items = list(value)
    elif isinstance(value, str):
        trimmed = value.strip()
        if not trimmed:
            return []
        parsed_ok, parsed = _parse_json(trimmed) if trimmed.startswith("[") else (False, None)
        items = parsed if parsed_ok and isinstance(parsed, list) else [value]
    else:
        items = [value]
    return [_string_item(item) for item in items]


def _string_item(item: Any) -> str:
    """Strings pass through; anything else is stored in its JSON form."""
    if isinstance(item, str):
        return item
    return json.dumps(item, ensure_ascii=False, default=str)


def serialize_string_set(value: Any) -> str:
    """Store a string set the way JSON fields hold it: a formatted JSON array."""
    return json.dumps(coerce_string_set(value), indent=2, ensure_ascii=False)


def normalize_value(descriptor: FieldDescriptor, value: Any) -> Any:
    """Normalize one raw value for its field. First matching rule wins."""
    if descriptor.encoding is EncodingHint.STRING_SET:
        return serialize_string_set(value)

    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    if not trimmed:
        return value

    if descriptor.localized and trimmed.startswith("{"):
        parsed_ok, parsed = _parse_json(trimmed)
        return parsed if parsed_ok else value

    if descriptor.kind in LIST_KINDS:
        if trimmed.startswith("["):
            parsed_ok, parsed = _parse_json(trimmed)
            if parsed_ok and isinstance(parsed, list):
                return parsed
        return [value]

    if trimmed[0] in "{[":
        parsed_ok, parsed = _parse_json(trimmed)
        return parsed if parsed_ok else value

    return value


def normalize_fields(
    raw: dict[str, Any],
    descriptors: list[FieldDescriptor],
    default_locale: str | None = None,
) -> dict[str, Any]:
    """Normalize a raw field mapping against a model's descriptors.

    Helper keys and keys the model doesn't define are dropped. When
    default_locale is given, localized values that are not already keyed
    by locale are wrapped as ``{default_locale: value}``.

    Args:
        raw: Field key -> raw value, as supplied by the host
        descriptors: The model's field descriptors
        default_locale: Locale for plain values of localized fields

    Returns:
        Field key -> normalized value, in input order
    """
    by_key = {descriptor.key: descriptor for descriptor in descriptors}
    normalized: dict[str, Any] = {}
    dropped: list[str] = []

    for key, value in raw.items():
        descriptor = by_key.get(key)
        if is_helper_key(key) or descriptor is None:
            dropped.append(key)
            continue

        result = normalize_value(descriptor, value)
        if (
            default_locale
            and descriptor.localized
            and result is not None
            and not isinstance(result, dict)
        ):
            result = {default_locale: result}
        normalized[key] = result

    if dropped:
        logger.debug("field_values_dropped", keys=dropped)
    return normalized
