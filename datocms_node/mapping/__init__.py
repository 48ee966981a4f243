"""Field metadata fetch, UI field mapping and value normalization."""

from datocms_node.mapping.fields import (
    fetch_field_descriptors,
    filterable_fields,
    to_mapper_fields,
)
from datocms_node.mapping.normalize import (
    is_helper_key,
    normalize_fields,
    normalize_value,
    serialize_string_set,
)

__all__ = [
    "fetch_field_descriptors",
    "filterable_fields",
    "is_helper_key",
    "normalize_fields",
    "normalize_value",
    "serialize_string_set",
    "to_mapper_fields",
]
