"""Domain models for the DatoCMS node."""

from datocms_node.models.enums import (
    EncodingHint,
    FieldKind,
    FilterOperator,
    MappingMode,
    Operation,
    Resource,
    UploadSource,
    UpsertState,
    UrlExtractionMode,
)
from datocms_node.models.fields import FieldDescriptor, FieldOption, MapperField
from datocms_node.models.params import (
    BinaryData,
    ExecutionItem,
    FilterCondition,
    ItemResult,
    NodeParameters,
    ResourceMapperValue,
)
from datocms_node.models.upsert import UpsertOutcome

__all__ = [
    "BinaryData",
    "EncodingHint",
    "ExecutionItem",
    "FieldDescriptor",
    "FieldKind",
    "FieldOption",
    "FilterCondition",
    "FilterOperator",
    "ItemResult",
    "MapperField",
    "MappingMode",
    "NodeParameters",
    "Operation",
    "Resource",
    "ResourceMapperValue",
    "UploadSource",
    "UpsertOutcome",
    "UpsertState",
    "UrlExtractionMode",
]
