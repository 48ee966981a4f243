"""Per-item parameter bundle and item containers.

The host resolves its UI parameters for every input item and hands the
node one NodeParameters per item. Keys are accepted both in snake_case and
in the host's camelCase (``itemType``, ``createIfNotFound``, ...). Options the
host groups under ``additionalFields`` are flattened onto the bundle.
"""

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from datocms_node.errors import DatoNodeError
from datocms_node.models.enums import (
    FilterOperator,
    MappingMode,
    Operation,
    Resource,
    UploadSource,
    UrlExtractionMode,
)


def _locator_value(value: Any) -> Any:
    """Unwrap a host resource locator ({"mode": ..., "value": ...})."""
    if isinstance(value, dict):
        value = value.get("value")
    if value == "":
        return None
    return value


class _HostModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ResourceMapperValue(_HostModel):
    """Value of a resource-mapper parameter."""

    mapping_mode: MappingMode = Field(
        default=MappingMode.DEFINE_BELOW, description="How field values are supplied"
    )
    value: dict[str, Any] | None = Field(
        default=None, description="Field values when defined below"
    )
    matching_columns: list[str] = Field(
        default_factory=list, description="Fields designated for upsert matching"
    )


class FilterCondition(_HostModel):
    """One (field, operator, value) triple of the record filter DSL."""

    field: str = Field(..., description="Field API key or system key")
    operator: FilterOperator = Field(default=FilterOperator.EQ)
    value: Any = Field(default=None, description="Ignored for exists")


class NodeParameters(_HostModel):
    """Resolved configuration for one input item."""

    resource: Resource = Field(default=Resource.RECORD)
    operation: Operation = Field(default=Operation.CREATE)

    # Records
    item_type: str | None = Field(default=None, description="Model (item type) ID")
    record_id: str | None = Field(default=None)
    fields: ResourceMapperValue | None = Field(default=None)
    create_if_not_found: bool = Field(default=True)
    auto_publish: bool = Field(default=False)
    default_locale: str | None = Field(
        default=None, description="Locale used to wrap plain localized values"
    )

    # Listing
    filters: list[FilterCondition] = Field(default_factory=list)
    return_all: bool = Field(default=False)
    limit: int = Field(default=50, ge=1)

    # Item types and blocks
    item_type_id: str | None = Field(default=None)

    # Uploads
    upload_id: str | None = Field(default=None)
    upload_source: UploadSource = Field(default=UploadSource.BINARY)
    binary_property_name: str = Field(default="data")
    file_url: str | None = Field(default=None)
    skip_creation_if_already_exists: bool = Field(default=True)
    upload_collection: str | None = Field(default=None)
    include_other_input_fields: bool = Field(default=False)
    filter_by_collection: str | None = Field(default=None)

    # Bulk upload
    url_extraction_mode: UrlExtractionMode = Field(default=UrlExtractionMode.FIELD)
    url_field: str = Field(default="urls", description="Input property holding URLs")
    url_list: str | None = Field(default=None, description="Comma/newline separated URLs")
    concurrency: int | None = Field(default=None, ge=1, le=20)
    replace_urls: bool = Field(default=True)

    @field_validator("item_type", "upload_collection", "filter_by_collection", mode="before")
    @classmethod
    def unwrap_locator(cls, value: Any) -> Any:
        """Accept resource locator objects as well as plain IDs."""
        return _locator_value(value)

    @model_validator(mode="before")
    @classmethod
    def unwrap_collections(cls, data: Any) -> Any:
        """Flatten the host's "additional fields" and filter collections.

        Options nested under ``additionalFields`` are lifted to the top level
        without overriding keys given there explicitly. A ``{"filter": [...]}``
        collection is replaced by its list of conditions.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in ("additionalFields", "additional_fields"):
            extra = data.pop(key, None)
            if isinstance(extra, dict):
                for name, value in extra.items():
                    data.setdefault(name, value)
        filters = data.get("filters")
        if isinstance(filters, dict):
            data["filters"] = filters.get("filter") or []
        return data


@dataclass
class BinaryData:
    """A binary attachment of an input item."""

    data: bytes
    file_name: str | None = None
    mime_type: str | None = None


@dataclass
class ExecutionItem:
    """One input item handed over by the host."""

    json: dict[str, Any] = field(default_factory=dict)
    binary: dict[str, BinaryData] = field(default_factory=dict)


@dataclass
class ItemResult:
    """Outcome of one input item: a success value or a captured error."""

    json: dict[str, Any]
    paired_item: int
    error: DatoNodeError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
