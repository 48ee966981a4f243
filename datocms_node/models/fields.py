"""Field metadata models.

FieldDescriptor is the node's view of one DatoCMS model field. MapperField
and FieldOption are what the host UI receives when it asks for the
fields of a model.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from datocms_node.models.enums import EncodingHint, FieldKind

# JSON field editors that store a set of strings as a JSON array string
STRING_SET_EDITORS: frozenset[str] = frozenset({
    "string_checkbox_group",
    "string_multi_select",
})

LIST_KINDS: frozenset[FieldKind] = frozenset({
    FieldKind.LINKS,
    FieldKind.GALLERY,
    FieldKind.BLOCKS,
})

_KIND_BY_FIELD_TYPE: dict[str, FieldKind] = {
    "string": FieldKind.TEXT,
    "text": FieldKind.TEXT,
    "slug": FieldKind.TEXT,
    "integer": FieldKind.NUMBER,
    "float": FieldKind.NUMBER,
    "boolean": FieldKind.BOOLEAN,
    "date": FieldKind.DATE_TIME,
    "date_time": FieldKind.DATE_TIME,
    "json": FieldKind.JSON,
    "link": FieldKind.LINK,
    "links": FieldKind.LINKS,
    "file": FieldKind.FILE,
    "gallery": FieldKind.GALLERY,
    "single_block": FieldKind.BLOCK,
    "modular_content": FieldKind.BLOCKS,
    "rich_text": FieldKind.BLOCKS,
    "color": FieldKind.STRUCTURED,
    "lat_lon": FieldKind.STRUCTURED,
    "seo": FieldKind.STRUCTURED,
    "structured_text": FieldKind.STRUCTURED,
    "video": FieldKind.STRUCTURED,
}


class FieldDescriptor(BaseModel):
    """One field of a DatoCMS model, as fetched from the API.

    Descriptors are fetched fresh for every resolution and never cached.
    """

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Remote field ID")
    key: str = Field(..., description="API key, unique within the model")
    label: str = Field(default="", description="Human-readable label")
    field_type: str = Field(default="string", description="Raw CMA field type")
    localized: bool = Field(default=False, description="Value is keyed by locale")
    required: bool = Field(default=False, description="Has a required validator")
    unique: bool = Field(default=False, description="Has a unique validator")
    enum_values: tuple[str, ...] | None = Field(
        default=None, description="Allowed values from the enum validator"
    )
    editor: str | None = Field(default=None, description="UI editor hint")
    position: int = Field(default=0, description="Display position in the model")
    format_pattern: str | None = Field(
        default=None, description="Predefined format pattern (url, email)"
    )

    @classmethod
    def from_api(cls, field: dict[str, Any]) -> "FieldDescriptor":
        """Build a descriptor from a deserialized CMA field resource."""
        validators = field.get("validators") or {}
        appearance = field.get("appearance") or {}
        enum_values = (validators.get("enum") or {}).get("values")
        return cls(
            id=field.get("id"),
            key=field["api_key"],
            label=field.get("label") or field["api_key"],
            field_type=field.get("field_type") or "string",
            localized=field.get("localized") is True,
            required=validators.get("required") is not None,
            unique=validators.get("unique") is not None,
            enum_values=tuple(str(v) for v in enum_values)
            if isinstance(enum_values, list)
            else None,
            editor=appearance.get("editor"),
            position=field.get("position") or 0,
            format_pattern=(validators.get("format") or {}).get("predefined_pattern"),
        )

    @property
    def kind(self) -> FieldKind:
        """Normalized kind of this field."""
        kind = _KIND_BY_FIELD_TYPE.get(self.field_type, FieldKind.TEXT)
        if kind is FieldKind.TEXT and self.enum_values is not None:
            return FieldKind.ENUM
        return kind

    @property
    def encoding(self) -> EncodingHint:
        """Wire encoding of this field's value."""
        if self.kind is FieldKind.JSON and self.editor in STRING_SET_EDITORS:
            return EncodingHint.STRING_SET
        if self.localized:
            return EncodingHint.LOCALE_MAP
        if self.kind in LIST_KINDS:
            return EncodingHint.LIST
        if self.kind in (
            FieldKind.JSON,
            FieldKind.LINK,
            FieldKind.FILE,
            FieldKind.BLOCK,
            FieldKind.STRUCTURED,
        ):
            return EncodingHint.STRUCTURED
        return EncodingHint.PLAIN


class FieldOption(BaseModel):
    """A selectable option for the host UI."""

    name: str
    value: str
    description: str | None = None


class MapperField(BaseModel):
    """A field entry for the host's resource mapper."""

    id: str
    display_name: str
    type: str = "string"
    required: bool = False
    default_match: bool = False
    can_be_used_to_match: bool = False
    display: bool = True
    removed: bool = False
    options: list[FieldOption] | None = None
