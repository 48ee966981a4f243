"""Field metadata fetch and UI field mapping.

Fetches a model's fields from the CMA and turns them into descriptors,
resource-mapper fields and filterable-field options for the host UI.
"""

from datocms_node.client.client import DatoClient
from datocms_node.errors import ConfigurationError
from datocms_node.models.fields import FieldDescriptor, FieldOption, MapperField
from datocms_node.observability.logging import get_logger

logger = get_logger(__name__)

# CMA field type -> host UI field type
UI_FIELD_TYPES: dict[str, str] = {
    "string": "string",
    "text": "string",
    "slug": "string",
    "color": "string",
    "integer": "number",
    "float": "number",
    "boolean": "boolean",
    "date": "dateTime",
    "date_time": "dateTime",
    "json": "string",
    "lat_lon": "string",
    "seo": "string",
    "structured_text": "string",
    "link": "string",
    "links": "array",
    "file": "string",
    "gallery": "array",
    "single_block": "string",
    "modular_content": "array",
}

SYSTEM_KEYS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})

MATCHABLE_FIELD_TYPES: frozenset[str] = frozenset({"string", "slug", "integer"})

UNFILTERABLE_FIELD_TYPES: frozenset[str] = frozenset({"modular_content", "structured_text"})

SYSTEM_FILTER_OPTIONS: tuple[FieldOption, ...] = (
    FieldOption(name="ID", value="id", description="Record ID"),
    FieldOption(name="Created At", value="_created_at", description="Record creation timestamp"),
    FieldOption(name="Updated At", value="_updated_at", description="Record last update timestamp"),
    FieldOption(name="Published At", value="_published_at", description="Record publication timestamp"),
    FieldOption(
        name="First Published At",
        value="_first_published_at",
        description="Record first publication timestamp",
    ),
    FieldOption(name="Status", value="_status", description="Record status (draft or published)"),
    FieldOption(name="Is Valid", value="_is_valid", description="Whether the record is valid"),
)


async def fetch_field_descriptors(
    client: DatoClient,
    item_type: str | None,
) -> list[FieldDescriptor]:
    """Fetch a model's fields, ordered by their position in the model.

    The sort is stable: fields sharing a position keep their fetch order.

    Raises:
        ConfigurationError: If no item type is given (no request is made)
        RemoteError: If the CMA call fails
    """
    if not item_type or not str(item_type).strip():
        raise ConfigurationError("Please select an Item Type first")

    fields = await client.list_fields(item_type)
    descriptors = [FieldDescriptor.from_api(field) for field in fields]
    descriptors.sort(key=lambda d: d.position)

    logger.debug("field_descriptors_fetched", item_type=item_type, count=len(descriptors))
    return descriptors


def to_mapper_fields(descriptors: list[FieldDescriptor]) -> list[MapperField]:
    """Map field descriptors to resource-mapper fields.

    Localized fields are exposed as strings so a JSON object keyed by
    locale can be entered. The first unique field is the default match.
    """
    mapped: list[MapperField] = []
    default_match_taken = False

    for descriptor in descriptors:
        if descriptor.key in SYSTEM_KEYS:
            continue

        field_type = UI_FIELD_TYPES.get(descriptor.field_type, "string")
        if descriptor.format_pattern == "url":
            field_type = "url"

        display_name = descriptor.label
        if descriptor.unique:
            display_name = f"{display_name} (Unique)"
        if descriptor.localized:
            display_name = f"{display_name} (Localized)"

        is_default_match = descriptor.unique and not default_match_taken
        if is_default_match:
            default_match_taken = True

        options = None
        if descriptor.enum_values is not None:
            options = [FieldOption(name=v, value=v) for v in descriptor.enum_values]

        mapped.append(
            MapperField(
                id=descriptor.key,
                display_name=display_name,
                type="string" if descriptor.localized else field_type,
                required=descriptor.required,
                default_match=is_default_match,
                can_be_used_to_match=descriptor.unique
                or descriptor.field_type in MATCHABLE_FIELD_TYPES,
                options=options,
            )
        )

    return mapped


def filterable_fields(descriptors: list[FieldDescriptor]) -> list[FieldOption]:
    """System filter keys followed by the model fields that can be filtered."""
    options = list(SYSTEM_FILTER_OPTIONS)

    for descriptor in descriptors:
        if descriptor.field_type in UNFILTERABLE_FIELD_TYPES:
            continue

        description = descriptor.label
        if descriptor.localized:
            description += " (Localized)"
        if descriptor.unique:
            description += " (Unique)"

        options.append(
            FieldOption(name=descriptor.label, value=descriptor.key, description=description)
        )

    return options

