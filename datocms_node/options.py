"""Lookups the host UI runs to fill its pickers.

Every remote failure is reported as a RemoteError whose message starts
with "Failed to load ..." and keeps the remote message.
"""

from datocms_node.client.client import DatoClient
from datocms_node.errors import RemoteError
from datocms_node.mapping.fields import (
    fetch_field_descriptors,
    filterable_fields,
    to_mapper_fields,
)
from datocms_node.models.fields import FieldOption, MapperField
from datocms_node.observability.logging import get_logger

logger = get_logger(__name__)

NO_COLLECTION = FieldOption(name="(None)", value="")
NO_COLLECTION_ACCESS = FieldOption(name="(None - Upload Collections Not Accessible)", value="")


def _failed(what: str, error: RemoteError) -> RemoteError:
    return RemoteError(
        f"Failed to load {what}: {error.message}",
        status_code=error.status_code,
        details=error.details,
    )


def _matches(label: str, filter_text: str | None) -> bool:
    return not filter_text or filter_text.lower() in label.lower()


def _collections_forbidden(error: RemoteError) -> bool:
    return error.status_code == 401 or "INSUFFICIENT_PERMISSIONS" in error.message


async def search_item_types(client: DatoClient, filter_text: str | None = None) -> list[FieldOption]:
    """Models whose name contains filter_text (case-insensitive)."""
    try:
        item_types = await client.list_item_types()
    except RemoteError as e:
        raise _failed("item types", e) from e

    return [
        FieldOption(name=item_type["name"], value=item_type["id"])
        for item_type in item_types
        if _matches(item_type.get("name") or "", filter_text)
    ]


async def search_upload_collections(
    client: DatoClient,
    filter_text: str | None = None,
) -> list[FieldOption]:
    """Upload collections, preceded by a "(None)" choice.

    A token without access to collections still gets a usable list so
    uploads keep working without a collection.
    """
    try:
        collections = await client.list_upload_collections()
    except RemoteError as e:
        if _collections_forbidden(e):
            logger.info("upload_collections_not_accessible", status_code=e.status_code)
            return [NO_COLLECTION_ACCESS]
        raise _failed("upload collections", e) from e

    results = [NO_COLLECTION]
    results.extend(
        FieldOption(name=collection["label"], value=collection["id"])
        for collection in collections
        if _matches(collection.get("label") or "", filter_text)
    )
    return results


async def get_filterable_fields(client: DatoClient, item_type: str | None) -> list[FieldOption]:
    """Fields that can be used in record filters. Empty without a model."""
    if not item_type:
        return []
    try:
        descriptors = await fetch_field_descriptors(client, item_type)
    except RemoteError as e:
        raise _failed("filterable fields", e) from e
    return filterable_fields(descriptors)


async def get_model_fields(client: DatoClient, item_type: str | None) -> list[MapperField]:
    """Resource-mapper fields of a model.

    Raises:
        ConfigurationError: If no model is selected
    """
    try:
        descriptors = await fetch_field_descriptors(client, item_type)
    except RemoteError as e:
        raise _failed("model fields", e) from e
    return to_mapper_fields(descriptors)


async def get_site_locales(client: DatoClient) -> list[FieldOption]:
    """Locales configured on the project."""
    try:
        site = await client.find_site()
    except RemoteError as e:
        raise _failed("site locales", e) from e
    return [FieldOption(name=locale, value=locale) for locale in site.get("locales") or []]
