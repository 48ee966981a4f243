"""Tests for the host UI option lookups."""

import pytest

from datocms_node.errors import ConfigurationError, RemoteError
from datocms_node.options import (
    NO_COLLECTION,
    NO_COLLECTION_ACCESS,
    get_filterable_fields,
    get_model_fields,
    get_site_locales,
    search_item_types,
    search_upload_collections,
)
from tests.factories import FieldFactory, make_client


class TestSearchItemTypes:
    """Tests for search_item_types."""

    @pytest.mark.asyncio
    async def test_filters_by_name(self) -> None:
        client = make_client()
        client.list_item_types.return_value = [
            {"id": "m1", "name": "Product"},
            {"id": "m2", "name": "Blog Post"},
            {"id": "m3", "name": "Product Variant"},
        ]

        options = await search_item_types(client, "product")

        assert [(o.name, o.value) for o in options] == [
            ("Product", "m1"),
            ("Product Variant", "m3"),
        ]

    @pytest.mark.asyncio
    async def test_no_filter_lists_all(self) -> None:
        client = make_client()
        client.list_item_types.return_value = [{"id": "m1", "name": "Product"}]

        assert len(await search_item_types(client)) == 1

    @pytest.mark.asyncio
    async def test_failure_is_wrapped(self) -> None:
        client = make_client()
        client.list_item_types.side_effect = RemoteError("UNAUTHORIZED", status_code=401)

        with pytest.raises(RemoteError, match="Failed to load item types: UNAUTHORIZED"):
            await search_item_types(client)


class TestSearchUploadCollections:
    """Tests for search_upload_collections."""

    @pytest.mark.asyncio
    async def test_none_option_first(self) -> None:
        client = make_client()
        client.list_upload_collections.return_value = [
            {"id": "c1", "label": "Products"},
            {"id": "c2", "label": "Blog"},
        ]

        options = await search_upload_collections(client, "prod")

        assert options == [NO_COLLECTION, options[1]]
        assert options[1].value == "c1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            RemoteError("UNAUTHORIZED", status_code=401),
            RemoteError("INSUFFICIENT_PERMISSIONS", status_code=403),
        ],
    )
    async def test_inaccessible_collections(self, error) -> None:
        client = make_client()
        client.list_upload_collections.side_effect = error

        assert await search_upload_collections(client) == [NO_COLLECTION_ACCESS]

    @pytest.mark.asyncio
    async def test_other_failures_raise(self) -> None:
        client = make_client()
        client.list_upload_collections.side_effect = RemoteError("Server Error", status_code=500)

        with pytest.raises(RemoteError, match="Failed to load upload collections"):
            await search_upload_collections(client)


class TestModelFields:
    """Tests for field lookups."""

    @pytest.mark.asyncio
    async def test_filterable_fields_without_model(self) -> None:
        client = make_client()

        assert await get_filterable_fields(client, None) == []
        client.list_fields.assert_not_called()

    @pytest.mark.asyncio
    async def test_filterable_fields(self) -> None:
        client = make_client(fields=[FieldFactory.create("sku", label="SKU")])

        options = await get_filterable_fields(client, "m1")

        assert options[-1].value == "sku"

    @pytest.mark.asyncio
    async def test_model_fields(self) -> None:
        client = make_client(fields=[FieldFactory.create("sku", unique=True)])

        fields = await get_model_fields(client, "m1")

        assert fields[0].id == "sku"
        assert fields[0].default_match is True

    @pytest.mark.asyncio
    async def test_model_fields_need_model(self) -> None:
        with pytest.raises(ConfigurationError):
            await get_model_fields(make_client(), "")

    @pytest.mark.asyncio
    async def test_model_fields_failure(self) -> None:
        client = make_client()
        client.list_fields.side_effect = RemoteError("NOT_FOUND", status_code=404)

        with pytest.raises(RemoteError, match="Failed to load model fields: NOT_FOUND"):
            await get_model_fields(client, "m1")


class TestSiteLocales:
    """Tests for get_site_locales."""

    @pytest.mark.asyncio
    async def test_locales(self) -> None:
        client = make_client()
        client.find_site.return_value = {"id": "site", "locales": ["en", "it"]}

        options = await get_site_locales(client)

        assert [o.value for o in options] == ["en", "it"]
