"""Tests for upsert resolution."""

import pytest

from datocms_node.errors import (
    ConfigurationError,
    ConflictError,
    RecordNotFoundError,
    RemoteError,
    ValidationError,
)
from datocms_node.models import UpsertState
from datocms_node.upsert import UpsertResolver, is_empty_match_value
from tests.factories import FieldFactory, RecordFactory, make_client


@pytest.fixture
def catalog_fields():
    """The sku/price model."""
    return [
        FieldFactory.create("sku", "string", unique=True, position=1),
        FieldFactory.create("price", "float", position=2),
    ]


def _resolver(fields, records=None) -> tuple[UpsertResolver, object]:
    client = make_client(fields=fields, records=records)
    return UpsertResolver(client, record_metrics=False), client


class TestCreate:
    """No existing record matches."""

    @pytest.mark.asyncio
    async def test_creates_with_normalized_payload(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields)

        outcome = await resolver.resolve(
            "model_1", {"sku": "A1", "price": "9.99"}, ["sku"], create_if_not_found=True
        )

        client.create_item.assert_awaited_once_with("model_1", {"sku": "A1", "price": "9.99"})
        client.update_item.assert_not_called()
        assert outcome.created is True
        assert outcome.record["id"] == "rec_new"
        assert outcome.record["sku"] == "A1"
        assert outcome.match_criterion == {"sku": "A1"}
        assert outcome.state_path == [
            UpsertState.COLLECTING_INPUT,
            UpsertState.MATCH_FIELD_SELECTED,
            UpsertState.SEARCHING,
            UpsertState.NO_MATCH,
            UpsertState.RESOLVED,
        ]

    @pytest.mark.asyncio
    async def test_search_includes_drafts(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields)

        await resolver.resolve("model_1", {"sku": "A1"}, ["sku"])

        client.iter_items.assert_called_once_with({
            "filter": {"type": "model_1", "fields": {"sku": {"eq": "A1"}}},
            "version": "current",
        })

    @pytest.mark.asyncio
    async def test_not_found_without_create(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields)

        with pytest.raises(RecordNotFoundError, match="sku = 'A1'"):
            await resolver.resolve(
                "model_1", {"sku": "A1"}, ["sku"], create_if_not_found=False
            )

        client.create_item.assert_not_called()
        client.update_item.assert_not_called()


class TestUpdate:
    """Exactly one record matches."""

    @pytest.mark.asyncio
    async def test_updates_single_match(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields, records=[RecordFactory.create("rec_1")])

        outcome = await resolver.resolve("model_1", {"sku": "A1", "price": "9.99"}, ["sku"])

        client.update_item.assert_awaited_once_with("rec_1", {"sku": "A1", "price": "9.99"})
        client.create_item.assert_not_called()
        assert outcome.created is False
        assert outcome.record["id"] == "rec_1"
        assert UpsertState.SINGLE_MATCH in outcome.state_path

    @pytest.mark.asyncio
    @pytest.mark.parametrize("create_if_not_found", [True, False])
    async def test_update_ignores_create_flag(self, catalog_fields, create_if_not_found) -> None:
        resolver, client = _resolver(catalog_fields, records=[RecordFactory.create("rec_1")])

        await resolver.resolve(
            "model_1", {"sku": "A1"}, ["sku"], create_if_not_found=create_if_not_found
        )

        client.update_item.assert_awaited_once()
        client.create_item.assert_not_called()


class TestConflict:
    """Several records match."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("create_if_not_found", [True, False])
    async def test_multiple_matches_conflict(self, catalog_fields, create_if_not_found) -> None:
        records = [RecordFactory.create("rec_1"), RecordFactory.create("rec_2")]
        resolver, client = _resolver(catalog_fields, records=records)

        with pytest.raises(ConflictError) as exc_info:
            await resolver.resolve(
                "model_1", {"sku": "A1"}, ["sku"], create_if_not_found=create_if_not_found
            )

        assert exc_info.value.record_ids == ["rec_1", "rec_2"]
        client.create_item.assert_not_called()
        client.update_item.assert_not_called()


class TestPreconditions:
    """Failures detected before searching."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("matching_fields", [[], [""]])
    async def test_no_matching_fields(self, catalog_fields, matching_fields) -> None:
        """No matching field is a configuration error and nothing is called."""
        resolver, client = _resolver(catalog_fields)

        with pytest.raises(ConfigurationError, match="No matching fields configured"):
            await resolver.resolve("model_1", {"sku": "A1"}, matching_fields)

        client.list_fields.assert_not_called()
        client.iter_items.assert_not_called()
        client.create_item.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_item_type(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields)

        with pytest.raises(ConfigurationError, match="Item Type"):
            await resolver.resolve(None, {"sku": "A1"}, ["sku"])

        client.list_fields.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", [{}, {"sku": ""}, {"sku": "   "}, {"sku": None}])
    async def test_empty_match_value(self, catalog_fields, raw) -> None:
        resolver, client = _resolver(catalog_fields)

        with pytest.raises(ValidationError, match="'sku'") as exc_info:
            await resolver.resolve("model_1", raw, ["sku"])

        assert exc_info.value.field == "sku"
        client.iter_items.assert_not_called()


class TestMultipleMatchingFields:
    """Several matching fields are combined."""

    @pytest.mark.asyncio
    async def test_all_fields_in_query(self) -> None:
        fields = [FieldFactory.create("sku"), FieldFactory.create("market")]
        resolver, client = _resolver(fields)

        outcome = await resolver.resolve(
            "model_1", {"sku": "A1", "market": "eu"}, ["sku", "market", "sku"]
        )

        query = client.iter_items.call_args.args[0]
        assert query["filter"]["fields"] == {"sku": {"eq": "A1"}, "market": {"eq": "eu"}}
        assert outcome.match_criterion == {"sku": "A1", "market": "eu"}

    @pytest.mark.asyncio
    async def test_every_field_needs_a_value(self) -> None:
        fields = [FieldFactory.create("sku"), FieldFactory.create("market")]
        resolver, client = _resolver(fields)

        with pytest.raises(ValidationError, match="'market'"):
            await resolver.resolve("model_1", {"sku": "A1"}, ["sku", "market"])

        client.iter_items.assert_not_called()


class TestPublishing:
    """Auto-publish after create or update."""

    @pytest.mark.asyncio
    async def test_auto_publish(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields)

        outcome = await resolver.resolve("model_1", {"sku": "A1"}, ["sku"], auto_publish=True)

        client.publish_item.assert_awaited_once_with("rec_new")
        assert outcome.published is True
        assert outcome.record["meta"]["status"] == "published"

    @pytest.mark.asyncio
    async def test_publish_failure_keeps_create(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields)
        client.publish_item.side_effect = RemoteError("VALIDATION_INVALID", status_code=422)

        with pytest.raises(RemoteError, match="VALIDATION_INVALID"):
            await resolver.resolve("model_1", {"sku": "A1"}, ["sku"], auto_publish=True)

        client.create_item.assert_awaited_once()
        client.destroy_item.assert_not_called()


class TestRemoteFailures:
    """Remote failures during the search."""

    @pytest.mark.asyncio
    async def test_search_failure_is_wrapped(self, catalog_fields) -> None:
        resolver, client = _resolver(catalog_fields)

        async def failing(*args, **kwargs):
            raise RemoteError("UNAUTHORIZED", status_code=401)
            yield  # pragma: no cover

        client.iter_items.side_effect = failing

        with pytest.raises(RemoteError, match="Failed to search for existing records: UNAUTHORIZED"):
            await resolver.resolve("model_1", {"sku": "A1"}, ["sku"])

        client.create_item.assert_not_called()


class TestEmptyMatchValue:
    """Tests for is_empty_match_value."""

    @pytest.mark.parametrize("value", [None, "", "  ", [], {}])
    def test_empty(self, value) -> None:
        assert is_empty_match_value(value)

    @pytest.mark.parametrize("value", [0, False, "A1", ["x"], {"en": "x"}])
    def test_not_empty(self, value) -> None:
        assert not is_empty_match_value(value)
