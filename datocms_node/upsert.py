"""Upsert resolution: create or update a record by matching fields.

The resolver walks a small state machine:

    COLLECTING_INPUT -> MATCH_FIELD_SELECTED -> SEARCHING
        -> NO_MATCH | SINGLE_MATCH | MULTI_MATCH -> RESOLVED | FAILED

Matching is conjunctive: every designated matching field must carry a
value, and a record matches only when all of them are equal. Searches
include draft records. A multi-record match is always an error.
"""

from typing import Any

from datocms_node.client.client import DatoClient
from datocms_node.errors import (
    ConfigurationError,
    ConflictError,
    DatoNodeError,
    RecordNotFoundError,
    RemoteError,
    ValidationError,
)
from datocms_node.filters import build_match_filter
from datocms_node.mapping.fields import fetch_field_descriptors
from datocms_node.mapping.normalize import normalize_fields
from datocms_node.models.enums import UpsertState
from datocms_node.models.upsert import UpsertOutcome
from datocms_node.observability.logging import get_logger
from datocms_node.observability.metrics import UPSERT_OUTCOMES

logger = get_logger(__name__)


def is_empty_match_value(value: Any) -> bool:
    """None, blank strings and empty containers cannot be matched on."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


class UpsertResolver:
    """Decides between create and update for one input record.

    Field metadata is fetched on every call; nothing is cached between
    records.
    """

    def __init__(self, client: DatoClient, record_metrics: bool = True) -> None:
        self._client = client
        self._record_metrics = record_metrics

    async def resolve(
        self,
        item_type: str | None,
        raw_fields: dict[str, Any],
        matching_fields: list[str],
        *,
        create_if_not_found: bool = True,
        auto_publish: bool = False,
        default_locale: str | None = None,
    ) -> UpsertOutcome:
        """Create or update the record identified by the matching fields.

        Args:
            item_type: Model ID
            raw_fields: Field values as supplied by the host
            matching_fields: Field keys designated for matching
            create_if_not_found: Create a record when nothing matches
            auto_publish: Publish the resulting record
            default_locale: Locale for plain values of localized fields

        Returns:
            UpsertOutcome with the resulting record

        Raises:
            ConfigurationError: No item type or no matching field designated
            ValidationError: A matching field has no value
            RecordNotFoundError: Nothing matched and creation is disabled
            ConflictError: More than one record matched
            RemoteError: A CMA call failed
        """
        path = [UpsertState.COLLECTING_INPUT]
        try:
            outcome = await self._resolve(
                path,
                item_type,
                raw_fields,
                matching_fields,
                create_if_not_found=create_if_not_found,
                auto_publish=auto_publish,
                default_locale=default_locale,
            )
        except DatoNodeError as e:
            path.append(UpsertState.FAILED)
            self._count(type(e).__name__)
            logger.warning(
                "upsert_failed",
                item_type=item_type,
                error_code=e.error_code.value,
                error=e.message,
                states=[s.value for s in path],
            )
            raise

        self._count("created" if outcome.created else "updated")
        return outcome

    async def _resolve(
        self,
        path: list[UpsertState],
        item_type: str | None,
        raw_fields: dict[str, Any],
        matching_fields: list[str],
        *,
        create_if_not_found: bool,
        auto_publish: bool,
        default_locale: str | None,
    ) -> UpsertOutcome:
        if not item_type:
            raise ConfigurationError("Please select an Item Type first")

        match_keys = list(dict.fromkeys(k for k in matching_fields if k))
        if not match_keys:
            raise ConfigurationError(
                "No matching fields configured. Please select at least one field "
                "to match records on in the resource mapper."
            )
        path.append(UpsertState.MATCH_FIELD_SELECTED)

        descriptors = await fetch_field_descriptors(self._client, item_type)
        fields = normalize_fields(raw_fields, descriptors, default_locale)

        criterion: dict[str, Any] = {}
        for key in match_keys:
            value = fields.get(key)
            if is_empty_match_value(value):
                raise ValidationError(
                    f"No value provided for matching field '{key}'. "
                    "Please provide a value for the matching field.",
                    field=key,
                )
            criterion[key] = value
        path.append(UpsertState.SEARCHING)

        existing = await self._search(item_type, criterion)
        described = _describe(criterion)

        if not existing:
            path.append(UpsertState.NO_MATCH)
            if not create_if_not_found:
                raise RecordNotFoundError(
                    f"No record found with {described} and createIfNotFound is disabled"
                )
            record = await self._client.create_item(item_type, fields)
            created = True
        elif len(existing) == 1:
            path.append(UpsertState.SINGLE_MATCH)
            record = await self._client.update_item(existing[0]["id"], fields)
            created = False
        else:
            path.append(UpsertState.MULTI_MATCH)
            raise ConflictError(
                f"Multiple records found with {described}. "
                "Please use a unique field for matching.",
                record_ids=[r["id"] for r in existing],
            )
        path.append(UpsertState.RESOLVED)

        logger.info(
            "upsert_resolved",
            item_type=item_type,
            record_id=record.get("id"),
            created=created,
            match_fields=match_keys,
        )

        published = False
        if auto_publish:
            # The create/update above stays committed if publishing fails.
            record = await self._client.publish_item(record["id"])
            published = True

        return UpsertOutcome(
            record=record,
            created=created,
            match_criterion=criterion,
            published=published,
            state_path=list(path),
        )

    async def _search(self, item_type: str, criterion: dict[str, Any]) -> list[dict[str, Any]]:
        params = {
            "filter": build_match_filter(item_type, criterion),
            "version": "current",
        }
        try:
            return [record async for record in self._client.iter_items(params)]
        except RemoteError as e:
            raise RemoteError(
                f"Failed to search for existing records: {e.message}",
                status_code=e.status_code,
                details=e.details,
            ) from e

    def _count(self, outcome: str) -> None:
        if self._record_metrics:
            UPSERT_OUTCOMES.labels(outcome=outcome).inc()


def _describe(criterion: dict[str, Any]) -> str:
    return " and ".join(f"{key} = '{value}'" for key, value in criterion.items())
