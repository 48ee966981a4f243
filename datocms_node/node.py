"""DatoCMS node: dispatches host items to record, upload, model and block operations.

Items are processed one at a time, in order. Each item yields an
ItemResult; with continue_on_fail the error of a failed item is captured
in its result and the next item proceeds, otherwise the first error
aborts the batch.

Usage:
    async with DatoCmsNode.from_settings() as node:
        results = await node.execute(
            [ExecutionItem(json={"sku": "A1", "price": "9.99"})],
            NodeParameters(
                resource="record",
                operation="upsert",
                item_type="model-id",
                fields={"mappingMode": "autoMapInputData", "matchingColumns": ["sku"]},
            ),
        )
"""

from collections.abc import Mapping, Sequence
from typing import Any

import httpx
import pydantic
import structlog

from datocms_node.client.client import MAX_RECORDS_PAGE, MAX_UPLOADS_PAGE, DatoClient
from datocms_node.config import get_settings
from datocms_node.config.settings import Settings
from datocms_node.errors import ConfigurationError, DatoNodeError, ValidationError
from datocms_node.filters import build_record_filter
from datocms_node.mapping.fields import fetch_field_descriptors
from datocms_node.mapping.normalize import normalize_fields
from datocms_node.models.enums import MappingMode, Operation, Resource
from datocms_node.models.params import (
    ExecutionItem,
    ItemResult,
    NodeParameters,
    ResourceMapperValue,
)
from datocms_node.observability.logging import get_logger
from datocms_node.observability.metrics import OPERATION_COUNT
from datocms_node.uploads import bulk_upload, create_upload
from datocms_node.upsert import UpsertResolver

logger = get_logger(__name__)

ParametersInput = NodeParameters | Mapping[str, Any]


class DatoCmsNode:
    """Runs node operations against one DatoCMS project."""

    HANDLERS: dict[tuple[Resource, Operation], str] = {
        (Resource.RECORD, Operation.CREATE): "_record_create",
        (Resource.RECORD, Operation.GET): "_record_get",
        (Resource.RECORD, Operation.GET_ALL): "_record_get_all",
        (Resource.RECORD, Operation.UPDATE): "_record_update",
        (Resource.RECORD, Operation.UPSERT): "_record_upsert",
        (Resource.RECORD, Operation.DELETE): "_record_delete",
        (Resource.RECORD, Operation.PUBLISH): "_record_publish",
        (Resource.RECORD, Operation.UNPUBLISH): "_record_unpublish",
        (Resource.UPLOAD, Operation.CREATE): "_upload_create",
        (Resource.UPLOAD, Operation.BULK_CREATE): "_upload_bulk_create",
        (Resource.UPLOAD, Operation.GET): "_upload_get",
        (Resource.UPLOAD, Operation.GET_ALL): "_upload_get_all",
        (Resource.UPLOAD, Operation.DELETE): "_upload_delete",
        (Resource.ITEM_TYPE, Operation.GET): "_item_type_get",
        (Resource.ITEM_TYPE, Operation.GET_ALL): "_item_type_get_all",
        (Resource.BLOCK, Operation.GET): "_block_get",
        (Resource.BLOCK, Operation.GET_ALL): "_block_get_all",
    }

    def __init__(self, client: DatoClient, settings: Settings | None = None) -> None:
        """Initialize the node.

        Args:
            client: CMA client used for every remote call
            settings: Node settings; defaults are used when omitted
        """
        self._client = client
        self._settings = settings or Settings()
        self._record_metrics = self._settings.observability.metrics.enabled
        self._upserts = UpsertResolver(client, record_metrics=self._record_metrics)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DatoCmsNode":
        """Create a node and its client from settings."""
        settings = settings or get_settings()
        return cls(DatoClient.from_settings(settings, transport=transport), settings)

    async def __aenter__(self) -> "DatoCmsNode":
        return self

    async def __aexit__(self, *args) -> None:
        await self._client.close()

    async def execute(
        self,
        items: Sequence[ExecutionItem],
        parameters: ParametersInput | Sequence[ParametersInput],
        *,
        continue_on_fail: bool = False,
    ) -> list[ItemResult]:
        """Run the configured operation for every input item.

        Args:
            items: Input items, processed sequentially
            parameters: One parameter bundle for all items, or one per item
            continue_on_fail: Capture item errors instead of aborting

        Returns:
            One ItemResult per input item, in input order

        Raises:
            DatoNodeError: The first item error, when continue_on_fail is off
        """
        results: list[ItemResult] = []
        for index, item in enumerate(items):
            result = await self._run_item(index, item, self._parameters_at(parameters, index))
            if result.error is not None and not continue_on_fail:
                result.error.item_index = index
                raise result.error
            results.append(result)
        return results

    @staticmethod
    def _parameters_at(
        parameters: ParametersInput | Sequence[ParametersInput],
        index: int,
    ) -> ParametersInput:
        if isinstance(parameters, (NodeParameters, Mapping)):
            return parameters
        return parameters[index]

    async def _run_item(
        self,
        index: int,
        item: ExecutionItem,
        raw_params: ParametersInput,
    ) -> ItemResult:
        resource = operation = "unknown"
        with structlog.contextvars.bound_contextvars(item_index=index):
            try:
                params = _validate_parameters(raw_params)
                resource, operation = params.resource.value, params.operation.value
                data = await self.run(item, params)
            except DatoNodeError as e:
                self._count(resource, operation, "error")
                logger.warning(
                    "item_failed",
                    resource=resource,
                    operation=operation,
                    error_code=e.error_code.value,
                    error=e.message,
                )
                return ItemResult(json={"error": e.message}, paired_item=index, error=e)

        self._count(resource, operation, "success")
        return ItemResult(json=data, paired_item=index)

    async def run(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        """Run one operation for one item and return its output JSON."""
        handler_name = self.HANDLERS.get((params.resource, params.operation))
        if handler_name is None:
            raise ConfigurationError(
                f"Operation '{params.operation.value}' is not supported "
                f"for resource '{params.resource.value}'"
            )
        handler = getattr(self, handler_name)
        data = await handler(item, params)
        return data if data is not None else {}

    def _count(self, resource: str, operation: str, status: str) -> None:
        if self._record_metrics:
            OPERATION_COUNT.labels(resource=resource, operation=operation, status=status).inc()

    # Records
    async def _prepare_fields(
        self,
        item: ExecutionItem,
        params: NodeParameters,
        item_type: str,
    ) -> dict[str, Any]:
        descriptors = await fetch_field_descriptors(self._client, item_type)
        return normalize_fields(_raw_fields(item, params), descriptors, params.default_locale)

    async def _record_create(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        item_type = _require(params.item_type, "Item Type")
        fields = await self._prepare_fields(item, params, item_type)
        record = await self._client.create_item(item_type, fields)
        if params.auto_publish:
            record = await self._client.publish_item(record["id"])
        return record

    async def _record_get(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        return await self._client.find_item(_require(params.record_id, "Record ID"))

    async def _record_get_all(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        item_type = _require(params.item_type, "Item Type")
        query: dict[str, Any] = {"filter": build_record_filter(item_type, params.filters)}

        if params.return_all:
            results = [record async for record in self._client.iter_items(query)]
        else:
            query["page"] = {"limit": min(params.limit, MAX_RECORDS_PAGE), "offset": 0}
            results = await self._client.list_items(query)

        return {
            "results": results,
            "count": len(results),
            "query": {
                "itemType": item_type,
                "filters": [f.model_dump(by_alias=True, mode="json") for f in params.filters],
                "returnAll": params.return_all,
                "limit": None if params.return_all else params.limit,
            },
        }

    async def _record_update(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        record_id = _require(params.record_id, "Record ID")
        item_type = params.item_type
        if not item_type:
            existing = await self._client.find_item(record_id)
            item_type = (existing.get("item_type") or {}).get("id")
            item_type = _require(item_type, "Item Type")

        fields = await self._prepare_fields(item, params, item_type)
        record = await self._client.update_item(record_id, fields)
        if params.auto_publish:
            record = await self._client.publish_item(record["id"])
        return record

    async def _record_upsert(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        mapper = params.fields or ResourceMapperValue()
        outcome = await self._upserts.resolve(
            params.item_type,
            _raw_fields(item, params),
            mapper.matching_columns,
            create_if_not_found=params.create_if_not_found,
            auto_publish=params.auto_publish,
            default_locale=params.default_locale,
        )
        return outcome.record

    async def _record_delete(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        return await self._client.destroy_item(_require(params.record_id, "Record ID"))

    async def _record_publish(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        return await self._client.publish_item(_require(params.record_id, "Record ID"))

    async def _record_unpublish(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        return await self._client.unpublish_item(_require(params.record_id, "Record ID"))

    # Uploads
    async def _upload_create(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        return await create_upload(self._client, item, params)

    async def _upload_bulk_create(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        uploads = self._settings.uploads
        concurrency = min(params.concurrency or uploads.concurrency, uploads.max_concurrency)
        return await bulk_upload(
            self._client,
            item,
            params,
            concurrency,
            record_metrics=self._record_metrics,
        )

    async def _upload_get(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        return await self._client.find_upload(_require(params.upload_id, "Upload ID"))

    async def _upload_get_all(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        collection = params.filter_by_collection

        if params.return_all:
            uploads = [upload async for upload in self._client.iter_uploads()]
        else:
            uploads = await self._client.list_uploads(
                {"page": {"limit": min(params.limit, MAX_UPLOADS_PAGE), "offset": 0}}
            )

        # The CMA has no server-side collection filter for uploads
        if collection:
            uploads = [
                upload
                for upload in uploads
                if (upload.get("upload_collection") or {}).get("id") == collection
            ]

        return {
            "results": uploads,
            "count": len(uploads),
            "query": {
                "filterByCollection": collection,
                "returnAll": params.return_all,
                "limit": None if params.return_all else params.limit,
            },
        }

    async def _upload_delete(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        return await self._client.destroy_upload(_require(params.upload_id, "Upload ID"))

    # Item types and blocks
    async def _item_type_get(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        item_type_id = _require(params.item_type_id or params.item_type, "Item Type ID")
        return await self._client.find_item_type(item_type_id)

    async def _item_type_get_all(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        item_types = await self._client.list_item_types()
        return _listing(item_types, params)

    async def _block_get(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        block_id = _require(params.item_type_id or params.item_type, "Block ID")
        block = await self._client.find_item_type(block_id)
        if not block.get("modular_block"):
            raise ValidationError(f"Item type '{block_id}' is not a block model", field="itemTypeId")
        return block

    async def _block_get_all(self, item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
        item_types = await self._client.list_item_types()
        return _listing([t for t in item_types if t.get("modular_block")], params)


def _validate_parameters(raw_params: ParametersInput) -> NodeParameters:
    if isinstance(raw_params, NodeParameters):
        return raw_params
    try:
        return NodeParameters.model_validate(dict(raw_params))
    except pydantic.ValidationError as e:
        raise ConfigurationError(f"Invalid node parameters: {e}") from e


def _require(value: str | None, label: str) -> str:
    if not value or not str(value).strip():
        raise ConfigurationError(f"{label} is required")
    return value


def _raw_fields(item: ExecutionItem, params: NodeParameters) -> dict[str, Any]:
    mapper = params.fields or ResourceMapperValue()
    if mapper.mapping_mode is MappingMode.AUTO_MAP_INPUT_DATA:
        return dict(item.json)
    return dict(mapper.value or {})


def _listing(resources: list[dict[str, Any]], params: NodeParameters) -> dict[str, Any]:
    selected = resources if params.return_all else resources[: params.limit]
    return {
        "results": selected,
        "count": len(selected),
        "query": {
            "returnAll": params.return_all,
            "limit": None if params.return_all else params.limit,
        },
    }
