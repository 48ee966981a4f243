"""DatoCMS Content Management API client.

Async client for the subset of the CMA the node needs. Responses are
JSON:API documents; the client flattens every resource into a plain dict
(``id``, ``type``, attributes, relationship references and ``meta``).

Usage:
    from datocms_node.client import DatoClient

    async with DatoClient(api_token="...") as client:
        fields = await client.list_fields("item-type-id")
        record = await client.create_item("item-type-id", {"title": "Hello"})
"""

import asyncio
import hashlib
import time
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import httpx

from datocms_node.config.settings import Settings
from datocms_node.errors import ConfigurationError, RemoteError
from datocms_node.observability.logging import get_logger
from datocms_node.observability.metrics import REMOTE_ERRORS, REMOTE_REQUEST_LATENCY

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://site-api.datocms.com"
MAX_RECORDS_PAGE = 500
MAX_UPLOADS_PAGE = 50


def encode_params(params: dict[str, Any] | None, prefix: str = "") -> dict[str, str]:
    """Flatten nested query parameters into bracket notation.

    {"filter": {"fields": {"sku": {"eq": "A1"}}}} becomes
    {"filter[fields][sku][eq]": "A1"}. Lists are comma-joined.
    """
    encoded: dict[str, str] = {}
    for key, value in (params or {}).items():
        name = f"{prefix}[{key}]" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, dict):
            encoded.update(encode_params(value, name))
        elif isinstance(value, (list, tuple)):
            encoded[name] = ",".join(_scalar(v) for v in value)
        else:
            encoded[name] = _scalar(value)
    return encoded


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def deserialize_resource(data: dict[str, Any]) -> dict[str, Any]:
    """Flatten one JSON:API resource object."""
    result: dict[str, Any] = {"id": data.get("id"), "type": data.get("type")}
    result.update(data.get("attributes") or {})
    for name, relationship in (data.get("relationships") or {}).items():
        result[name] = relationship.get("data") if isinstance(relationship, dict) else None
    if "meta" in data:
        result["meta"] = data["meta"]
    return result


def deserialize_document(document: dict[str, Any]) -> Any:
    """Flatten the primary data of a JSON:API document."""
    data = document.get("data")
    if isinstance(data, list):
        return [deserialize_resource(d) for d in data]
    if isinstance(data, dict):
        return deserialize_resource(data)
    return data


def _error_message(response: httpx.Response) -> tuple[str, Any]:
    """Extract the remote error message and details from a failed response."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}", None

    errors = body.get("data") if isinstance(body, dict) else None
    if isinstance(errors, list) and errors:
        parts = []
        for error in errors:
            attributes = error.get("attributes") or {}
            code = attributes.get("code", "UNKNOWN_ERROR")
            details = attributes.get("details")
            parts.append(f"{code} {details}" if details else code)
        return ", ".join(parts), body
    return response.text, body


class DatoClient:
    """Async client for the DatoCMS Content Management API.

    Attributes:
        base_url: Base URL of the CMA
        environment: Sandbox environment, or None for the primary one
    """

    def __init__(
        self,
        api_token: str,
        *,
        environment: str | None = "main",
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        page_size: int = 100,
        job_poll_interval: float = 1.0,
        job_poll_attempts: int = 60,
        record_metrics: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            api_token: CMA API token
            environment: Environment name sent as X-Environment
            base_url: Base URL of the CMA
            timeout: Request timeout in seconds
            page_size: Page size used by the paged iterators
            job_poll_interval: Seconds between async job polls
            job_poll_attempts: Polls before a job is reported as failed
            record_metrics: Record Prometheus request metrics
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.environment = environment
        self.page_size = page_size
        self._token = api_token
        self._job_poll_interval = job_poll_interval
        self._job_poll_attempts = job_poll_attempts
        self._record_metrics = record_metrics
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "DatoClient":
        """Create a client from node settings."""
        token = settings.credentials.api_token
        if token is None:
            raise ConfigurationError("No DatoCMS API token configured")
        return cls(
            token.get_secret_value(),
            environment=settings.credentials.environment,
            base_url=settings.credentials.base_url,
            timeout=settings.client.timeout,
            page_size=settings.client.page_size,
            job_poll_interval=settings.client.job_poll_interval,
            job_poll_attempts=settings.client.job_poll_attempts,
            record_metrics=settings.observability.metrics.enabled,
            transport=transport,
        )

    async def __aenter__(self) -> "DatoClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/json",
            "Content-Type": "application/vnd.api+json",
            "X-Api-Version": "3",
        }
        if self.environment:
            headers["X-Environment"] = self.environment
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict | None = None,
        params: dict | None = None,
    ) -> dict:
        """Make a CMA request and return the decoded JSON:API document."""
        started = time.perf_counter()
        try:
            response = await self._client.request(
                method=method,
                url=path,
                headers=self._headers(),
                json=json,
                params=encode_params(params),
            )
        except httpx.HTTPError as e:
            self._observe(method, "network_error", started)
            logger.warning("remote_request_failed", method=method, path=path, error=str(e))
            raise RemoteError(str(e) or type(e).__name__) from e

        self._observe(method, str(response.status_code), started)

        if response.status_code >= 400:
            message, details = _error_message(response)
            logger.warning(
                "remote_request_failed",
                method=method,
                path=path,
                status_code=response.status_code,
                error=message,
            )
            raise RemoteError(
                message=message,
                status_code=response.status_code,
                details=details,
            )

        if response.status_code == 204 or not response.content:
            return {}

        return response.json()

    def _observe(self, method: str, status: str, started: float) -> None:
        if not self._record_metrics:
            return
        REMOTE_REQUEST_LATENCY.labels(method=method, status=status).observe(
            time.perf_counter() - started
        )
        if not status.isdigit() or int(status) >= 400:
            REMOTE_ERRORS.labels(method=method, status=status).inc()

    async def _resolve(self, document: dict) -> Any:
        """Deserialize a document, waiting for it first if it is an async job."""
        data = document.get("data")
        if isinstance(data, dict) and data.get("type") == "job":
            return await self._wait_for_job(data["id"])
        return deserialize_document(document)

    async def _wait_for_job(self, job_id: str) -> Any:
        """Poll a job result until the job completes."""
        for _ in range(self._job_poll_attempts):
            try:
                document = await self._request("GET", f"/job-results/{job_id}")
            except RemoteError as e:
                if e.status_code != 404:
                    raise
                await asyncio.sleep(self._job_poll_interval)
                continue

            result = deserialize_resource(document.get("data") or {})
            status = result.get("status", 200)
            payload = result.get("payload") or {}
            if status >= 400:
                errors = payload.get("data") if isinstance(payload, dict) else None
                codes = [
                    (e.get("attributes") or {}).get("code", "UNKNOWN_ERROR")
                    for e in errors or []
                ]
                raise RemoteError(
                    ", ".join(codes) or f"Job {job_id} failed",
                    status_code=status,
                    details=payload,
                )
            return deserialize_document(payload)

        raise RemoteError(f"Job {job_id} did not complete in time", status_code=504)

    async def _iterate(
        self,
        path: str,
        params: dict[str, Any] | None,
        page_size: int,
    ) -> AsyncIterator[dict[str, Any]]:
        offset = 0
        while True:
            page_params = dict(params or {})
            page_params["page"] = {"offset": offset, "limit": page_size}
            document = await self._request("GET", path, params=page_params)
            batch = deserialize_document(document) or []
            for resource in batch:
                yield resource

            offset += len(batch)
            total = (document.get("meta") or {}).get("total_count")
            if len(batch) < page_size or (total is not None and offset >= total):
                break

    # Site
    async def find_site(self) -> dict[str, Any]:
        """Get the project site, including its locales."""
        return await self._resolve(await self._request("GET", "/site"))

    async def test_credentials(self) -> bool:
        """Check that the token can read the site."""
        await self.find_site()
        return True

    # Item types and fields
    async def list_item_types(self) -> list[dict[str, Any]]:
        """List all models and block models."""
        return await self._resolve(await self._request("GET", "/item-types"))

    async def find_item_type(self, item_type_id: str) -> dict[str, Any]:
        """Get a model by ID."""
        return await self._resolve(await self._request("GET", f"/item-types/{item_type_id}"))

    async def list_fields(self, item_type_id: str) -> list[dict[str, Any]]:
        """List the fields of a model."""
        return await self._resolve(
            await self._request("GET", f"/item-types/{item_type_id}/fields")
        )

    # Records
    async def list_items(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """List records, one page."""
        return await self._resolve(await self._request("GET", "/items", params=params))

    def iter_items(
        self,
        params: dict[str, Any] | None = None,
        page_size: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Iterate over every record matching params, page by page."""
        size = min(page_size or self.page_size, MAX_RECORDS_PAGE)
        return self._iterate("/items", params, size)

    async def find_item(self, item_id: str) -> dict[str, Any]:
        """Get a record by ID."""
        return await self._resolve(await self._request("GET", f"/items/{item_id}"))

    async def create_item(self, item_type_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Create a record of the given model."""
        body = {
            "data": {
                "type": "item",
                "attributes": fields,
                "relationships": {
                    "item_type": {"data": {"type": "item_type", "id": item_type_id}},
                },
            }
        }
        return await self._resolve(await self._request("POST", "/items", json=body))

    async def update_item(self, item_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Update a record's fields."""
        body = {"data": {"type": "item", "id": item_id, "attributes": fields}}
        return await self._resolve(await self._request("PUT", f"/items/{item_id}", json=body))

    async def destroy_item(self, item_id: str) -> dict[str, Any]:
        """Delete a record."""
        return await self._resolve(await self._request("DELETE", f"/items/{item_id}"))

    async def publish_item(self, item_id: str) -> dict[str, Any]:
        """Publish a record."""
        return await self._resolve(await self._request("PUT", f"/items/{item_id}/publish"))

    async def unpublish_item(self, item_id: str) -> dict[str, Any]:
        """Unpublish a record."""
        return await self._resolve(await self._request("PUT", f"/items/{item_id}/unpublish"))

    # Uploads
    async def list_uploads(self, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """List uploads, one page."""
        return await self._resolve(await self._request("GET", "/uploads", params=params))

    def iter_uploads(
        self,
        params: dict[str, Any] | None = None,
        page_size: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Iterate over every upload, page by page."""
        size = min(page_size or MAX_UPLOADS_PAGE, MAX_UPLOADS_PAGE)
        return self._iterate("/uploads", params, size)

    async def find_upload(self, upload_id: str) -> dict[str, Any]:
        """Get an upload by ID."""
        return await self._resolve(await self._request("GET", f"/uploads/{upload_id}"))

    async def destroy_upload(self, upload_id: str) -> dict[str, Any]:
        """Delete an upload."""
        return await self._resolve(await self._request("DELETE", f"/uploads/{upload_id}"))

    async def list_upload_collections(self) -> list[dict[str, Any]]:
        """List upload collections."""
        return await self._resolve(await self._request("GET", "/upload-collections"))

    async def create_upload_from_file(
        self,
        path: str | Path,
        *,
        filename: str | None = None,
        skip_creation_if_already_exists: bool = False,
        upload_collection: str | None = None,
    ) -> dict[str, Any]:
        """Upload a local file."""
        file_path = Path(path)
        content = await asyncio.to_thread(file_path.read_bytes)
        return await self._create_upload(
            content,
            filename or file_path.name,
            skip_creation_if_already_exists=skip_creation_if_already_exists,
            upload_collection=upload_collection,
        )

    async def create_upload_from_url(
        self,
        url: str,
        *,
        filename: str | None = None,
        skip_creation_if_already_exists: bool = False,
        upload_collection: str | None = None,
    ) -> dict[str, Any]:
        """Download a remote file and upload it."""
        try:
            response = await self._client.get(url, follow_redirects=True)
        except httpx.HTTPError as e:
            raise RemoteError(f"Failed to download {url}: {e}") from e
        if response.status_code >= 400:
            raise RemoteError(
                f"Failed to download {url}: HTTP {response.status_code}",
                status_code=response.status_code,
            )

        name = filename or Path(urlparse(url).path).name or "upload.bin"
        return await self._create_upload(
            response.content,
            name,
            skip_creation_if_already_exists=skip_creation_if_already_exists,
            upload_collection=upload_collection,
        )

    async def _create_upload(
        self,
        content: bytes,
        filename: str,
        *,
        skip_creation_if_already_exists: bool,
        upload_collection: str | None,
    ) -> dict[str, Any]:
        if skip_creation_if_already_exists:
            md5 = hashlib.md5(content).hexdigest()
            existing = await self.list_uploads(
                {"filter": {"fields": {"md5": {"eq": md5}}}, "page": {"limit": 1}}
            )
            if existing:
                logger.info("upload_already_exists", upload_id=existing[0]["id"], md5=md5)
                return existing[0]

        upload_request = await self._resolve(
            await self._request(
                "POST",
                "/upload-requests",
                json={"data": {"type": "upload_request", "attributes": {"filename": filename}}},
            )
        )

        try:
            put = await self._client.put(
                upload_request["url"],
                content=content,
                headers=upload_request.get("request_headers") or {},
            )
        except httpx.HTTPError as e:
            raise RemoteError(f"Failed to store {filename}: {e}") from e
        if put.status_code >= 400:
            raise RemoteError(
                f"Failed to store {filename}: HTTP {put.status_code}",
                status_code=put.status_code,
            )

        body: dict[str, Any] = {
            "data": {"type": "upload", "attributes": {"path": upload_request["id"]}}
        }
        if upload_collection:
            body["data"]["relationships"] = {
                "upload_collection": {
                    "data": {"type": "upload_collection", "id": upload_collection}
                }
            }
        upload = await self._resolve(await self._request("POST", "/uploads", json=body))
        logger.info("upload_created", upload_id=upload.get("id"), filename=filename)
        return upload
