"""Upload creation, single and bulk.

Bulk upload runs in three explicit steps: extract the URLs from the input
item, upload them in waves of bounded concurrency, then substitute the
uploaded URLs in the extracted source with upload references. The
extraction result is passed from step to step as data.
"""

import asyncio
import contextlib
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from datocms_node.client.client import DatoClient
from datocms_node.errors import RemoteError, ValidationError
from datocms_node.models.enums import UploadSource, UrlExtractionMode
from datocms_node.models.params import ExecutionItem, NodeParameters
from datocms_node.observability.logging import get_logger
from datocms_node.observability.metrics import BULK_UPLOAD_RESULTS

logger = get_logger(__name__)

URL_PATTERN = re.compile(r"^https?://\S+$", re.IGNORECASE)
URL_SEPARATORS = re.compile(r"[,\n]")


@dataclass
class UrlExtraction:
    """What the extraction step found."""

    mode: UrlExtractionMode
    source: Any
    urls: list[str]


@dataclass
class UploadAttempt:
    """Outcome of uploading one URL."""

    url: str
    upload: dict[str, Any] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.upload is not None


async def create_upload(
    client: DatoClient,
    item: ExecutionItem,
    params: NodeParameters,
) -> dict[str, Any]:
    """Create one upload from the item's binary data or from a URL."""
    if params.upload_source is UploadSource.BINARY:
        upload = await _upload_binary(client, item, params)
    elif params.upload_source is UploadSource.URL:
        if not params.file_url:
            raise ValidationError(
                "File URL is required when using URL upload source", field="fileUrl"
            )
        upload = await client.create_upload_from_url(
            params.file_url,
            skip_creation_if_already_exists=params.skip_creation_if_already_exists,
            upload_collection=params.upload_collection,
        )
    else:
        raise ValidationError("Invalid upload source specified", field="uploadSource")

    if params.include_other_input_fields:
        return {**item.json, **upload}
    return upload


async def _upload_binary(
    client: DatoClient,
    item: ExecutionItem,
    params: NodeParameters,
) -> dict[str, Any]:
    binary = item.binary.get(params.binary_property_name)
    if binary is None:
        raise ValidationError(
            f"No binary data property '{params.binary_property_name}' exists on item",
            field="binaryPropertyName",
        )

    filename = binary.file_name or "upload.bin"
    with tempfile.NamedTemporaryFile(prefix="datocms-upload-", delete=False) as handle:
        handle.write(binary.data)
        temp_path = Path(handle.name)

    try:
        return await client.create_upload_from_file(
            temp_path,
            filename=filename,
            skip_creation_if_already_exists=params.skip_creation_if_already_exists,
            upload_collection=params.upload_collection,
        )
    finally:
        with contextlib.suppress(OSError):
            temp_path.unlink()


def _split_urls(text: str) -> list[str]:
    parts = [part.strip() for part in URL_SEPARATORS.split(text)]
    urls = [part for part in parts if part]
    for url in urls:
        if not URL_PATTERN.match(url):
            raise ValidationError(f"Invalid upload URL: {url}")
    return urls


def _scan_urls(value: Any) -> list[str]:
    """Collect every URL-looking string in a nested structure."""
    if isinstance(value, str):
        stripped = value.strip()
        return [stripped] if URL_PATTERN.match(stripped) else []
    if isinstance(value, dict):
        return [url for v in value.values() for url in _scan_urls(v)]
    if isinstance(value, (list, tuple)):
        return [url for v in value for url in _scan_urls(v)]
    return []


def extract_urls(item: ExecutionItem, params: NodeParameters) -> UrlExtraction:
    """Find the URLs to upload and the object they came from.

    Raises:
        ValidationError: If the source is missing, holds an invalid URL,
            or yields no URL at all
    """
    mode = params.url_extraction_mode

    if mode is UrlExtractionMode.FIELD:
        if params.url_field not in item.json:
            raise ValidationError(
                f"Input item has no '{params.url_field}' property", field="urlField"
            )
        source = item.json[params.url_field]
        if isinstance(source, str):
            urls = _split_urls(source)
        elif isinstance(source, (list, tuple)):
            urls = [
                url
                for entry in source
                for url in (_split_urls(entry) if isinstance(entry, str) else _scan_urls(entry))
            ]
        else:
            urls = _scan_urls(source)
    elif mode is UrlExtractionMode.LIST:
        source = params.url_list or ""
        urls = _split_urls(source)
    else:
        source = item.json
        urls = _scan_urls(source)

    unique_urls = list(dict.fromkeys(urls))
    if not unique_urls:
        raise ValidationError("No URLs found to upload")

    return UrlExtraction(mode=mode, source=source, urls=unique_urls)


async def upload_urls(
    client: DatoClient,
    urls: list[str],
    concurrency: int,
    *,
    skip_creation_if_already_exists: bool = True,
    upload_collection: str | None = None,
    record_metrics: bool = True,
) -> list[UploadAttempt]:
    """Upload URLs in waves of at most ``concurrency`` parallel calls.

    Each wave is awaited in full before the next one starts. A failed URL
    is recorded on its attempt and does not stop the others.
    """

    async def attempt(url: str) -> UploadAttempt:
        try:
            upload = await client.create_upload_from_url(
                url,
                skip_creation_if_already_exists=skip_creation_if_already_exists,
                upload_collection=upload_collection,
            )
        except RemoteError as e:
            logger.warning("bulk_upload_url_failed", url=url, error=e.message)
            return UploadAttempt(url=url, error=e.message)
        return UploadAttempt(url=url, upload=upload)

    attempts: list[UploadAttempt] = []
    for wave, start in enumerate(range(0, len(urls), concurrency)):
        chunk = urls[start : start + concurrency]
        results = await asyncio.gather(*(attempt(url) for url in chunk))
        attempts.extend(results)
        logger.info(
            "bulk_upload_wave",
            wave=wave,
            size=len(chunk),
            failed=sum(1 for r in results if not r.ok),
        )

    if record_metrics:
        for result in attempts:
            BULK_UPLOAD_RESULTS.labels(result="success" if result.ok else "failure").inc()
    return attempts


def _replace(value: Any, references: dict[str, dict[str, str]]) -> Any:
    if isinstance(value, str):
        return references.get(value.strip(), value)
    if isinstance(value, dict):
        return {k: _replace(v, references) for k, v in value.items()}
    if isinstance(value, list):
        return [_replace(v, references) for v in value]
    return value


def replace_urls(extraction: UrlExtraction, attempts: list[UploadAttempt]) -> Any:
    """Replace uploaded URLs in the extracted source with upload references.

    A source string holding several URLs becomes a list. URLs that failed
    to upload are left as they were.
    """
    references = {
        a.url: {"upload_id": a.upload["id"]} for a in attempts if a.upload is not None
    }
    if isinstance(extraction.source, str):
        return [references.get(url, url) for url in extraction.urls]
    return _replace(extraction.source, references)


async def bulk_upload(
    client: DatoClient,
    item: ExecutionItem,
    params: NodeParameters,
    concurrency: int,
    record_metrics: bool = True,
) -> dict[str, Any]:
    """Extract, upload and replace for one input item."""
    extraction = extract_urls(item, params)
    attempts = await upload_urls(
        client,
        extraction.urls,
        concurrency,
        skip_creation_if_already_exists=params.skip_creation_if_already_exists,
        upload_collection=params.upload_collection,
        record_metrics=record_metrics,
    )

    output: dict[str, Any] = {
        "uploads": [a.upload for a in attempts if a.upload is not None],
        "failed": [{"url": a.url, "error": a.error} for a in attempts if not a.ok],
        "count": sum(1 for a in attempts if a.ok),
        "mode": extraction.mode.value,
    }
    if params.replace_urls:
        output["result"] = replace_urls(extraction, attempts)
    if params.include_other_input_fields:
        return {**item.json, **output}
    return output
