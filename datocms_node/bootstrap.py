"""Bootstrap module for embedding the node in a host process.

Loads configuration, configures logging and builds a ready node:

    from datocms_node.bootstrap import bootstrap

    node = bootstrap()
    async with node:
        results = await node.execute(items, parameters)
"""

import httpx

from datocms_node.config import get_settings
from datocms_node.config.settings import Settings
from datocms_node.node import DatoCmsNode
from datocms_node.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)


def bootstrap(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DatoCmsNode:
    """Configure logging and create a DatoCmsNode from settings.

    Args:
        settings: Settings to use (default: loaded from config and env)
        transport: Optional httpx transport for the CMA client

    Returns:
        A node with an open client; use it as an async context manager
        to close the client
    """
    settings = settings or get_settings()

    logging_config = settings.observability.logging
    setup_logging(
        level=logging_config.level,
        format=logging_config.format,
        redact_pii=logging_config.redact_pii,
    )

    node = DatoCmsNode.from_settings(settings, transport=transport)
    logger.info(
        "node_bootstrapped",
        app_name=settings.app_name,
        environment=settings.credentials.environment,
        base_url=settings.credentials.base_url,
    )
    return node
