"""DatoCMS Content Management API client.

Usage:
    from datocms_node.client import DatoClient

    async with DatoClient(api_token="...", environment="main") as client:
        record = await client.find_item("record-id")
"""

from datocms_node.client.client import DatoClient, encode_params

__all__ = ["DatoClient", "encode_params"]
