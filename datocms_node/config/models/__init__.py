"""Configuration model exports.

    from datocms_node.config.models import CredentialsConfig, UploadsConfig
"""

from datocms_node.config.models.client import ClientConfig, UploadsConfig
from datocms_node.config.models.credentials import CredentialsConfig
from datocms_node.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)

__all__ = [
    "ClientConfig",
    "CredentialsConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "UploadsConfig",
]
