"""Observability: structured logging and metrics.

Uses structlog for logging and Prometheus for metrics.
"""

from datocms_node.observability.logging import get_logger, setup_logging

__all__ = ["get_logger", "setup_logging"]
