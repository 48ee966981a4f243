"""Test factories for creating test data."""

from tests.factories.datocms import FieldFactory, RecordFactory, async_iter, make_client

__all__ = [
    "FieldFactory",
    "RecordFactory",
    "async_iter",
    "make_client",
]
