"""Sample sources for TokenWatch."""

from tokenwatch.sources.base import BaseSampleSource
from tokenwatch.sources.mock import MockSampleSource
from tokenwatch.sources.store import StoreSampleSource

__all__ = [
    "BaseSampleSource",
    "MockSampleSource",
    "StoreSampleSource",
]
