"""Mapping from configured source instances to their fetchers."""

import httpx

from pai.config import (
    BearBlogConfig, BlueskyConfig, LeafletConfig, SourceEntry, SubstackConfig,
)
from pai.models import SourceKind
from pai.sources.base import SourceFetcher
from pai.sources.bearblog import BearBlogFetcher
from pai.sources.bluesky import BlueskyFetcher
from pai.sources.leaflet import LeafletFetcher
from pai.sources.substack import SubstackFetcher


def create_fetcher(
    kind: SourceKind,
    entry: SourceEntry,
    client: httpx.AsyncClient | None = None,
) -> SourceFetcher:
    """Build the fetcher for one configured source instance."""
    match kind, entry:
        case SourceKind.SUBSTACK, SubstackConfig():
            return SubstackFetcher(entry, client)
        case SourceKind.BLUESKY, BlueskyConfig():
            return BlueskyFetcher(entry, client)
        case SourceKind.LEAFLET, LeafletConfig():
            return LeafletFetcher(entry, client)
        case SourceKind.BEARBLOG, BearBlogConfig():
            return BearBlogFetcher(entry, client)
        case _:
            raise TypeError(f"No fetcher for {kind} with {type(entry).__name__}")
