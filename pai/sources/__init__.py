"""Source fetchers - one per supported platform."""

from pai.sources.base import SourceFetcher, create_client, create_title
from pai.sources.bearblog import BearBlogFetcher
from pai.sources.bluesky import BlueskyFetcher, at_uri_to_url
from pai.sources.leaflet import LeafletFetcher
from pai.sources.substack import SubstackFetcher
from pai.sources.registry import create_fetcher

__all__ = [
    "SourceFetcher",
    "SubstackFetcher",
    "BlueskyFetcher",
    "LeafletFetcher",
    "BearBlogFetcher",
    "create_client",
    "create_fetcher",
    "create_title",
    "at_uri_to_url",
]
