"""Leaflet publications."""

import httpx

from pai.config import LeafletConfig
from pai.models import SourceKind
from pai.sources.feed import FeedFetcher


class LeafletFetcher(FeedFetcher):

    def __init__(self, config: LeafletConfig, client: httpx.AsyncClient | None = None):
        super().__init__(client)
        self.config = config

    @property
    def kind(self) -> SourceKind:
        return SourceKind.LEAFLET

    @property
    def source_id(self) -> str:
        return self.config.source_id

    @property
    def feed_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/rss"
