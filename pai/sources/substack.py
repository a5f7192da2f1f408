"""Substack publications."""

import httpx

from pai.config import SubstackConfig
from pai.models import SourceKind
from pai.sources.feed import FeedFetcher


class SubstackFetcher(FeedFetcher):
    """Reads `{base_url}/feed`.

    Items are tagged with the publication's host, e.g. `me.substack.com`.
    """

    def __init__(self, config: SubstackConfig, client: httpx.AsyncClient | None = None):
        super().__init__(client)
        self.config = config

    @property
    def kind(self) -> SourceKind:
        return SourceKind.SUBSTACK

    @property
    def source_id(self) -> str:
        return self.config.source_id

    @property
    def feed_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/feed"
