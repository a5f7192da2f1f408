"""Bear Blog sites."""

import httpx

from pai.config import BearBlogConfig
from pai.models import SourceKind
from pai.sources.feed import FeedFetcher


class BearBlogFetcher(FeedFetcher):
    """Reads the RSS flavour of a Bear Blog feed, `{base_url}/feed/?type=rss`."""

    def __init__(self, config: BearBlogConfig, client: httpx.AsyncClient | None = None):
        super().__init__(client)
        self.config = config

    @property
    def kind(self) -> SourceKind:
        return SourceKind.BEARBLOG

    @property
    def source_id(self) -> str:
        return self.config.source_id

    @property
    def feed_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/feed/?type=rss"
