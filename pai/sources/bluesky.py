"""Bluesky posts via the public AT Protocol AppView."""

import logging
import re
from datetime import datetime
from typing import Any

import httpx

from pai.config import BlueskyConfig
from pai.errors import ParseError
from pai.models import Item, SourceKind, format_timestamp, now_timestamp
from pai.sources.base import SourceFetcher, create_title
from pai.store.base import Store


logger = logging.getLogger(__name__)

AUTHOR_FEED_URL = "https://public.api.bsky.app/xrpc/app.bsky.feed.getAuthorFeed"
PAGE_SIZE = 50

AT_URI_PATTERN = re.compile(r"^at://([^/]+)/([^/]+)/([^/]+)$")


def at_uri_to_url(uri: str, handle: str) -> str:
    """Map a post URI to its bsky.app web URL.

    `at://did:plc:abc123/app.bsky.feed.post/xyz789` with handle
    `user.example` becomes `https://bsky.app/profile/user.example/post/xyz789`.
    """
    match = AT_URI_PATTERN.match(uri)
    if not match:
        raise ParseError(f"Invalid AT URI: {uri}")
    rkey = match.group(3)
    return f"https://bsky.app/profile/{handle}/post/{rkey}"


def _parse_created_at(value: Any) -> str | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return format_timestamp(datetime.fromisoformat(value.replace("Z", "+00:00")))
    except ValueError:
        return None


class BlueskyFetcher(SourceFetcher):
    """Fetches the most recent page of an account's own posts.

    Reposts appear in the author feed with a `reason` and are skipped, so
    only content written by the account is stored under its handle.
    """

    def __init__(self, config: BlueskyConfig, client: httpx.AsyncClient | None = None):
        super().__init__(client)
        self.config = config

    @property
    def kind(self) -> SourceKind:
        return SourceKind.BLUESKY

    @property
    def source_id(self) -> str:
        return self.config.handle

    async def sync(self, store: Store) -> int:
        logger.info("Syncing bluesky feed for %s", self.config.handle)

        response = await self._get(
            AUTHOR_FEED_URL,
            params={"actor": self.config.handle, "limit": PAGE_SIZE},
        )
        try:
            data = response.json()
        except ValueError as e:
            raise ParseError(f"Invalid JSON from Bluesky author feed: {e}") from e

        feed = data.get("feed") if isinstance(data, dict) else None
        if not isinstance(feed, list):
            raise ParseError("Bluesky author feed response has no 'feed' list")

        count = 0
        for entry in feed:
            if not isinstance(entry, dict):
                logger.warning("Skipping malformed feed entry: %r", entry)
                continue
            if entry.get("reason"):
                logger.debug("Skipping repost in %s feed", self.config.handle)
                continue
            try:
                item = self._post_to_item(entry.get("post"))
            except ParseError as e:
                logger.warning("Skipping post: %s", e)
                continue
            store.upsert_item(item)
            count += 1

        logger.info("Synced %d post(s) for %s", count, self.config.handle)
        return count

    def _post_to_item(self, post: Any) -> Item:
        if not isinstance(post, dict) or not isinstance(post.get("uri"), str):
            raise ParseError("post has no uri")

        uri = post["uri"]
        record = post.get("record")
        if not isinstance(record, dict):
            record = {}
        author = post.get("author")
        if not isinstance(author, dict):
            author = {}
        text = record.get("text")
        if not isinstance(text, str):
            text = ""
        handle = author.get("handle")
        if not isinstance(handle, str) or not handle:
            handle = self.config.handle
        now = now_timestamp()

        return Item(
            id=uri,
            source_kind=self.kind,
            source_id=self.source_id,
            author=handle,
            title=create_title(text) if text else None,
            summary=text or None,
            url=at_uri_to_url(uri, self.config.handle),
            content_html=None,
            published_at=_parse_created_at(record.get("createdAt")) or now,
            created_at=now,
        )
