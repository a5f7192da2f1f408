"""RSS/Atom feed fetching shared by the blog platforms."""

import logging
import re
from abc import abstractmethod
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import feedparser

from pai.errors import ParseError
from pai.models import Item, SourceKind, format_timestamp, now_timestamp
from pai.sources.base import SourceFetcher, create_title
from pai.store.base import Store


logger = logging.getLogger(__name__)


def _parse_date(entry: dict[str, Any]) -> str | None:
    """Publish time of a feed entry as a UTC timestamp, if it has one."""
    # feedparser normalizes *_parsed fields to UTC
    for field in ["published_parsed", "updated_parsed"]:
        if entry.get(field):
            try:
                return format_timestamp(datetime(*entry[field][:6], tzinfo=timezone.utc))
            except (TypeError, ValueError):
                pass

    for field in ["published", "updated"]:
        if entry.get(field):
            try:
                return format_timestamp(parsedate_to_datetime(entry[field]))
            except (TypeError, ValueError):
                pass

    return None


def _extract_text(html: str) -> str:
    """Extract plain text from HTML content."""
    text = re.sub(r"<[^>]+>", "", html)
    text = text.replace("&nbsp;", " ")
    text = text.replace("&amp;", "&")
    text = text.replace("&lt;", "<")
    text = text.replace("&gt;", ">")
    text = text.replace("&quot;", '"')
    return re.sub(r"\s+", " ", text).strip()


def _author(entry: dict[str, Any]) -> str | None:
    if entry.get("author"):
        return entry["author"]
    authors = entry.get("authors") or []
    if authors and authors[0].get("name"):
        return authors[0]["name"]
    return None


def parse_feed(content: bytes, url: str) -> feedparser.FeedParserDict:
    """Parse a feed body, rejecting anything that is not a syndication feed."""
    feed = feedparser.parse(content)
    if not feed.entries and (feed.bozo or not feed.get("version")):
        reason = feed.get("bozo_exception") or "no RSS or Atom content found"
        raise ParseError(f"Invalid feed at {url}: {reason}")
    return feed


def entry_to_item(
    entry: dict[str, Any],
    kind: SourceKind,
    source_id: str,
) -> Item | None:
    """Map one feed entry to an Item, or None if it cannot be identified."""
    item_id = entry.get("id") or entry.get("link")
    if not item_id:
        return None

    summary = entry.get("summary") or None
    content_html = None
    if entry.get("content"):
        content_html = entry["content"][0].get("value") or None

    title = entry.get("title") or None
    if title is None:
        body = summary or content_html
        if body:
            title = create_title(_extract_text(body)) or None

    now = now_timestamp()
    return Item(
        id=item_id,
        source_kind=kind,
        source_id=source_id,
        author=_author(entry),
        title=title,
        summary=summary,
        url=entry.get("link") or item_id,
        content_html=content_html,
        published_at=_parse_date(entry) or now,
        created_at=now,
    )


class FeedFetcher(SourceFetcher):
    """Fetcher for platforms that publish a plain RSS or Atom feed.

    Subclasses only say where the feed lives and which source id to tag.
    """

    @property
    @abstractmethod
    def feed_url(self) -> str:
        pass

    async def sync(self, store: Store) -> int:
        url = self.feed_url
        logger.info("Syncing %s feed %s", self.kind, url)

        response = await self._get(url)
        feed = parse_feed(response.content, url)

        count = 0
        for entry in feed.entries:
            item = entry_to_item(entry, self.kind, self.source_id)
            if item is None:
                logger.warning("Skipping entry without id or link in %s", url)
                continue
            store.upsert_item(item)
            count += 1

        logger.info("Synced %d item(s) from %s", count, url)
        return count
