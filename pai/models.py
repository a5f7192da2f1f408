"""Core data models for PAI."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pai.errors import InvalidArgumentError, UnknownSourceKindError


class SourceKind(Enum):
    """Platform an item was collected from."""
    SUBSTACK = "substack"
    BLUESKY = "bluesky"
    LEAFLET = "leaflet"
    BEARBLOG = "bearblog"

    @classmethod
    def parse(cls, value: str) -> "SourceKind":
        """Parse a kind name, ignoring case."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise UnknownSourceKindError(value) from None

    def __str__(self) -> str:
        return self.value


def format_timestamp(dt: datetime) -> str:
    """Render a datetime as UTC RFC 3339 with seconds precision.

    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def now_timestamp() -> str:
    """Current time as a stored timestamp string."""
    return format_timestamp(datetime.now(timezone.utc))


@dataclass
class Item:
    """A normalized piece of content from any source.

    `(source_kind, id)` identifies an item; re-syncing the same pair
    overwrites the stored row rather than adding a new one.
    """
    id: str
    source_kind: SourceKind
    source_id: str
    url: str
    published_at: str
    created_at: str
    author: str | None = None
    title: str | None = None
    summary: str | None = None
    content_html: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the wire field order used by exports and the API."""
        return {
            "id": self.id,
            "source_kind": str(self.source_kind),
            "source_id": self.source_id,
            "author": self.author,
            "title": self.title,
            "summary": self.summary,
            "url": self.url,
            "content_html": self.content_html,
            "published_at": self.published_at,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Item":
        return cls(
            id=d["id"],
            source_kind=SourceKind.parse(d["source_kind"]),
            source_id=d["source_id"],
            url=d["url"],
            published_at=d["published_at"],
            created_at=d["created_at"],
            author=d.get("author"),
            title=d.get("title"),
            summary=d.get("summary"),
            content_html=d.get("content_html"),
        )


@dataclass
class ListFilter:
    """Constraints for listing stored items.

    Every set field narrows the result (logical AND). `query` is a
    case-insensitive substring match against title OR summary. `since`
    is an inclusive lower bound on `published_at`.
    """
    source_kind: SourceKind | None = None
    source_id: str | None = None
    limit: int | None = None
    since: str | None = None
    query: str | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and self.limit <= 0:
            raise InvalidArgumentError("Limit must be greater than zero")


@dataclass
class SourceStats:
    """Item count for one source kind."""
    kind: SourceKind
    count: int
