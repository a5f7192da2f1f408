"""Rendering items as JSON, NDJSON or RSS."""

import json
import xml.etree.ElementTree as ET
from datetime import datetime, timezone
from email.utils import format_datetime
from enum import Enum
from typing import Iterable

from pai.errors import InvalidArgumentError
from pai.models import Item


CHANNEL_TITLE = "Personal Activity Index"
CHANNEL_LINK = "https://personal-activity-index.local/"
CHANNEL_DESCRIPTION = "Aggregated feed exported by the Personal Activity Index."


class ExportFormat(Enum):
    JSON = "json"
    NDJSON = "ndjson"
    RSS = "rss"

    @classmethod
    def parse(cls, value: str) -> "ExportFormat":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown export format '{value}'. Use json, ndjson or rss."
            ) from None


def to_json(items: Iterable[Item]) -> str:
    return json.dumps([i.to_dict() for i in items], indent=2, ensure_ascii=False) + "\n"


def to_ndjson(items: Iterable[Item]) -> str:
    return "".join(json.dumps(i.to_dict(), ensure_ascii=False) + "\n" for i in items)


def _rfc2822(timestamp: str) -> str:
    try:
        dt = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return format_datetime(dt.astimezone(timezone.utc))


def to_rss(
    items: Iterable[Item],
    title: str = CHANNEL_TITLE,
    link: str = CHANNEL_LINK,
    description: str = CHANNEL_DESCRIPTION,
) -> str:
    """Render items as an RSS 2.0 document."""
    rss = ET.Element("rss", {"version": "2.0"})
    channel = ET.SubElement(rss, "channel")
    ET.SubElement(channel, "title").text = title
    ET.SubElement(channel, "link").text = link
    ET.SubElement(channel, "description").text = description

    for item in items:
        entry = ET.SubElement(channel, "item")
        ET.SubElement(entry, "title").text = item.title or item.summary or item.url
        ET.SubElement(entry, "link").text = item.url
        ET.SubElement(entry, "guid", {"isPermaLink": "false"}).text = item.id
        ET.SubElement(entry, "pubDate").text = _rfc2822(item.published_at)
        ET.SubElement(entry, "author").text = item.author or "Unknown"
        ET.SubElement(entry, "description").text = item.summary or item.content_html or ""
        ET.SubElement(entry, "category").text = str(item.source_kind)

    ET.indent(rss)
    body = ET.tostring(rss, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def render(items: list[Item], fmt: ExportFormat) -> str:
    match fmt:
        case ExportFormat.JSON:
            return to_json(items)
        case ExportFormat.NDJSON:
            return to_ndjson(items)
        case ExportFormat.RSS:
            return to_rss(items)
