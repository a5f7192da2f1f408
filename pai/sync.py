"""Syncing configured sources into a store."""

import logging
from dataclasses import dataclass, field

import httpx

from pai.config import Config, SourceEntry
from pai.errors import PaiError
from pai.models import SourceKind
from pai.sources import create_client, create_fetcher
from pai.store.base import Store


logger = logging.getLogger(__name__)


@dataclass
class SelectedSource:
    """An enabled source instance chosen for a sync run."""
    kind: SourceKind
    source_id: str
    entry: SourceEntry


@dataclass
class SourceResult:
    kind: SourceKind
    source_id: str
    items: int = 0
    error: PaiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class SyncReport:
    """Outcome of syncing each selected source independently."""
    results: list[SourceResult] = field(default_factory=list)

    @property
    def synced(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> list[SourceResult]:
        return [r for r in self.results if not r.ok]

    @property
    def total_items(self) -> int:
        return sum(r.items for r in self.results)


def select_sources(
    config: Config,
    kind: SourceKind | None = None,
    source_id: str | None = None,
) -> list[SelectedSource]:
    """Enabled sources matching the filters, in configuration order.

    Substack and Bluesky come first, then Leaflet and Bear Blog entries in
    the order they are declared.
    """
    selected = []
    for entry_kind, entry in config.sources.entries():
        if not entry.enabled:
            continue
        if kind is not None and entry_kind != kind:
            continue
        if source_id is not None and entry.source_id != source_id:
            continue
        selected.append(SelectedSource(entry_kind, entry.source_id, entry))
    return selected


async def sync_all(
    config: Config,
    store: Store,
    kind: SourceKind | None = None,
    source_id: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> int:
    """Sync every selected source, stopping at the first failure.

    Returns:
        Number of sources synced.

    Raises:
        PaiError: The first error raised by a source. Sources synced before
            it keep their items.
    """
    sources = select_sources(config, kind, source_id)
    if client is not None:
        return await _sync_all(sources, store, client)
    async with create_client() as client:
        return await _sync_all(sources, store, client)


async def _sync_all(
    sources: list[SelectedSource], store: Store, client: httpx.AsyncClient,
) -> int:
    count = 0
    for source in sources:
        fetcher = create_fetcher(source.kind, source.entry, client)
        await fetcher.sync(store)
        count += 1
    return count


async def sync_each(
    config: Config,
    store: Store,
    kind: SourceKind | None = None,
    source_id: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> SyncReport:
    """Sync every selected source, continuing past failures.

    Each source's error is recorded in the report instead of being raised.
    """
    sources = select_sources(config, kind, source_id)
    if client is not None:
        return await _sync_each(sources, store, client)
    async with create_client() as client:
        return await _sync_each(sources, store, client)


async def _sync_each(
    sources: list[SelectedSource], store: Store, client: httpx.AsyncClient,
) -> SyncReport:
    report = SyncReport()
    for source in sources:
        fetcher = create_fetcher(source.kind, source.entry, client)
        result = SourceResult(kind=source.kind, source_id=source.source_id)
        try:
            result.items = await fetcher.sync(store)
        except PaiError as e:
            logger.error("Failed to sync %s %s: %s", source.kind, source.source_id, e)
            result.error = e
        report.results.append(result)
    return report
