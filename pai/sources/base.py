"""Base class and shared helpers for source fetchers."""

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from pai import __version__
from pai.errors import FetchError
from pai.models import SourceKind
from pai.store.base import Store


logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
USER_AGENT = f"pai/{__version__}"

MAX_TITLE_LENGTH = 100
ELLIPSIS = "..."


def create_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    """HTTP client used for every outbound request made while syncing."""
    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
    )


def create_title(text: str) -> str:
    """Derive a title from body text.

    Text up to 100 characters is returned unchanged; longer text is cut to
    97 characters followed by "...", so the result is exactly 100 long.
    """
    if len(text) <= MAX_TITLE_LENGTH:
        return text
    return text[:MAX_TITLE_LENGTH - len(ELLIPSIS)] + ELLIPSIS


class SourceFetcher(ABC):
    """Fetches one configured source and upserts its items into a store.

    Each subclass speaks a single platform's wire protocol. Callers only see
    `sync`, which performs one request, maps the response to Items and
    upserts them one at a time; items written before a failure stay written.

    An `httpx.AsyncClient` may be passed in to share connections across a
    whole sync run. Without one, a client is created per request.
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client

    @property
    @abstractmethod
    def kind(self) -> SourceKind:
        """Source kind tagged on every item this fetcher produces."""
        pass

    @property
    @abstractmethod
    def source_id(self) -> str:
        """Identifier of the configured instance, e.g. a domain or handle."""
        pass

    @abstractmethod
    async def sync(self, store: Store) -> int:
        """Fetch the source and upsert its items.

        Returns:
            Number of items upserted.

        Raises:
            FetchError: Transport failure or non-success HTTP status.
            ParseError: The response body is not in the expected format.
            StorageError: An upsert failed.
        """
        pass

    async def _get(self, url: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """GET a URL, mapping every transport or status failure to FetchError."""
        logger.debug("GET %s params=%s", url, params)
        try:
            if self._client is not None:
                response = await self._client.get(url, params=params)
            else:
                async with create_client() as client:
                    response = await client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"{url} returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch {url}: {e}") from e
        return response

    def __repr__(self) -> str:
        return f"{type(self).__name__}(source_id={self.source_id!r})"
