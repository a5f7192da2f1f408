"""FastAPI server exposing the Personal Activity Index."""

import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from pai import __version__
from pai.config import CONFIG_FILENAME, Config, default_config_dir
from pai.errors import InvalidArgumentError, PaiError, UnknownSourceKindError
from pai.export import to_rss
from pai.models import Item, ListFilter
from pai.query import build_filter
from pai.store import Store

from api.origin_gate import OriginGateMiddleware

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 500


# =============================================================================
# Pydantic models for API
# =============================================================================


class ItemResponse(BaseModel):
    id: str
    source_kind: str
    source_id: str
    author: str | None
    title: str | None
    summary: str | None
    url: str
    content_html: str | None
    published_at: str
    created_at: str

    @classmethod
    def from_item(cls, item: Item) -> "ItemResponse":
        return cls(**item.to_dict())


class FeedResponse(BaseModel):
    count: int
    items: list[ItemResponse]


class SourceCount(BaseModel):
    kind: str
    count: int


class StatusResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: int
    database_path: str
    total_items: int
    sources: list[SourceCount]


# =============================================================================
# Application state
# =============================================================================


class AppState:
    """Per-app resources, opened in the lifespan handler."""

    def __init__(self, config: Config | None, db_path: str | None):
        self.config = config or Config()
        self._config_given = config is not None
        self.db_path = db_path
        self.store: Store | None = None
        self.database_path: Path | None = None
        self.started_at = time.monotonic()

    def open(self) -> None:
        if not self._config_given:
            self.config = Config.load(default_config_dir() / CONFIG_FILENAME)
        self.database_path = self.config.resolve_database_path(self.db_path)
        self.store = self.config.create_store(self.db_path)
        self.started_at = time.monotonic()
        logger.info("Serving items from %s", self.database_path)

    def close(self) -> None:
        if self.store is not None:
            self.store.close()
            self.store = None


def get_state(request: Request) -> AppState:
    return request.app.state.pai


def get_store(state: AppState = Depends(get_state)) -> Store:
    if state.store is None:
        raise HTTPException(status_code=503, detail="Store is not open")
    return state.store


def feed_filter(
    source_kind: str | None = None,
    source_id: str | None = None,
    limit: int = DEFAULT_LIMIT,
    since: str | None = None,
    q: str | None = None,
) -> ListFilter:
    """Query parameters shared by /api/feed and /rss.xml."""
    list_filter = build_filter(source_kind, source_id, limit, since, q)
    list_filter.limit = min(list_filter.limit or DEFAULT_LIMIT, MAX_LIMIT)
    return list_filter


# =============================================================================
# Routes
# =============================================================================


router = APIRouter()


@router.get("/api/feed", response_model=FeedResponse)
def get_feed(
    list_filter: ListFilter = Depends(feed_filter),
    store: Store = Depends(get_store),
):
    """List items, newest first."""
    items = store.list_items(list_filter)
    return FeedResponse(count=len(items), items=[ItemResponse.from_item(i) for i in items])


@router.get("/api/item/{item_id:path}", response_model=ItemResponse)
def get_item(item_id: str, store: Store = Depends(get_store)):
    item = store.get_item(item_id)
    if not item:
        raise HTTPException(status_code=404, detail=f"Item not found: {item_id}")
    return ItemResponse.from_item(item)


@router.get("/status", response_model=StatusResponse)
def get_status(
    state: AppState = Depends(get_state),
    store: Store = Depends(get_store),
):
    """Health check with item counts."""
    return StatusResponse(
        status="ok",
        version=__version__,
        uptime_seconds=int(time.monotonic() - state.started_at),
        database_path=str(state.database_path),
        total_items=store.count_items(),
        sources=[SourceCount(kind=str(s.kind), count=s.count) for s in store.get_stats()],
    )


@router.get("/rss.xml")
def get_rss(
    list_filter: ListFilter = Depends(feed_filter),
    store: Store = Depends(get_store),
):
    items = store.list_items(list_filter)
    return Response(content=to_rss(items), media_type="application/rss+xml")


# =============================================================================
# Error handlers
# =============================================================================


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


async def handle_bad_request(request: Request, exc: PaiError) -> JSONResponse:
    return _error(400, str(exc))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        return _error(400, f"Invalid parameter '{field}': {first.get('msg')}")
    return _error(400, "Invalid request")


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def handle_pai_error(request: Request, exc: PaiError) -> JSONResponse:
    logger.error("Error handling %s %s: %s", request.method, request.url.path, exc)
    return _error(500, "Internal server error")


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error for %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# =============================================================================
# FastAPI app
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store on startup and close it on shutdown."""
    state: AppState = app.state.pai
    state.open()
    yield
    state.close()


def create_app(config: Config | None = None, db_path: str | None = None) -> FastAPI:
    """Build the API app.

    Without a config, the default config file is read at startup.
    """
    app = FastAPI(
        title="Personal Activity Index",
        description="Your posts from across the web, in one feed",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.pai = AppState(config, db_path)

    app.add_middleware(OriginGateMiddleware)
    app.add_exception_handler(InvalidArgumentError, handle_bad_request)
    app.add_exception_handler(UnknownSourceKindError, handle_bad_request)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(PaiError, handle_pai_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.include_router(router)
    return app


app = create_app()
