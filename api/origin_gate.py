"""Origin gating for browser clients."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from pai.config import CorsConfig


logger = logging.getLogger(__name__)

DEV_KEY_HEADER = "X-Local-Dev-Key"
ALLOWED_METHODS = "GET, POST, OPTIONS"
ALLOWED_HEADERS = f"Content-Type, {DEV_KEY_HEADER}"
PREFLIGHT_MAX_AGE = "3600"


def is_authorized(cors: CorsConfig, origin: str | None, dev_key: str | None) -> bool:
    """A dev key, when sent, must match; otherwise the origin must be allowed.

    Requests carrying neither (curl, server-to-server) are let through.
    """
    if dev_key is not None:
        return cors.is_dev_key_valid(dev_key)
    if origin is not None:
        return cors.is_origin_allowed(origin)
    return True


class OriginGateMiddleware(BaseHTTPMiddleware):
    """Rejects cross-origin requests from origins outside `[cors]`.

    Inactive until `allowed_origins` or `dev_key` is configured.
    """

    async def dispatch(self, request: Request, call_next):
        cors: CorsConfig = request.app.state.pai.config.cors
        if not cors.enabled:
            return await call_next(request)

        origin = request.headers.get("origin")
        dev_key = request.headers.get(DEV_KEY_HEADER)

        if not is_authorized(cors, origin, dev_key):
            logger.warning("Rejected %s %s from origin %s", request.method, request.url.path, origin)
            return JSONResponse({"error": "Forbidden"}, status_code=403)

        if request.method == "OPTIONS":
            response = Response(status_code=204)
            response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
            response.headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
            response.headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE
        else:
            response = await call_next(request)

        if origin is not None:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
        return response
