"""Request middleware: correlation ids and per-request access logging.

Every request is tagged with the surface it hit: ``api`` for routes under
the configured base path (behind the API key gateway), ``infra`` for the
banner and health probes. A 401 on an ``api`` route is logged as a gateway
rejection rather than an ordinary completion.
"""

import time
import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import get_settings
from app.core.logging import get_logger, request_id_ctx
from app.core.security import API_KEY_HEADER

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def request_surface(path: str, api_base_path: str) -> str:
    """Classify ``path`` as a gated API route or an infrastructure route."""
    if path == api_base_path or path.startswith(f"{api_base_path}/"):
        return "api"
    return "infra"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request id, expose it in the response, log the outcome."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        started = time.perf_counter()
        path = request.url.path
        surface = request_surface(path, get_settings().api_base_path)

        try:
            logger.info(
                "http.request_started",
                method=request.method,
                path=path,
                surface=surface,
                # presence only; the key itself is never logged
                api_key_present=API_KEY_HEADER in request.headers,
            )

            response = await call_next(request)
            duration_ms = round((time.perf_counter() - started) * 1000, 2)

            if surface == "api" and response.status_code == 401:
                logger.warning(
                    "http.request_rejected",
                    method=request.method,
                    path=path,
                    duration_ms=duration_ms,
                )
            else:
                logger.info(
                    "http.request_completed",
                    method=request.method,
                    path=path,
                    surface=surface,
                    status_code=response.status_code,
                    duration_ms=duration_ms,
                )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_ctx.reset(token)
