from collections.abc import Callable, Sequence
from typing import Any, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware


ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"


def cors_headers(
    origin: Optional[str], allowed_origins: Sequence[str]
) -> dict[str, str]:
    """
    CORS response headers for a request from ``origin``.

    An allow-listed origin is echoed back; anything else, including a
    missing origin, gets the first allow-listed one. Requests are never
    rejected here.
    """
    if origin and origin in allowed_origins:
        allow_origin = origin
    else:
        allow_origin = allowed_origins[0] if allowed_origins else ""

    return {
        "Access-Control-Allow-Origin": allow_origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "Access-Control-Allow-Credentials": "true",
    }


class CorsMiddleware(BaseHTTPMiddleware):
    """Answers preflight requests and adds CORS headers to every response."""

    def __init__(self, app: Any, allowed_origins: Sequence[str]):
        super().__init__(app)
        self.allowed_origins = list(allowed_origins)

    async def dispatch(
        self, request: Request, call_next: Callable[..., Any]
    ) -> Response:
        headers = cors_headers(
            request.headers.get("origin"), self.allowed_origins
        )

        # Preflight never reaches the routes
        if request.method == "OPTIONS":
            return Response(
                status_code=status.HTTP_204_NO_CONTENT, headers=headers
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
