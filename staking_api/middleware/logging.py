import logging
import time
import uuid
from collections.abc import Callable
from typing import Any, Optional

from fastapi import FastAPI, Request, Response
from rich.console import Console
from rich.logging import RichHandler
from starlette.middleware.base import BaseHTTPMiddleware


console = Console()

logger = logging.getLogger("staking_api.request")

DEFAULT_EXCLUDE_PATHS = [
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
]

METHOD_COLORS = {
    "GET": "green",
    "POST": "blue",
    "PUT": "yellow",
    "PATCH": "yellow",
    "DELETE": "red",
}


def configure_logging(debug: bool = False) -> None:
    """Send process logs through a rich console handler."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(rich_tracebacks=True, markup=True, console=console)
        ],
        force=True,
    )


def _status_color(status_code: int) -> str:
    if status_code < 300:
        return "green"
    if status_code < 400:
        return "blue"
    if status_code < 500:
        return "yellow"
    return "red"


def _log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware logging each request and its outcome in a single entry.

    Sets ``X-Request-ID`` and ``X-Process-Time`` on the response.
    """

    def __init__(
        self,
        app: Any,
        exclude_paths: Optional[list[str]] = None,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or DEFAULT_EXCLUDE_PATHS

    async def dispatch(
        self, request: Request, call_next: Callable[..., Any]
    ) -> Response:
        path = request.url.path
        if any(path.startswith(excluded) for excluded in self.exclude_paths):
            return await call_next(request)

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.time()

        method = request.method
        client_ip = request.client.host if request.client else None
        method_color = METHOD_COLORS.get(method, "white")

        body_info = ""
        if method in ("POST", "PUT", "PATCH"):
            body = await request.body()
            body_info = f" | Body: {len(body)} bytes"

        try:
            response = await call_next(request)
        except Exception as e:
            process_time_ms = round((time.time() - start_time) * 1000, 2)
            logger.error(
                f"[{method_color}]{method}[/] {path} | "
                f"Error: [red]{e}[/] | "
                f"Time: [cyan]{process_time_ms}ms[/] | "
                f"Client: {client_ip} | "
                f"ID: [dim]{request_id}[/]{body_info}",
                exc_info=True,
            )
            raise

        process_time = time.time() - start_time
        process_time_ms = round(process_time * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)

        status_code = response.status_code
        logger.log(
            _log_level(status_code),
            f"[{method_color}]{method}[/] {path} | "
            f"Status: [{_status_color(status_code)}]{status_code}[/] | "
            f"Time: [cyan]{process_time_ms}ms[/] | "
            f"Client: {client_ip} | "
            f"ID: [dim]{request_id}[/]{body_info}",
        )
        return response


def setup_request_logging_middleware(
    app: FastAPI,
    exclude_paths: Optional[list[str]] = None,
) -> None:
    """Add request logging middleware to FastAPI app."""
    app.add_middleware(
        RequestLoggingMiddleware,
        exclude_paths=exclude_paths,
    )
