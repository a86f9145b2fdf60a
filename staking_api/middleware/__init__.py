"""Middleware modules for the application."""

from staking_api.middleware.cors import CorsMiddleware, cors_headers
from staking_api.middleware.logging import (
    RequestLoggingMiddleware,
    configure_logging,
    setup_request_logging_middleware,
)


__all__ = [
    "CorsMiddleware",
    "RequestLoggingMiddleware",
    "configure_logging",
    "cors_headers",
    "setup_request_logging_middleware",
]
