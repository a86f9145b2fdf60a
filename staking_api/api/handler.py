"""
Uniform success/error envelope for every route.

``api_handler`` wraps a route body returning a ``HandlerResult``; the
exception handlers registered by ``register_exception_handlers`` cover
failures raised before the body runs (request parsing, dependencies,
unknown paths). Both paths end in ``envelope_response``.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from staking_api.config import settings
from staking_api.constants import Messages
from staking_api.exceptions import CustomException
from staking_api.middleware.cors import cors_headers
from staking_api.schemas import HandlerResult, PaginationInfo
from staking_api.utils import format_response


logger = logging.getLogger(__name__)


def envelope_response(
    status_code: int,
    message: str,
    data: Any = None,
    pagination: Optional[PaginationInfo] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=format_response(status_code, message, data, pagination),
    )


def error_response(error: BaseException) -> JSONResponse:
    """Envelope for a failure: its status when it has one, else 500."""
    if isinstance(error, CustomException):
        return envelope_response(error.status_code, str(error.detail))

    message = str(error) or Messages.UNEXPECTED_ERROR
    return envelope_response(status.HTTP_500_INTERNAL_SERVER_ERROR, message)


def api_handler(
    default_message: str = Messages.DEFAULT_SUCCESS,
) -> Callable[
    [Callable[..., Awaitable[HandlerResult]]],
    Callable[..., Awaitable[JSONResponse]],
]:
    """Wrap a route body so it always answers with an envelope."""

    def decorator(
        func: Callable[..., Awaitable[HandlerResult]],
    ) -> Callable[..., Awaitable[JSONResponse]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> JSONResponse:
            try:
                result = await func(*args, **kwargs)
            except CustomException as e:
                logger.warning("%s failed: %s", func.__name__, e.detail)
                return error_response(e)
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.exception("Unexpected error in %s", func.__name__)
                return error_response(e)

            return envelope_response(
                status.HTTP_200_OK,
                result.message or default_message,
                result.data,
                result.pagination,
            )

        return wrapper

    return decorator


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"Invalid request: {location}: {first.get('msg', '')}".strip()


def register_exception_handlers(app: FastAPI) -> None:
    """Turn failures raised outside route bodies into envelopes."""

    @app.exception_handler(CustomException)
    async def custom_exception_handler(
        _request: Request, exc: CustomException
    ) -> JSONResponse:
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return envelope_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR, _validation_message(exc)
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        _request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return envelope_response(exc.status_code, str(exc.detail))

    # Served by the outermost server-error layer, outside the CORS middleware
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception(
            "Unhandled error on %s %s", request.method, request.url.path
        )
        response = error_response(exc)
        response.headers.update(
            cors_headers(
                request.headers.get("origin"), settings.CORS_ALLOWED_ORIGINS
            )
        )
        return response
