"""
Database connectivity probe.

Used at startup (when enabled) and by ``GET /api/health/database``.
"""

import logging
import socket
import time
from typing import Literal, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy import text

from staking_api.database import Database
from staking_api.schemas import ApiModel


logger = logging.getLogger(__name__)


class DatabaseHealthStatus(ApiModel):
    """Outcome of one connectivity probe."""

    status: Literal["healthy", "unhealthy"]
    message: str
    response_time_ms: float
    error: Optional[str] = None

    @property
    def is_healthy(self) -> bool:
        return self.status == "healthy"


def _failure_hint(error: BaseException) -> Optional[str]:
    cause = error.orig if isinstance(error, sa_exc.DBAPIError) else error

    if isinstance(cause, socket.gaierror):
        return "Check DB_HOST: the host name does not resolve"
    if isinstance(cause, ConnectionRefusedError):
        return "Check that the database server is running on DB_PORT"
    if isinstance(cause, (TimeoutError, sa_exc.TimeoutError)):
        return "Check network access and firewall rules to the database"
    if isinstance(cause, PermissionError):
        return "Check DB_USER and DB_PASSWORD"
    return None


async def check_database_health(database: Database) -> DatabaseHealthStatus:
    """
    Run ``SELECT 1`` against the database and time it.

    Never raises; any failure is reported as an unhealthy status.
    """
    url = database.engine.url
    logger.debug(
        "Probing database %s on %s:%s", url.database, url.host, url.port
    )

    start_time = time.perf_counter()
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:  # pylint: disable=broad-exception-caught
        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
        hint = _failure_hint(e)
        logger.error(
            "Database probe failed for %s on %s:%s: %s",
            url.database,
            url.host,
            url.port,
            e,
        )
        if hint:
            logger.error("Hint: %s", hint)
        return DatabaseHealthStatus(
            status="unhealthy",
            message="Database connection failed",
            response_time_ms=elapsed_ms,
            error=str(e),
        )

    elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
    return DatabaseHealthStatus(
        status="healthy",
        message="Database connection successful",
        response_time_ms=elapsed_ms,
    )


def log_database_health(status: DatabaseHealthStatus) -> None:
    color = "green" if status.is_healthy else "red"
    lines = [
        "[bold]Database health check[/]",
        f"  Status: [{color}]{status.status}[/]",
        f"  Message: {status.message}",
        f"  Response time: [cyan]{status.response_time_ms}ms[/]",
    ]
    if status.error:
        lines.append(f"  Error: [red]{status.error}[/]")

    level = logging.INFO if status.is_healthy else logging.WARNING
    logger.log(level, "\n".join(lines))
