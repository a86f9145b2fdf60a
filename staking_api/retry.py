import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from staking_api.config import settings
from staking_api.database import classify_store_error
from staking_api.exceptions import StoreError


logger = logging.getLogger(__name__)

T = TypeVar("T")

STORE_FAILURES = (SQLAlchemyError, StoreError, ConnectionError, TimeoutError)


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, StoreError) and error.is_transient


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


def _log_retry(max_retries: int) -> Callable[[RetryCallState], None]:
    def log(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        wait_time = (
            retry_state.next_action.sleep if retry_state.next_action else 0.0
        )
        logger.warning(
            "Retrying database query (attempt %s/%s) in %.2f seconds: %s",
            retry_state.attempt_number,
            max_retries,
            wait_time,
            error,
        )

    return log


async def retry_query(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    session: Optional[AsyncSession] = None,
) -> T:
    """
    Run a store operation, retrying transient connection failures.

    The wait before retry ``n`` (0-based) is ``base_delay * 2**n``; there is
    no jitter and no ceiling on the wait. Failures of any other kind, and
    the last transient failure once ``max_retries`` retries are spent,
    propagate to the caller.

    Args:
        operation: Zero-argument coroutine function performing the work
        max_retries: Additional attempts after the first one
        base_delay: Base of the exponential backoff, in seconds
        session: Session the operation runs on; rolled back after a
            transient failure so the next attempt gets a fresh connection

    Returns:
        The operation's result
    """

    async def attempt() -> T:
        try:
            return await operation()
        except STORE_FAILURES as e:
            error = classify_store_error(e)
            if error.is_transient and session is not None:
                await session.rollback()
            if error is e:
                raise
            raise error from e

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, exp_base=2),
        retry=retry_if_exception(_is_transient),
        before_sleep=_log_retry(max_retries),
        sleep=_sleep,
        reraise=True,
    )
    return await retrying(attempt)


async def safe_query(
    operation: Callable[[], Awaitable[T]],
    session: Optional[AsyncSession] = None,
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None,
) -> T:
    """Run ``operation`` under the configured retry policy."""
    return await retry_query(
        operation,
        max_retries=(
            settings.DB_RETRY_MAX_RETRIES
            if max_retries is None
            else max_retries
        ),
        base_delay=(
            settings.DB_RETRY_BASE_DELAY if base_delay is None else base_delay
        ),
        session=session,
    )
