import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Request
from sqlalchemy import exc as sa_exc
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from staking_api.exceptions import StoreError, StoreErrorKind


logger = logging.getLogger(__name__)


class Database:
    """
    Process-scoped owner of the async engine and its session factory.

    The engine is created on first use and released by ``dispose()``; the
    application creates one instance at startup and hands it to routes
    through ``get_session``.
    """

    def __init__(self, url: str, echo: bool = False, **engine_kwargs: Any):
        self.url = url
        self.echo = echo
        self.engine_kwargs = engine_kwargs
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = (
            None
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self.engine_kwargs.setdefault("pool_pre_ping", True)
            self._engine = create_async_engine(
                self.url,
                echo=self.echo,
                **self.engine_kwargs,
            )
            logger.info("Created database engine for %s", self.safe_url)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                bind=self.engine,
                expire_on_commit=False,
                autoflush=False,
                class_=AsyncSession,
            )
        return self._session_factory

    @property
    def safe_url(self) -> str:
        """Connection URL with the password masked."""
        return self.engine.url.render_as_string(hide_password=True)

    async def create_all(self) -> None:
        """Create all tables if they don't exist."""
        # Register table metadata
        from staking_api.stakes import models as _stakes  # noqa: F401
        from staking_api.transactions import models as _txs  # noqa: F401
        from staking_api.users import models as _users  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        logger.info("Database initialized")

    async def dispose(self) -> None:
        """Close every pooled connection."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        async with self.session_factory() as session:
            yield session


async def get_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get async database session from the application's database."""
    database: Database = request.app.state.database
    async with database.session() as session:
        try:
            yield session
        finally:
            await session.close()


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Group the writes made inside the block into one unit.

    Commits when the block exits normally and rolls back on any failure,
    so readers see either every row or none of them.
    """
    try:
        yield session
        await session.flush()
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


_TRANSIENT_DRIVER_ERRORS = (ConnectionError, TimeoutError)


def classify_store_error(error: BaseException) -> StoreError:
    """Map a driver or ORM exception onto a ``StoreError`` kind."""
    if isinstance(error, StoreError):
        return error

    kind = StoreErrorKind.CONNECTION_FATAL

    if isinstance(error, sa_exc.IntegrityError):
        kind = StoreErrorKind.CONSTRAINT_VIOLATION
    elif isinstance(error, (sa_exc.NoResultFound, sa_exc.MultipleResultsFound)):
        kind = StoreErrorKind.NOT_FOUND
    elif isinstance(error, (sa_exc.DisconnectionError, sa_exc.TimeoutError)):
        kind = StoreErrorKind.CONNECTION_TRANSIENT
    elif isinstance(error, sa_exc.DBAPIError):
        if error.connection_invalidated or isinstance(
            error.orig, _TRANSIENT_DRIVER_ERRORS
        ):
            kind = StoreErrorKind.CONNECTION_TRANSIENT
    elif isinstance(error, _TRANSIENT_DRIVER_ERRORS):
        kind = StoreErrorKind.CONNECTION_TRANSIENT

    return StoreError(kind, str(error), original=error)
