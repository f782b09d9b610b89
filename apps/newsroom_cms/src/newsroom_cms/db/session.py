"""Database session helpers."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from newsroom_cms.errors import InternalError, ValidationError
from newsroom_cms.logging import get_logger

SLUG_CONSTRAINT = "articles_slug_key"


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, pool_pre_ping=True)


def create_session_factory(database_url: str) -> async_sessionmaker[AsyncSession]:
    engine = create_engine(database_url)
    return async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def transaction(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session and transaction, reporting storage failures as domain errors.

    Driver messages are logged, never propagated to the caller.
    """
    try:
        async with session_factory() as session:
            async with session.begin():
                yield session
    except IntegrityError as exc:
        if SLUG_CONSTRAINT in str(exc.orig):
            raise ValidationError("slug already exists", details={"field": "slug"}) from exc
        get_logger(__name__).exception("db.integrity_error")
        raise InternalError("storage constraint violated") from exc
    except SQLAlchemyError as exc:
        get_logger(__name__).exception("db.error")
        raise InternalError("storage failure") from exc
