"""Async SQLAlchemy engine, declarative base and per-request sessions."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime
from time import perf_counter
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, MetaData, text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncAttrs, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from app.core.config import get_settings
from app.shared.exceptions import DuplicateEntityError
from app.shared.utils import utc_now

EntityT = TypeVar("EntityT")

UNIQUE_VIOLATION_SQLSTATE = "23505"

# Explicit names so alembic and the uniqueness indexes agree on constraint names.
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(AsyncAttrs, DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class BaseModelMixin:
    """UUID primary key plus created/updated timestamps (UTC)."""

    id: Mapped[UUID] = mapped_column(PGUUID(as_uuid=True), primary_key=True, default=uuid4)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )


settings = get_settings()
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    connect_args={"server_settings": {"application_name": settings.app_name}},
)
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield the request session; commit on success, roll back on any error.

    Every write a request makes, best-effort side effects included, lands in
    this one transaction.
    """
    async with SessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def insert_unique(session: AsyncSession, entity: EntityT, conflict_message: str) -> EntityT:
    """Insert inside a SAVEPOINT and surface unique violations as DuplicateEntityError.

    The outer request transaction stays usable after a lost race. Other
    integrity failures propagate unchanged.
    """
    try:
        async with session.begin_nested():
            session.add(entity)
            await session.flush()
    except IntegrityError as exc:
        if not is_unique_violation(exc):
            raise
        raise DuplicateEntityError(conflict_message) from exc
    return entity


def is_unique_violation(exc: IntegrityError) -> bool:
    """True only for SQLSTATE 23505; FK, check and not-null failures stay IntegrityError."""
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate is None and orig is not None:
        # asyncpg keeps the code on the driver error chained under the DBAPI adapter.
        sqlstate = getattr(orig.__cause__, "sqlstate", None)
    return sqlstate == UNIQUE_VIOLATION_SQLSTATE


async def ping_database() -> float:
    """Run SELECT 1 on a fresh session and return the round trip in milliseconds."""
    started_at = perf_counter()
    async with SessionLocal() as session:
        await session.execute(text("SELECT 1"))
    return (perf_counter() - started_at) * 1000


async def close_engine() -> None:
    await engine.dispose()
