import time
from collections.abc import Callable
from typing import Any

from sqlalchemy import JSON, Float, String
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from config.settings import settings
from services.errors import CacheError

engine = create_async_engine(settings.database_url, echo=False)
async_session = async_sessionmaker(engine, expire_on_commit=False)


class Base(DeclarativeBase):
    pass


# --- Models ---


class KVEntry(Base):
    """One key/value record. Album caches, aliases and monitor state all live here."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[Any] = mapped_column(JSON)
    expires_at: Mapped[float | None] = mapped_column(Float, nullable=True)  # epoch seconds
    updated_at: Mapped[float] = mapped_column(Float)


class KeyValueStore:
    """TTL-aware key/value store over a SQLAlchemy async session factory.

    Every failure is re-raised as CacheError so callers can decide whether
    to absorb it. Expired rows read as missing; they are overwritten by the
    next put rather than swept. Writes are a single upsert, so concurrent
    writers to one key resolve as last-writer-wins.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._session_factory = session_factory or async_session
        self._clock = clock

    async def get(self, key: str) -> Any | None:
        try:
            async with self._session_factory() as session:
                entry = await session.get(KVEntry, key)
        except SQLAlchemyError as e:
            raise CacheError(f"read failed for {key}: {e}") from e

        if entry is None:
            return None
        if entry.expires_at is not None and entry.expires_at <= self._clock():
            return None
        return entry.value

    async def put(self, key: str, value: Any, ttl_seconds: int | None = None):
        now = self._clock()
        expires_at = now + ttl_seconds if ttl_seconds else None
        stmt = sqlite_insert(KVEntry).values(
            key=key, value=value, expires_at=expires_at, updated_at=now
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[KVEntry.key],
            set_={
                "value": stmt.excluded["value"],
                "expires_at": stmt.excluded["expires_at"],
                "updated_at": stmt.excluded["updated_at"],
            },
        )
        try:
            async with self._session_factory() as session:
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise CacheError(f"write failed for {key}: {e}") from e


async def init_db(db_engine: AsyncEngine | None = None):
    async with (db_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

