"""Cache store and fetch log.

Two collaborators with minimal contracts:
- CacheStore: single-key upsert / get by ISIN
- FetchLogStore: append-only insert

Implementations:
- InMemoryStore: both protocols over dicts/lists (tests, one-off CLI runs)
- SqlStore: both protocols over SQLAlchemy (SQLite by default). Blocking
  session work runs in a worker thread.
"""

import asyncio
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy import DateTime, Integer, String, Text, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column
from sqlalchemy.pool import StaticPool

from factsheet_weights.pydantic_models import CacheEntry, FetchLogEntry


class CacheStore(Protocol):
    async def get(self, isin: str) -> CacheEntry | None: ...

    async def upsert(self, entry: CacheEntry) -> None: ...


class FetchLogStore(Protocol):
    async def append(self, entry: FetchLogEntry) -> None: ...


# =============================================================================
# In-memory
# =============================================================================

class InMemoryStore:
    """Dict-backed cache plus list-backed log."""

    def __init__(self):
        self.cache: dict[str, CacheEntry] = {}
        self.log: list[FetchLogEntry] = []

    async def get(self, isin: str) -> CacheEntry | None:
        return self.cache.get(isin)

    async def upsert(self, entry: CacheEntry) -> None:
        self.cache[entry.isin] = entry

    async def append(self, entry: FetchLogEntry) -> None:
        self.log.append(entry)


# =============================================================================
# SQLAlchemy
# =============================================================================

class Base(DeclarativeBase):
    pass


class CacheRow(Base):
    __tablename__ = "isin_cache"

    isin: Mapped[str] = mapped_column(String(12), primary_key=True)
    source_pdf_url: Mapped[str] = mapped_column(Text)
    as_of_date: Mapped[str | None] = mapped_column(String(64), nullable=True)
    weights_json: Mapped[str] = mapped_column(Text, default="[]")
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    parse_version: Mapped[int] = mapped_column(Integer)
    sha256_pdf: Mapped[str | None] = mapped_column(String(64), nullable=True)


class FetchLogRow(Base):
    __tablename__ = "fetch_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    isin: Mapped[str] = mapped_column(String(12), index=True)
    attempt_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    status: Mapped[str] = mapped_column(String(16))
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    http_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source_url: Mapped[str | None] = mapped_column(Text, nullable=True)


def _utc(value: datetime) -> datetime:
    # SQLite drops tzinfo; everything is written in UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


class SqlStore:
    """Cache + log persisted through SQLAlchemy.

    Args:
        url: SQLAlchemy database URL, e.g. ``sqlite:///weights.sqlite``.
    """

    def __init__(self, url: str = "sqlite:///:memory:"):
        if url in ("sqlite://", "sqlite:///:memory:"):
            # Single shared connection; each worker thread would otherwise get its own empty database
            self.engine = create_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
        else:
            self.engine = create_engine(url)
        Base.metadata.create_all(self.engine)

    @classmethod
    def from_path(cls, path: str) -> "SqlStore":
        return cls(f"sqlite:///{path}")

    def close(self):
        self.engine.dispose()

    # -- sync implementations --

    def _get(self, isin: str) -> CacheEntry | None:
        with Session(self.engine) as session:
            row = session.execute(select(CacheRow).where(CacheRow.isin == isin)).scalar_one_or_none()
            if row is None:
                return None
            return CacheEntry(
                isin=row.isin,
                source_pdf_url=row.source_pdf_url,
                as_of_date=row.as_of_date,
                weights_json=row.weights_json,
                fetched_at=_utc(row.fetched_at),
                expires_at=_utc(row.expires_at),
                parse_version=row.parse_version,
                sha256_pdf=row.sha256_pdf,
            )

    def _upsert(self, entry: CacheEntry) -> None:
        with Session(self.engine) as session:
            session.merge(CacheRow(**entry.model_dump()))
            session.commit()

    def _append(self, entry: FetchLogEntry) -> None:
        with Session(self.engine) as session:
            session.add(FetchLogRow(**entry.model_dump()))
            session.commit()

    def log_entries(self, isin: str | None = None) -> list[FetchLogEntry]:
        """Read back log rows (diagnostics and tests)."""
        with Session(self.engine) as session:
            query = select(FetchLogRow).order_by(FetchLogRow.id)
            if isin is not None:
                query = query.where(FetchLogRow.isin == isin)
            return [
                FetchLogEntry(
                    isin=row.isin,
                    attempt_at=_utc(row.attempt_at),
                    status=row.status,
                    message=row.message,
                    http_status=row.http_status,
                    source_url=row.source_url,
                )
                for row in session.execute(query).scalars()
            ]

    # -- async protocol --

    async def get(self, isin: str) -> CacheEntry | None:
        return await asyncio.to_thread(self._get, isin)

    async def upsert(self, entry: CacheEntry) -> None:
        await asyncio.to_thread(self._upsert, entry)

    async def append(self, entry: FetchLogEntry) -> None:
        await asyncio.to_thread(self._append, entry)
