from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from chat2doc.core.types import FileFormat, Platform
from chat2doc.db.models import Base, ConversionJobRow, UserRow
from chat2doc.models import (
    ConversionJob,
    ConversionMetadata,
    ConversionStatus,
    OutputFiles,
    SubscriptionTier,
    UserPreferences,
    UserProfile,
)
from chat2doc.store.base import JobStore

logger = logging.getLogger(__name__)


class SqlJobStore(JobStore):
    """Store backed by SQLAlchemy's async engine.

    Defaults to SQLite through ``aiosqlite``; any async SQLAlchemy URL
    works.  Wraps the ORM rows and translates to/from domain dataclasses
    at the boundary.
    """

    def __init__(self, url: str | None = None, *, path: str | None = None) -> None:
        if url is None:
            if path is None or path == ":memory:":
                url = "sqlite+aiosqlite:///:memory:"
            else:
                Path(path).expanduser().parent.mkdir(parents=True, exist_ok=True)
                url = f"sqlite+aiosqlite:///{Path(path).expanduser()}"
        if url.endswith(":memory:"):
            # Every session must share the single in-memory connection.
            self._engine = create_async_engine(url, echo=False, poolclass=StaticPool)
        else:
            self._engine = create_async_engine(url, echo=False)
        self._url = url
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)
        # Per task, so concurrent jobs never share a transaction.
        self._atomic_session: ContextVar[AsyncSession | None] = ContextVar(
            f"chat2doc_sql_session_{id(self)}", default=None
        )

    @asynccontextmanager
    async def _auto_session(self) -> AsyncIterator[AsyncSession]:
        """Yield the current ``atomic()`` session, else a fresh
        auto-committing session that is closed after use."""
        current = self._atomic_session.get()
        if current is not None:
            yield current
            return
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def init(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Job store ready at %s", self._url)

    async def reset(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await self.init()

    async def close(self) -> None:
        await self._engine.dispose()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        session = self._session_factory()
        token = self._atomic_session.set(session)
        try:
            yield
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            self._atomic_session.reset(token)
            await session.close()

    # ── Jobs ─────────────────────────────────────────────────────────

    async def create_job(self, job: ConversionJob) -> ConversionJob:
        async with self._auto_session() as s:
            last = (
                await s.execute(select(func.max(ConversionJobRow.sequence)))
            ).scalar()
            row = ConversionJobRow(id=job.id, sequence=(last or 0) + 1)
            _apply_job(row, job)
            row.created_at = job.created_at
            s.add(row)
            await s.flush()
        return job

    async def get_job(self, job_id: str) -> ConversionJob | None:
        async with self._auto_session() as s:
            row = await s.get(ConversionJobRow, job_id)
        if row is None:
            return None
        return _job_from_orm(row)

    async def update_job(self, job: ConversionJob) -> None:
        async with self._auto_session() as s:
            row = await s.get(ConversionJobRow, job.id)
            if row is None:
                raise ValueError(f"Job {job.id} not found")
            _apply_job(row, job)

    async def delete_job(self, job_id: str) -> bool:
        async with self._auto_session() as s:
            row = await s.get(ConversionJobRow, job_id)
            if row is None:
                return False
            await s.delete(row)
        return True

    async def list_jobs(self, user_id: str) -> list[ConversionJob]:
        async with self._auto_session() as s:
            stmt = (
                select(ConversionJobRow)
                .where(ConversionJobRow.user_id == user_id)
                .order_by(
                    ConversionJobRow.created_at.desc(),
                    ConversionJobRow.sequence.desc(),
                )
            )
            rows = list((await s.execute(stmt)).scalars().all())
        return [_job_from_orm(r) for r in rows]

    # ── Users ────────────────────────────────────────────────────────

    async def save_user(self, profile: UserProfile) -> None:
        async with self._auto_session() as s:
            row = await s.get(UserRow, profile.uid)
            if row is None:
                row = UserRow(uid=profile.uid, created_at=profile.created_at)
                s.add(row)
            row.email = profile.email
            row.display_name = profile.display_name
            row.subscription = profile.subscription.value
            row.conversion_count = profile.conversion_count
            row.default_format = profile.preferences.default_format.value
            row.auto_delete = profile.preferences.auto_delete

    async def get_user(self, uid: str) -> UserProfile | None:
        async with self._auto_session() as s:
            row = await s.get(UserRow, uid)
        if row is None:
            return None
        return UserProfile(
            uid=row.uid,
            email=row.email,
            display_name=row.display_name,
            subscription=SubscriptionTier(row.subscription),
            conversion_count=row.conversion_count,
            preferences=UserPreferences(
                default_format=FileFormat(row.default_format),
                auto_delete=row.auto_delete,
            ),
            created_at=_as_utc(row.created_at),
        )


# ── Row mapping ──────────────────────────────────────────────────────


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _apply_job(row: ConversionJobRow, job: ConversionJob) -> None:
    row.user_id = job.user_id
    row.original_filename = job.original_filename
    row.platform = job.platform.value
    row.status = job.status.value
    row.input_location = job.input_location
    row.completed_at = job.completed_at
    row.output_files = job.output_files.to_dict() if job.output_files else None
    row.job_metadata = (
        {
            "message_count": job.metadata.message_count,
            "word_count": job.metadata.word_count,
            "processing_time_ms": job.metadata.processing_time_ms,
            "skipped_count": job.metadata.skipped_count,
            "title": job.metadata.title,
        }
        if job.metadata
        else None
    )
    row.error = job.error
    row.error_kind = job.error_kind
    row.history = [s.value for s in job.history]


def _job_from_orm(row: ConversionJobRow) -> ConversionJob:
    return ConversionJob(
        user_id=row.user_id,
        original_filename=row.original_filename,
        platform=Platform(row.platform),
        status=ConversionStatus(row.status),
        input_location=row.input_location,
        id=row.id,
        created_at=_as_utc(row.created_at),
        completed_at=_as_utc(row.completed_at) if row.completed_at else None,
        output_files=OutputFiles(**row.output_files) if row.output_files else None,
        metadata=ConversionMetadata(**row.job_metadata) if row.job_metadata else None,
        error=row.error,
        error_kind=row.error_kind,
        history=[ConversionStatus(s) for s in row.history],
    )
