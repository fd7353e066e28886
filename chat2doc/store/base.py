"""Persistence contract for job records and user profiles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from chat2doc.models import ConversionJob, UserProfile


class JobStore(ABC):
    """Where :class:`~chat2doc.tracker.JobTracker` keeps its records.

    Stores only persist and return copies of domain objects; the tracker
    owns status rules and locking.  Use as ``async with store:`` to close
    it on exit.
    """

    async def init(self) -> None:
        """Prepare the backing schema.  Safe to call repeatedly."""

    @abstractmethod
    async def reset(self) -> None:
        """Forget every job and user."""
        ...

    async def close(self) -> None:
        """Release connections.  The default has nothing to release."""

    async def __aenter__(self) -> JobStore:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Group several calls into one commit.

        Stores without transactions apply each call immediately, which
        is what this default does.
        """
        yield

    # ── Jobs ─────────────────────────────────────────────────────────

    @abstractmethod
    async def create_job(self, job: ConversionJob) -> ConversionJob:
        """Persist a new job and return it."""
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> ConversionJob | None:
        """Return a job by ID, or ``None``."""
        ...

    @abstractmethod
    async def update_job(self, job: ConversionJob) -> None:
        """Persist changes to an existing job."""
        ...

    @abstractmethod
    async def delete_job(self, job_id: str) -> bool:
        """Remove a job. Returns ``False`` when it did not exist."""
        ...

    @abstractmethod
    async def list_jobs(self, user_id: str) -> list[ConversionJob]:
        """Return a user's jobs ordered newest ``created_at`` first."""
        ...

    # ── Users ────────────────────────────────────────────────────────

    @abstractmethod
    async def save_user(self, profile: UserProfile) -> None:
        """Insert or update a user profile."""
        ...

    @abstractmethod
    async def get_user(self, uid: str) -> UserProfile | None:
        """Return a user profile, or ``None`` if the user is unknown."""
        ...
