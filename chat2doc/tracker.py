"""Job lifecycle bookkeeping.

:class:`JobTracker` is the only writer of :class:`ConversionJob` records.
It enforces the status state machine::

    uploading ──▶ processing ──▶ completed
        │              │
        └──────────────┴──────▶ failed

and notifies subscribers after every persisted status change.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable

from chat2doc.core.exceptions import InvalidTransition, JobNotFound
from chat2doc.core.types import Platform
from chat2doc.models import (
    ConversionJob,
    ConversionMetadata,
    ConversionStatus,
    OutputFiles,
    UserProfile,
    can_transition,
)
from chat2doc.models.utils import utcnow
from chat2doc.storage.base import StorageBackend
from chat2doc.store.base import JobStore

logger = logging.getLogger(__name__)

StatusCallback = Callable[[ConversionJob], Awaitable[None] | None]
Unsubscribe = Callable[[], None]


class JobTracker:
    def __init__(self, store: JobStore, storage: StorageBackend | None = None) -> None:
        self._store = store
        self._storage = storage
        self._locks: dict[str, asyncio.Lock] = {}
        self._subscribers: dict[str, list[StatusCallback]] = {}

    def _lock(self, job_id: str) -> asyncio.Lock:
        return self._locks.setdefault(job_id, asyncio.Lock())

    async def _load(self, job_id: str) -> ConversionJob:
        job = await self._store.get_job(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    @staticmethod
    def _check(job: ConversionJob, new_status: ConversionStatus) -> None:
        if not can_transition(job.status, new_status):
            raise InvalidTransition(job.id, job.status.value, new_status.value)

    def _set_status(self, job: ConversionJob, new_status: ConversionStatus) -> None:
        job.status = new_status
        job.history.append(new_status)
        if new_status.is_terminal:
            job.completed_at = max(utcnow(), job.created_at)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    async def register_user(self, profile: UserProfile) -> None:
        await self._store.save_user(profile)

    async def get_user(self, uid: str) -> UserProfile | None:
        return await self._store.get_user(uid)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def create(
        self,
        user_id: str,
        original_filename: str,
        platform: Platform = Platform.UNKNOWN,
        *,
        initial_status: ConversionStatus = ConversionStatus.UPLOADING,
        input_location: str = "",
        job_id: str | None = None,
    ) -> ConversionJob:
        """Record a new job for *user_id*.

        Only ``uploading`` and ``processing`` are valid initial states.
        A registered user's ``conversion_count`` is bumped in the same
        transaction.
        """
        if initial_status.is_terminal:
            raise ValueError(f"A job cannot start as {initial_status.value!r}")

        job = ConversionJob(
            user_id=user_id,
            original_filename=original_filename,
            platform=platform,
            status=initial_status,
            input_location=input_location,
        )
        if job_id is not None:
            job.id = job_id
        async with self._store.atomic():
            job = await self._store.create_job(job)
            profile = await self._store.get_user(user_id)
            if profile is not None:
                profile.conversion_count += 1
                await self._store.save_user(profile)

        logger.info(
            "[%s] Created %s job for user %s (%s)",
            job.id,
            job.status.value,
            user_id,
            original_filename,
        )
        return job

    async def advance(
        self,
        job_id: str,
        new_status: ConversionStatus,
        *,
        platform: Platform | None = None,
    ) -> ConversionJob:
        """Move a job to a non-terminal *new_status*.

        Terminal states are reached only through :meth:`complete` and
        :meth:`fail`, which record outputs or the error alongside them.
        Raises :class:`InvalidTransition`.
        """
        async with self._lock(job_id):
            job = await self._load(job_id)
            if new_status.is_terminal:
                raise InvalidTransition(job_id, job.status.value, new_status.value)
            self._check(job, new_status)
            if platform is not None:
                job.platform = platform
            self._set_status(job, new_status)
            await self._store.update_job(job)
        logger.info("[%s] Status -> %s", job_id, new_status.value)
        await self._notify(job)
        return job

    async def complete(
        self,
        job_id: str,
        output_files: OutputFiles,
        metadata: ConversionMetadata,
        *,
        platform: Platform | None = None,
    ) -> ConversionJob:
        """Finish a processing job; outputs and metadata land together."""
        async with self._lock(job_id):
            job = await self._load(job_id)
            self._check(job, ConversionStatus.COMPLETED)
            if platform is not None and platform is not Platform.UNKNOWN:
                job.platform = platform
            job.output_files = output_files
            job.metadata = metadata
            self._set_status(job, ConversionStatus.COMPLETED)
            await self._store.update_job(job)
        logger.info(
            "[%s] Completed: %d messages, %d words in %d ms",
            job_id,
            metadata.message_count,
            metadata.word_count,
            metadata.processing_time_ms,
        )
        await self._notify(job)
        self._forget(job_id)
        return job

    async def fail(self, job_id: str, error: str, *, kind: str) -> ConversionJob:
        async with self._lock(job_id):
            job = await self._load(job_id)
            self._check(job, ConversionStatus.FAILED)
            job.error = error
            job.error_kind = kind
            self._set_status(job, ConversionStatus.FAILED)
            await self._store.update_job(job)
        logger.warning("[%s] Failed (%s): %s", job_id, kind, error)
        await self._notify(job)
        self._forget(job_id)
        return job

    def _forget(self, job_id: str) -> None:
        # No transition leaves a terminal state.
        self._locks.pop(job_id, None)
        self._subscribers.pop(job_id, None)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get(self, job_id: str) -> ConversionJob | None:
        return await self._store.get_job(job_id)

    async def list(self, user_id: str) -> list[ConversionJob]:
        return await self._store.list_jobs(user_id)

    async def delete(self, job_id: str) -> bool:
        """Remove a job record and its stored files.

        Deleting an unknown id is a no-op that returns ``False``.
        """
        async with self._lock(job_id):
            removed = await self._store.delete_job(job_id)
            files = self._storage.delete_prefix(f"{job_id}/") if self._storage else 0
        self._forget(job_id)
        if removed:
            logger.info("[%s] Deleted job and %d stored file(s)", job_id, files)
        return removed

    # ------------------------------------------------------------------
    # Progress notifications
    # ------------------------------------------------------------------

    def subscribe(self, job_id: str, callback: StatusCallback) -> Unsubscribe:
        """Call *callback* with the job after each status change."""
        callbacks = self._subscribers.setdefault(job_id, [])
        callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks and self._subscribers.get(job_id) is callbacks:
                del self._subscribers[job_id]

        return unsubscribe

    async def _notify(self, job: ConversionJob) -> None:
        for callback in list(self._subscribers.get(job.id, [])):
            try:
                result = callback(job)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("[%s] Status subscriber raised", job.id)
