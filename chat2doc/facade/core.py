"""Main facade for the chat2doc library."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from chat2doc.models import ConversionJob, SubscriptionTier, UserProfile
from chat2doc.pipeline import PipelineCoordinator
from chat2doc.policy import InFlightPolicy, RunPolicy
from chat2doc.tracker import JobTracker, StatusCallback, Unsubscribe

if TYPE_CHECKING:
    from chat2doc.extract.remote import RemoteLinkExtractor
    from chat2doc.storage.base import StorageBackend
    from chat2doc.store.base import JobStore

logger = logging.getLogger(__name__)


class Chat2Doc:
    """Main entry point for the chat2doc library.

    Converts chat exports and share links into PDF and DOCX documents and
    keeps a per-user history of conversions.

    Usage::

        from chat2doc.storage.disk import DiskStorage
        from chat2doc.store.memory import InMemoryJobStore

        c2d = Chat2Doc(storage=DiskStorage("./data"), store=InMemoryJobStore())
        await c2d.init()
        job = await c2d.submit_file(raw, "conversations.json", user_id="u1")
        print(job.status, job.output_files)
    """

    def __init__(
        self,
        storage: StorageBackend,
        store: JobStore,
        *,
        policy: RunPolicy | None = None,
        remote: RemoteLinkExtractor | None = None,
    ) -> None:
        self._storage = storage
        self._store = store
        self._tracker = JobTracker(store, storage)
        self._coordinator = PipelineCoordinator(
            self._tracker,
            storage,
            policy=policy or InFlightPolicy(),
            remote=remote,
        )

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> Chat2Doc:
        """Build an instance from a config dict (see :func:`parse_config`)."""
        from chat2doc.config import parse_config

        storage, store = parse_config(config)
        limits = config.get("limits")
        policy = (
            InFlightPolicy({SubscriptionTier(k): v for k, v in limits.items()})
            if limits
            else None
        )
        return cls(storage=storage, store=store, policy=policy)

    @property
    def tracker(self) -> JobTracker:
        return self._tracker

    @property
    def storage(self) -> StorageBackend:
        return self._storage

    async def init(self) -> None:
        """Create missing tables / indices (non-destructive)."""
        await self._store.init()

    async def reset(self) -> None:
        """Drop all data and recreate from scratch."""
        await self._store.reset()

    async def close(self) -> None:
        await self._store.close()

    async def __aenter__(self) -> Chat2Doc:
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ── Users ────────────────────────────────────────────────────────

    async def register_user(self, profile: UserProfile) -> None:
        await self._tracker.register_user(profile)

    async def get_user(self, uid: str) -> UserProfile | None:
        return await self._tracker.get_user(uid)

    # ── Conversions ──────────────────────────────────────────────────

    async def submit_file(
        self,
        data: bytes,
        filename: str,
        user_id: str,
        *,
        on_status: StatusCallback | None = None,
    ) -> ConversionJob:
        """Convert an uploaded export.

        Raises :class:`UnsupportedFormat` or :class:`QuotaExceeded` before
        a job is created; every later failure is recorded on the returned
        job instead.
        """
        return await self._coordinator.submit_file(
            data, filename, user_id, on_status=on_status
        )

    async def submit_url(
        self,
        url: str,
        user_id: str,
        *,
        on_status: StatusCallback | None = None,
    ) -> ConversionJob:
        """Convert the conversation behind a public share link."""
        return await self._coordinator.submit_url(url, user_id, on_status=on_status)

    async def list_conversions(self, user_id: str) -> list[ConversionJob]:
        """Return the user's conversions, newest first."""
        return await self._tracker.list(user_id)

    async def get_conversion(self, job_id: str) -> ConversionJob | None:
        return await self._tracker.get(job_id)

    async def delete_conversion(self, job_id: str) -> bool:
        """Delete a conversion and its files; unknown ids are ignored."""
        return await self._tracker.delete(job_id)

    def subscribe(self, job_id: str, callback: StatusCallback) -> Unsubscribe:
        return self._tracker.subscribe(job_id, callback)
