from __future__ import annotations

import copy
import itertools

from chat2doc.models import ConversionJob, UserProfile
from chat2doc.store.base import JobStore


class InMemoryJobStore(JobStore):
    """Store backed by plain Python dicts.

    Records are copied on the way in and out so callers never share
    mutable state with the store.  Safe within a single asyncio event
    loop.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, ConversionJob] = {}
        self._users: dict[str, UserProfile] = {}
        self._sequence: dict[str, int] = {}
        self._counter = itertools.count()

    async def reset(self) -> None:
        self._jobs.clear()
        self._users.clear()
        self._sequence.clear()

    # ── Jobs ─────────────────────────────────────────────────────────

    async def create_job(self, job: ConversionJob) -> ConversionJob:
        if job.id in self._jobs:
            raise ValueError(f"Job {job.id} already exists")
        self._jobs[job.id] = copy.deepcopy(job)
        self._sequence[job.id] = next(self._counter)
        return job

    async def get_job(self, job_id: str) -> ConversionJob | None:
        job = self._jobs.get(job_id)
        return copy.deepcopy(job) if job is not None else None

    async def update_job(self, job: ConversionJob) -> None:
        self._jobs[job.id] = copy.deepcopy(job)
        self._sequence.setdefault(job.id, next(self._counter))

    async def delete_job(self, job_id: str) -> bool:
        self._sequence.pop(job_id, None)
        return self._jobs.pop(job_id, None) is not None

    async def list_jobs(self, user_id: str) -> list[ConversionJob]:
        jobs = [copy.deepcopy(j) for j in self._jobs.values() if j.user_id == user_id]
        return sorted(
            jobs,
            key=lambda j: (j.created_at, self._sequence[j.id]),
            reverse=True,
        )

    # ── Users ────────────────────────────────────────────────────────

    async def save_user(self, profile: UserProfile) -> None:
        self._users[profile.uid] = copy.deepcopy(profile)

    async def get_user(self, uid: str) -> UserProfile | None:
        profile = self._users.get(uid)
        return copy.deepcopy(profile) if profile is not None else None
