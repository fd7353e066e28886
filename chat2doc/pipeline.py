"""Submission orchestration: detect, track, extract, render, store."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from collections.abc import Awaitable, Callable
from pathlib import PurePosixPath

from chat2doc.core.exceptions import (
    CANCELLED,
    UNEXPECTED,
    Chat2DocError,
    InvalidTransition,
)
from chat2doc.core.types import ContainerKind, FileFormat
from chat2doc.extract.base import Extractor
from chat2doc.extract.detector import detect, detect_container, platform_from_url
from chat2doc.extract.registry import EXTRACTOR_REGISTRY
from chat2doc.extract.remote import RemoteLinkExtractor
from chat2doc.models import (
    ConversionJob,
    ConversionStatus,
    NormalizedConversation,
    OutputFiles,
)
from chat2doc.models.utils import generate_id
from chat2doc.policy import RunPolicy, UnlimitedPolicy
from chat2doc.render import DocumentRenderer, RenderedDocuments, compute_metadata
from chat2doc.storage.base import StorageBackend
from chat2doc.tracker import JobTracker, StatusCallback

logger = logging.getLogger(__name__)

_DEFAULT_STEM = "conversation"


def input_key(job_id: str, filename: str) -> str:
    name = PurePosixPath(filename.replace("\\", "/")).name or "upload"
    return f"{job_id}/input/{name}"


def output_key(job_id: str, stem: str, fmt: FileFormat) -> str:
    return f"{job_id}/output/{stem}.{fmt.value}"


def _output_stem(filename: str) -> str:
    stem = PurePosixPath(filename.replace("\\", "/")).stem.strip()
    return stem or _DEFAULT_STEM


async def _emit(callback: StatusCallback, job: ConversionJob) -> None:
    try:
        result = callback(job)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.exception("[%s] Status subscriber raised", job.id)


class PipelineCoordinator:
    """Drives one submission from raw input to a finished job.

    Only :class:`UnsupportedFormat` and :class:`QuotaExceeded` escape
    the submit methods, both before any job exists.  Everything that
    goes wrong afterwards is recorded on the job, which is returned in
    its final state.
    """

    def __init__(
        self,
        tracker: JobTracker,
        storage: StorageBackend,
        *,
        policy: RunPolicy | None = None,
        renderer: DocumentRenderer | None = None,
        remote: RemoteLinkExtractor | None = None,
        extractors: dict[ContainerKind, Extractor] | None = None,
    ) -> None:
        self._tracker = tracker
        self._storage = storage
        self._policy = policy or UnlimitedPolicy()
        self._renderer = renderer or DocumentRenderer()
        self._remote = remote or RemoteLinkExtractor()
        self._extractors = extractors or {
            kind: cls()
            for kind, cls in EXTRACTOR_REGISTRY.items()
            if kind is not ContainerKind.REMOTE_LINK
        }

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def submit_file(
        self,
        data: bytes,
        filename: str,
        user_id: str,
        *,
        on_status: StatusCallback | None = None,
    ) -> ConversionJob:
        if detect_container(filename=filename) is ContainerKind.REMOTE_LINK:
            return await self.submit_url(filename, user_id, on_status=on_status)
        await self._admit(user_id)

        try:
            job_id = generate_id()
            key = input_key(job_id, filename)
            self._storage.write(key, data)
            job = await self._tracker.create(
                user_id,
                filename,
                initial_status=ConversionStatus.UPLOADING,
                input_location=self._storage.resolve_uri(key),
                job_id=job_id,
            )
        except BaseException:
            self._policy.release(user_id)
            raise

        async def work(job: ConversionJob) -> NormalizedConversation:
            detection = detect(data, filename=filename)
            await self._tracker.advance(
                job.id, ConversionStatus.PROCESSING, platform=detection.platform
            )
            extractor = self._extractors[detection.container]
            return await asyncio.to_thread(
                extractor.extract, data, platform=detection.platform
            )

        return await self._run(job, work, _output_stem(filename), on_status)

    async def submit_url(
        self,
        url: str,
        user_id: str,
        *,
        on_status: StatusCallback | None = None,
    ) -> ConversionJob:
        url = url.strip()
        detect_container(url=url)
        await self._admit(user_id)

        try:
            job = await self._tracker.create(
                user_id,
                url,
                platform_from_url(url),
                initial_status=ConversionStatus.PROCESSING,
                input_location=url,
            )
        except BaseException:
            self._policy.release(user_id)
            raise

        async def work(job: ConversionJob) -> NormalizedConversation:
            return await self._remote.extract_url(url)

        return await self._run(job, work, _DEFAULT_STEM, on_status)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _admit(self, user_id: str) -> None:
        profile = await self._tracker.get_user(user_id)
        self._policy.acquire(user_id, profile)

    async def _run(
        self,
        job: ConversionJob,
        work: Callable[[ConversionJob], Awaitable[NormalizedConversation]],
        stem: str,
        on_status: StatusCallback | None,
    ) -> ConversionJob:
        unsubscribe = None
        started = time.perf_counter()
        try:
            if on_status is not None:
                await _emit(on_status, job)
                unsubscribe = self._tracker.subscribe(job.id, on_status)
            conversation = await work(job)
            documents = await asyncio.to_thread(self._renderer.render, conversation)
            output_files = self._store_outputs(job.id, stem, documents)
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            await self._tracker.complete(
                job.id,
                output_files,
                compute_metadata(conversation, elapsed_ms),
                platform=conversation.platform,
            )
        except asyncio.CancelledError:
            await self._fail(job.id, "Conversion was cancelled", CANCELLED)
            raise
        except Chat2DocError as exc:
            await self._fail(job.id, exc.message, exc.kind)
        except Exception as exc:
            logger.exception("[%s] Unexpected error during conversion", job.id)
            await self._fail(job.id, str(exc) or type(exc).__name__, UNEXPECTED)
        finally:
            self._policy.release(job.user_id)
            if unsubscribe is not None:
                unsubscribe()

        final = await self._tracker.get(job.id)
        return final if final is not None else job

    def _store_outputs(
        self, job_id: str, stem: str, documents: RenderedDocuments
    ) -> OutputFiles:
        uris: dict[FileFormat, str] = {}
        for fmt in FileFormat:
            key = output_key(job_id, stem, fmt)
            self._storage.write(key, documents.for_format(fmt))
            uris[fmt] = self._storage.resolve_uri(key)
        return OutputFiles(pdf=uris[FileFormat.PDF], docx=uris[FileFormat.DOCX])

    async def _fail(self, job_id: str, error: str, kind: str) -> None:
        try:
            await self._tracker.fail(job_id, error, kind=kind)
        except InvalidTransition:
            # Already terminal: the first outcome stands.
            logger.warning("[%s] Not marking job %s; already finished", job_id, kind)
