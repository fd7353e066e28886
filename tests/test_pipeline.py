from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from chat2doc import Chat2Doc
from chat2doc.core import CANCELLED, Platform, QuotaExceeded, UnsupportedFormat
from chat2doc.extract.remote import RemoteLinkExtractor
from chat2doc.models import (
    ConversionJob,
    ConversionStatus,
    SubscriptionTier,
    UserProfile,
)
from chat2doc.storage.disk import DiskStorage
from chat2doc.store.memory import InMemoryJobStore

SHARE_URL = "https://chatgpt.com/share/abc123"
EMPTY_EXPORT = json.dumps([{"sender": "human", "text": "   "}]).encode()


class _Hanging:
    """Share-link handler that never answers until released."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.started.set()
        await self.release.wait()
        return httpx.Response(404)


@pytest.fixture()
def hanging() -> _Hanging:
    return _Hanging()


@pytest.fixture()
async def slow_app(storage: DiskStorage, store: InMemoryJobStore, hanging: _Hanging):
    remote = RemoteLinkExtractor(transport=httpx.MockTransport(hanging), backoff=0)
    c2d = Chat2Doc(storage=storage, store=store, remote=remote)
    await c2d.init()
    yield c2d
    await c2d.close()


class TestSubmitFile:
    async def test_chatgpt_export_completes(self, app: Chat2Doc, chatgpt_export):
        job = await app.submit_file(chatgpt_export, "conversations.json", "u1")

        assert job.status is ConversionStatus.COMPLETED
        assert job.platform is Platform.CHATGPT
        assert job.metadata is not None
        assert job.metadata.message_count == 3
        assert job.metadata.word_count == 42
        assert job.metadata.processing_time_ms >= 0
        assert job.metadata.title == "Photosynthesis basics"
        assert job.output_files is not None
        assert job.output_files.pdf.endswith("/output/conversations.pdf")
        assert job.output_files.docx.endswith("/output/conversations.docx")
        assert job.error is None

        listed = await app.list_conversions("u1")
        assert [j.id for j in listed] == [job.id]

    async def test_outputs_and_input_are_stored(self, app: Chat2Doc, chatgpt_export):
        job = await app.submit_file(chatgpt_export, "conversations.json", "u1")

        assert app.storage.list_keys(f"{job.id}/") == [
            f"{job.id}/input/conversations.json",
            f"{job.id}/output/conversations.docx",
            f"{job.id}/output/conversations.pdf",
        ]
        assert app.storage.read(f"{job.id}/input/conversations.json") == chatgpt_export
        assert app.storage.read(f"{job.id}/output/conversations.pdf").startswith(
            b"%PDF"
        )
        assert app.storage.read(f"{job.id}/output/conversations.docx").startswith(
            b"PK"
        )
        assert job.input_location.startswith("file://")

    async def test_unsupported_extension_creates_no_job(self, app: Chat2Doc):
        with pytest.raises(UnsupportedFormat):
            await app.submit_file(b"%PDF-1.4", "notes.pdf", "u1")
        assert await app.list_conversions("u1") == []
        assert app.storage.list_keys("") == []

    async def test_empty_export_fails_with_extraction_error(self, app: Chat2Doc):
        job = await app.submit_file(EMPTY_EXPORT, "chat.json", "u1")

        assert job.status is ConversionStatus.FAILED
        assert job.error_kind == "ExtractionError"
        assert job.error
        assert job.output_files is None
        assert job.metadata is None
        assert app.storage.list_keys(f"{job.id}/output/") == []

    async def test_zip_records_platform(
        self, app: Chat2Doc, claude_export, zip_builder
    ):
        archive = zip_builder(
            {
                "__MACOSX/._conversations.json": b"",
                "data/conversations.json": claude_export,
            }
        )
        job = await app.submit_file(archive, "export.zip", "u1")

        assert job.status is ConversionStatus.COMPLETED
        assert job.platform is Platform.CLAUDE
        assert job.output_files is not None
        assert job.output_files.pdf.endswith("/output/export.pdf")

    async def test_corrupt_zip_fails(self, app: Chat2Doc):
        job = await app.submit_file(b"PK\x03\x04 not really", "export.zip", "u1")
        assert job.status is ConversionStatus.FAILED
        assert job.error_kind == "ExtractionError"

    async def test_plain_transcript(self, app: Chat2Doc, transcript):
        job = await app.submit_file(transcript, "chat.txt", "u1")
        assert job.status is ConversionStatus.COMPLETED
        assert job.metadata is not None
        assert job.metadata.message_count == 3

    async def test_status_callbacks(self, app: Chat2Doc, chatgpt_export):
        seen: list[ConversionStatus] = []

        async def on_status(job: ConversionJob) -> None:
            seen.append(job.status)

        await app.submit_file(
            chatgpt_export, "conversations.json", "u1", on_status=on_status
        )
        assert seen == [
            ConversionStatus.UPLOADING,
            ConversionStatus.PROCESSING,
            ConversionStatus.COMPLETED,
        ]

    async def test_raising_status_callback_does_not_orphan_job(
        self, app: Chat2Doc, chatgpt_export
    ):
        def on_status(job: ConversionJob) -> None:
            raise RuntimeError("ui gone")

        job = await app.submit_file(
            chatgpt_export, "conversations.json", "u1", on_status=on_status
        )
        assert job.status is ConversionStatus.COMPLETED

        again = await app.submit_file(chatgpt_export, "conversations.json", "u1")
        assert again.status is ConversionStatus.COMPLETED

    async def test_url_as_filename_is_a_link_job(
        self, app: Chat2Doc, remote_pages, chatgpt_share_page
    ):
        remote_pages[SHARE_URL] = httpx.Response(
            200, content=chatgpt_share_page, headers={"content-type": "text/html"}
        )
        job = await app.submit_file(b"", SHARE_URL, "u1")
        assert job.status is ConversionStatus.COMPLETED
        assert job.input_location == SHARE_URL


class TestSubmitUrl:
    async def test_share_link_completes(
        self, app: Chat2Doc, remote_pages, chatgpt_share_page
    ):
        remote_pages[SHARE_URL] = httpx.Response(
            200, content=chatgpt_share_page, headers={"content-type": "text/html"}
        )
        seen: list[ConversionStatus] = []
        job = await app.submit_url(
            SHARE_URL, "u1", on_status=lambda j: seen.append(j.status)
        )

        assert job.status is ConversionStatus.COMPLETED
        assert job.platform is Platform.CHATGPT
        assert job.input_location == SHARE_URL
        assert job.history == [ConversionStatus.PROCESSING, ConversionStatus.COMPLETED]
        assert seen == job.history
        assert app.storage.list_keys(f"{job.id}/output/") == [
            f"{job.id}/output/conversation.docx",
            f"{job.id}/output/conversation.pdf",
        ]

    async def test_unreachable_link_fails_after_retry(
        self, app: Chat2Doc, remote_calls
    ):
        url = "https://claude.ai/share/gone"
        job = await app.submit_url(url, "u1")

        assert job.status is ConversionStatus.FAILED
        assert job.error_kind == "FetchError"
        assert remote_calls == [url, url]
        assert [j.id for j in await app.list_conversions("u1")] == [job.id]

    async def test_http_error_is_reported(self, app: Chat2Doc, remote_pages):
        remote_pages[SHARE_URL] = httpx.Response(404)
        job = await app.submit_url(SHARE_URL, "u1")
        assert job.error_kind == "FetchError"
        assert job.error is not None
        assert "404" in job.error

    async def test_invalid_url_is_rejected_up_front(self, app: Chat2Doc):
        with pytest.raises(UnsupportedFormat):
            await app.submit_url("ftp://example.com/chat", "u1")
        assert await app.list_conversions("u1") == []


class TestCancellationAndQuota:
    async def test_cancelled_job_is_failed(self, slow_app: Chat2Doc, hanging):
        task = asyncio.create_task(slow_app.submit_url(SHARE_URL, "u1"))
        await hanging.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        [job] = await slow_app.list_conversions("u1")
        assert job.status is ConversionStatus.FAILED
        assert job.error_kind == CANCELLED
        assert job.output_files is None

    async def test_cancel_during_first_status_callback(
        self, app: Chat2Doc, chatgpt_export
    ):
        entered = asyncio.Event()

        async def on_status(job: ConversionJob) -> None:
            entered.set()
            await asyncio.Event().wait()

        task = asyncio.create_task(
            app.submit_file(
                chatgpt_export, "conversations.json", "u1", on_status=on_status
            )
        )
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        [job] = await app.list_conversions("u1")
        assert job.status is ConversionStatus.FAILED
        assert job.error_kind == CANCELLED

        again = await app.submit_file(chatgpt_export, "conversations.json", "u1")
        assert again.status is ConversionStatus.COMPLETED

    async def test_free_user_limited_to_one_in_flight(
        self, slow_app: Chat2Doc, hanging, chatgpt_export
    ):
        task = asyncio.create_task(slow_app.submit_url(SHARE_URL, "u1"))
        await hanging.started.wait()

        with pytest.raises(QuotaExceeded):
            await slow_app.submit_file(chatgpt_export, "conversations.json", "u1")
        assert len(await slow_app.list_conversions("u1")) == 1

        other = await slow_app.submit_file(chatgpt_export, "conversations.json", "u2")
        assert other.status is ConversionStatus.COMPLETED

        hanging.release.set()
        first = await task
        assert first.status is ConversionStatus.FAILED

        again = await slow_app.submit_file(chatgpt_export, "conversations.json", "u1")
        assert again.status is ConversionStatus.COMPLETED

    async def test_premium_user_runs_concurrently(
        self, slow_app: Chat2Doc, hanging, chatgpt_export
    ):
        await slow_app.register_user(
            UserProfile(uid="p1", subscription=SubscriptionTier.PREMIUM)
        )
        task = asyncio.create_task(slow_app.submit_url(SHARE_URL, "p1"))
        await hanging.started.wait()

        job = await slow_app.submit_file(chatgpt_export, "conversations.json", "p1")
        assert job.status is ConversionStatus.COMPLETED

        hanging.release.set()
        await task
        profile = await slow_app.get_user("p1")
        assert profile is not None
        assert profile.conversion_count == 2


class TestDelete:
    async def test_delete_removes_files(self, app: Chat2Doc, chatgpt_export):
        job = await app.submit_file(chatgpt_export, "conversations.json", "u1")

        assert await app.delete_conversion(job.id) is True
        assert await app.get_conversion(job.id) is None
        assert app.storage.list_keys(f"{job.id}/") == []
        assert await app.list_conversions("u1") == []

    async def test_missing_id_is_a_no_op(self, app: Chat2Doc):
        assert await app.delete_conversion("does-not-exist") is False
