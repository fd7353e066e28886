from __future__ import annotations

import io
import json
import zipfile
from collections.abc import AsyncGenerator, Callable
from pathlib import Path

import httpx
import pytest

from chat2doc import Chat2Doc
from chat2doc.extract.remote import RemoteLinkExtractor
from chat2doc.storage.disk import DiskStorage
from chat2doc.store.memory import InMemoryJobStore
from chat2doc.tracker import JobTracker

FIXTURES_DIR = Path(__file__).parent / "fixtures"

CHATGPT_EXPORT_PATH = FIXTURES_DIR / "chatgpt" / "conversations.json"
CLAUDE_EXPORT_PATH = FIXTURES_DIR / "claude" / "conversations.json"
GROK_EXPORT_PATH = FIXTURES_DIR / "grok" / "conversations.json"
CHATGPT_SHARE_PAGE_PATH = FIXTURES_DIR / "html" / "chatgpt_share.html"
TRANSCRIPT_PATH = FIXTURES_DIR / "html" / "transcript.txt"

Handler = Callable[[httpx.Request], httpx.Response]


def build_zip(files: dict[str, bytes | str]) -> bytes:
    """Create an in-memory zip archive from a dict of {path: content}."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            if isinstance(data, str):
                data = data.encode("utf-8")
            zf.writestr(name, data)
    return buf.getvalue()


# ── Raw exports ─────────────────────────────────────────────────────


@pytest.fixture()
def chatgpt_export() -> bytes:
    """Three messages (two user, one assistant), 42 words in total."""
    return CHATGPT_EXPORT_PATH.read_bytes()


@pytest.fixture()
def chatgpt_conversations() -> list[dict]:
    return json.loads(CHATGPT_EXPORT_PATH.read_text())


@pytest.fixture()
def claude_export() -> bytes:
    return CLAUDE_EXPORT_PATH.read_bytes()


@pytest.fixture()
def grok_export() -> bytes:
    return GROK_EXPORT_PATH.read_bytes()


@pytest.fixture()
def chatgpt_share_page() -> bytes:
    return CHATGPT_SHARE_PAGE_PATH.read_bytes()


@pytest.fixture()
def transcript() -> bytes:
    return TRANSCRIPT_PATH.read_bytes()


@pytest.fixture()
def zip_builder() -> Callable[[dict[str, bytes | str]], bytes]:
    return build_zip


# ── Backends ────────────────────────────────────────────────────────


@pytest.fixture()
def storage(tmp_path: Path) -> DiskStorage:
    return DiskStorage(str(tmp_path / "storage"))


@pytest.fixture()
def store() -> InMemoryJobStore:
    return InMemoryJobStore()


@pytest.fixture()
def tracker(store: InMemoryJobStore, storage: DiskStorage) -> JobTracker:
    return JobTracker(store, storage)


def mock_remote(handler: Handler) -> RemoteLinkExtractor:
    """A share-link fetcher served by *handler* with no retry backoff."""
    return RemoteLinkExtractor(transport=httpx.MockTransport(handler), backoff=0)


@pytest.fixture()
def remote_pages() -> dict[str, httpx.Response]:
    """URL -> canned response; unknown URLs fail with a connection error."""
    return {}


@pytest.fixture()
def remote_calls() -> list[str]:
    return []


@pytest.fixture()
def remote(
    remote_pages: dict[str, httpx.Response], remote_calls: list[str]
) -> RemoteLinkExtractor:
    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        remote_calls.append(url)
        if url in remote_pages:
            return remote_pages[url]
        raise httpx.ConnectError("connection refused", request=request)

    return mock_remote(handler)


@pytest.fixture()
async def app(
    storage: DiskStorage,
    store: InMemoryJobStore,
    remote: RemoteLinkExtractor,
) -> AsyncGenerator[Chat2Doc]:
    c2d = Chat2Doc(storage=storage, store=store, remote=remote)
    await c2d.init()
    yield c2d
    await c2d.close()
