"""Share-link retrieval.

Public share pages are fetched over HTTP and handed to the JSON or HTML
extractor depending on what the server returned.
"""

from __future__ import annotations

import logging

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from chat2doc.core.exceptions import FetchError
from chat2doc.core.types import ContainerKind, Platform
from chat2doc.extract.base import Extractor
from chat2doc.extract.detector import looks_like_json, platform_from_url
from chat2doc.extract.html_export import HtmlExportExtractor
from chat2doc.extract.json_export import JsonExportExtractor
from chat2doc.models import NormalizedConversation

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15.0
DEFAULT_ATTEMPTS = 2
_USER_AGENT = "chat2doc/0.1 (+share-link fetcher)"


class RemoteLinkExtractor(Extractor):
    """Fetches a share link and extracts the conversation it serves.

    The GET is retried once (``attempts=2``) with exponential backoff on
    transport errors, timeouts and non-2xx responses; after that a
    :class:`FetchError` is raised.
    """

    container = ContainerKind.REMOTE_LINK

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        attempts: int = DEFAULT_ATTEMPTS,
        backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
        json_extractor: JsonExportExtractor | None = None,
        html_extractor: HtmlExportExtractor | None = None,
    ) -> None:
        self._timeout = timeout
        self._attempts = attempts
        self._backoff = backoff
        self._transport = transport
        self._json = json_extractor or JsonExportExtractor()
        self._html = html_extractor or HtmlExportExtractor()

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        response = await client.get(url)
        response.raise_for_status()
        return response

    async def fetch(self, url: str) -> tuple[bytes, str]:
        """Return ``(body, content_type)`` for *url*."""
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(httpx.HTTPError),
            stop=stop_after_attempt(self._attempts),
            wait=wait_exponential_jitter(
                initial=self._backoff, max=self._backoff * 8, jitter=0
            ),
        )
        async with httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            headers={"User-Agent": _USER_AGENT},
            transport=self._transport,
        ) as client:
            try:
                async for attempt in retrying:
                    with attempt:
                        if attempt.retry_state.attempt_number > 1:
                            logger.info(
                                "Retrying %s (attempt %d)",
                                url,
                                attempt.retry_state.attempt_number,
                            )
                        response = await self._get(client, url)
            except RetryError as exc:
                cause = exc.last_attempt.exception()
                raise FetchError(url, _describe(cause)) from cause

        content_type = response.headers.get("content-type", "")
        logger.debug(
            "Fetched %s: %d bytes (%s)", url, len(response.content), content_type
        )
        return response.content, content_type

    def parse(
        self, data: bytes, *, platform: Platform | None = None
    ) -> NormalizedConversation:
        if looks_like_json(data):
            return self._json.parse(data, platform=platform)
        return self._html.parse(data, platform=platform)

    async def extract_url(self, url: str) -> NormalizedConversation:
        body, content_type = await self.fetch(url)
        hint = platform_from_url(url)
        if "json" in content_type.lower():
            conversation = self._json.parse(body, platform=hint)
        else:
            conversation = self._html.parse(body, platform=hint)
        if conversation.platform is Platform.UNKNOWN:
            conversation.platform = hint
        return self.check(conversation)


def _describe(exc: BaseException | None) -> str | None:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "timed out"
    if exc is None:
        return None
    return str(exc) or type(exc).__name__
