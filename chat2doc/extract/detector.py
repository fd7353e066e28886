"""Classify raw input by container kind and originating platform.

Container kind comes from the filename extension (or the URL scheme for
share links); platform comes from structural markers inside the content,
or from the host of a share link.  An unrecognised platform is reported
as :attr:`Platform.UNKNOWN` and never fails detection.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import PurePosixPath
from typing import Any
from urllib.parse import urlparse

from chat2doc.core.exceptions import UnsupportedFormat
from chat2doc.core.types import ContainerKind, Detection, Platform

logger = logging.getLogger(__name__)

EXTENSION_KINDS: dict[str, ContainerKind] = {
    ".json": ContainerKind.JSON,
    ".txt": ContainerKind.JSON,
    ".html": ContainerKind.HTML,
    ".htm": ContainerKind.HTML,
    ".zip": ContainerKind.ZIP,
}

SUPPORTED_EXTENSIONS: tuple[str, ...] = (".json", ".txt", ".html", ".zip")

_HOST_PLATFORMS: list[tuple[str, Platform]] = [
    ("chatgpt.com", Platform.CHATGPT),
    ("chat.openai.com", Platform.CHATGPT),
    ("claude.ai", Platform.CLAUDE),
    ("grok.com", Platform.GROK),
    ("x.com", Platform.GROK),
]

_SENDER_KEYS = ("sender", "role")
_TEXT_KEYS = ("text", "content")


def is_url(value: str | None) -> bool:
    if not value:
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def detect_container(
    filename: str | None = None, url: str | None = None
) -> ContainerKind:
    """Return the container kind for a filename or URL.

    Raises :class:`UnsupportedFormat` when neither a usable URL nor a
    supported extension is given.
    """
    if url is not None:
        if is_url(url):
            return ContainerKind.REMOTE_LINK
        raise UnsupportedFormat(
            f"Not a valid http(s) URL: {url!r}. "
            "Paste a share link starting with http:// or https://"
        )
    if filename and is_url(filename):
        return ContainerKind.REMOTE_LINK
    suffix = PurePosixPath(filename or "").suffix.lower()
    kind = EXTENSION_KINDS.get(suffix)
    if kind is None:
        raise UnsupportedFormat(
            f"Unsupported file type {suffix or '(none)'!r}. "
            f"Please upload {', '.join(SUPPORTED_EXTENSIONS)}"
        )
    return kind


def platform_from_url(url: str) -> Platform:
    host = (urlparse(url).hostname or "").lower()
    for marker, platform in _HOST_PLATFORMS:
        if host == marker or host.endswith("." + marker):
            return platform
    return Platform.UNKNOWN


def looks_like_json(data: bytes) -> bool:
    head = data.lstrip(b"\xef\xbb\xbf \t\r\n")[:1]
    return head in (b"{", b"[")


# ---------------------------------------------------------------------------
# Structural platform markers
# ---------------------------------------------------------------------------


def _is_turn(item: Any) -> bool:
    return (
        isinstance(item, dict)
        and any(k in item for k in _SENDER_KEYS)
        and any(k in item for k in _TEXT_KEYS)
    )


def _conversation_platform(item: dict[str, Any]) -> Platform:
    if isinstance(item.get("mapping"), dict):
        return Platform.CHATGPT
    if "chat_messages" in item:
        return Platform.CLAUDE
    if "responses" in item and ("conversation" in item or "conversation_id" in item):
        return Platform.GROK
    if "message" in item and item.get("sender") in ("human", "assistant"):
        return Platform.GROK
    return Platform.UNKNOWN


def detect_platform(data: Any) -> Platform:
    """Infer the originating platform from parsed JSON export content."""
    if isinstance(data, dict):
        if isinstance(data.get("conversations"), list) and data["conversations"]:
            first = data["conversations"][0]
            if isinstance(first, dict):
                platform = _conversation_platform(first)
                if platform is Platform.UNKNOWN and "responses" in first:
                    return Platform.GROK
                return platform
        if isinstance(data.get("responses"), list):
            return Platform.GROK
        return _conversation_platform(data)

    if isinstance(data, list) and data:
        first = data[0]
        if not isinstance(first, dict):
            return Platform.UNKNOWN
        platform = _conversation_platform(first)
        if platform is not Platform.UNKNOWN:
            return platform
        if "response" in first and isinstance(first["response"], dict):
            return Platform.GROK
        if all(_is_turn(item) for item in data):
            return Platform.CLAUDE
    return Platform.UNKNOWN


_HTML_MARKERS: list[tuple[re.Pattern[str], Platform]] = [
    (re.compile(r"data-message-author-role\s*=", re.I), Platform.CHATGPT),
    (re.compile(r"<title>[^<]*chatgpt", re.I), Platform.CHATGPT),
    (
        re.compile(r"font-claude-message|data-testid=[\"']user-message", re.I),
        Platform.CLAUDE,
    ),
    (re.compile(r"<title>[^<]*claude", re.I), Platform.CLAUDE),
    (re.compile(r"<title>[^<]*grok|content=[\"'][^\"']*grok", re.I), Platform.GROK),
]


def detect_html_platform(html: str) -> Platform:
    for pattern, platform in _HTML_MARKERS:
        if pattern.search(html):
            return platform
    return Platform.UNKNOWN


def detect(
    data: bytes | None = None,
    filename: str | None = None,
    url: str | None = None,
) -> Detection:
    """Classify one submission.

    For link submissions only the URL is inspected.  For uploads the
    extension selects the container; a ``.txt`` upload that is not JSON
    is treated as an HTML/plain-text transcript.  The platform is read
    from the content where the container allows it.
    """
    container = detect_container(filename=filename, url=url)

    if container is ContainerKind.REMOTE_LINK:
        return Detection(platform_from_url(url or filename or ""), container)

    data = data or b""
    if (
        container is ContainerKind.JSON
        and PurePosixPath(filename or "").suffix.lower() == ".txt"
        and not looks_like_json(data)
    ):
        container = ContainerKind.HTML

    platform = Platform.UNKNOWN
    if container is ContainerKind.JSON:
        try:
            platform = detect_platform(json.loads(data.decode("utf-8-sig")))
        except (UnicodeDecodeError, ValueError):
            logger.debug("Content of %s is not valid JSON", filename)
    elif container is ContainerKind.HTML:
        platform = detect_html_platform(data.decode("utf-8-sig", errors="replace"))
    # ZIP platforms are resolved once the archive's primary file is found.

    return Detection(platform, container)
