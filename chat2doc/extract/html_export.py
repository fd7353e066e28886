"""HTML export and plain-text transcript parsing."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from bs4 import BeautifulSoup, Tag

from chat2doc.core.types import ContainerKind, Platform
from chat2doc.extract.base import Extractor, MessageCollector, decode_text
from chat2doc.extract.detector import detect_html_platform
from chat2doc.models import NormalizedConversation

logger = logging.getLogger(__name__)

_ROLE_TOKENS = {"user", "human", "assistant", "bot", "ai", "system"}
_CONTAINER_TOKENS = ("message", "msg", "turn", "chat")

# "User:", "ChatGPT:", "Assistant -" … at the start of a transcript line.
_SPEAKER_LINE = re.compile(
    r"^\s*(?:\*\*)?(user|you|human|assistant|chatgpt|claude|grok|ai|system)"
    r"(?:\*\*)?\s*[:\-–]\s?(.*)$",
    re.IGNORECASE,
)

_SKIP_TAGS = ["script", "style", "noscript", "template", "svg"]


def _block_text(tag: Tag) -> str:
    return tag.get_text("\n", strip=True)


def _outermost(tags: Iterable[Tag]) -> list[Tag]:
    """Drop matches nested inside another match, keeping document order."""
    picked: list[Tag] = []
    picked_ids: set[int] = set()
    for tag in tags:
        if any(id(parent) in picked_ids for parent in tag.parents):
            continue
        picked.append(tag)
        picked_ids.add(id(tag))
    return picked


def _author_role_blocks(soup: BeautifulSoup) -> list[tuple[str, Tag]]:
    """ChatGPT pages tag every turn with ``data-message-author-role``."""
    tags = soup.find_all(attrs={"data-message-author-role": True})
    return [(str(t["data-message-author-role"]), t) for t in _outermost(tags)]


def _claude_role(tag: Tag) -> str | None:
    testid = tag.get("data-testid")
    if testid == "user-message":
        return "user"
    if testid in ("assistant-message", "bot-message"):
        return "assistant"
    classes = tag.get("class") or []
    if "font-claude-message" in classes or "font-claude-response" in classes:
        return "assistant"
    return None


def _testid_blocks(soup: BeautifulSoup) -> list[tuple[str, Tag]]:
    tags = soup.find_all(lambda t: isinstance(t, Tag) and _claude_role(t) is not None)
    return [(_claude_role(t) or "", t) for t in _outermost(tags)]


def _class_role(tag: Tag) -> str | None:
    classes = [c.lower() for c in tag.get("class") or []]
    if not classes:
        return None
    tokens: set[str] = set()
    for cls in classes:
        tokens.update(re.split(r"[-_\s]+", cls))
    if not any(marker in cls for cls in classes for marker in _CONTAINER_TOKENS):
        return None
    roles = tokens & _ROLE_TOKENS
    if len(roles) != 1:
        return None
    return roles.pop()


def _class_blocks(soup: BeautifulSoup) -> list[tuple[str, Tag]]:
    tags = soup.find_all(lambda t: isinstance(t, Tag) and _class_role(t) is not None)
    return [(_class_role(t) or "", t) for t in _outermost(tags)]


def parse_transcript(text: str, out: MessageCollector) -> None:
    """Parse a ``Speaker: text`` transcript; continuation lines are appended."""
    role: str | None = None
    lines: list[str] = []

    def flush() -> None:
        if role is not None:
            out.add(role, "\n".join(lines))

    for line in text.splitlines():
        match = _SPEAKER_LINE.match(line)
        if match:
            flush()
            role = match.group(1).lower()
            lines = [match.group(2)] if match.group(2) else []
        elif role is not None:
            lines.append(line.rstrip())
    flush()


class HtmlExportExtractor(Extractor):
    """Extracts turns from saved chat pages and transcripts.

    Structured role markers are tried first (ChatGPT author-role
    attributes, Claude test ids, ``message user``-style classes); when a
    page carries none of them its visible text is read as a transcript.
    """

    container = ContainerKind.HTML

    def parse(
        self, data: bytes, *, platform: Platform | None = None
    ) -> NormalizedConversation:
        html = decode_text(data)
        soup = BeautifulSoup(html, "html.parser")
        for tag in soup.find_all(_SKIP_TAGS):
            tag.decompose()

        detected = detect_html_platform(html)
        if detected is Platform.UNKNOWN and platform is not None:
            detected = platform

        title = None
        if soup.title and soup.title.string:
            title = soup.title.string.strip() or None

        out = MessageCollector()
        for strategy in (_author_role_blocks, _testid_blocks, _class_blocks):
            blocks = strategy(soup)
            if blocks:
                logger.debug(
                    "HTML strategy %s matched %d blocks",
                    strategy.__name__,
                    len(blocks),
                )
                for role, tag in blocks:
                    out.add(role, _block_text(tag))
                return out.build(detected, title)

        parse_transcript(soup.get_text("\n"), out)
        return out.build(detected, title)
