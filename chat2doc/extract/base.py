from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any, ClassVar

from chat2doc.core.exceptions import ExtractionError
from chat2doc.core.types import ContainerKind, Platform
from chat2doc.models import Message, NormalizedConversation, parse_role

logger = logging.getLogger(__name__)

# Timestamps above this threshold are treated as milliseconds (year 2100+)
_MAX_SECONDS_EPOCH = 4_102_444_800  # 2100-01-01 00:00 UTC


def safe_timestamp(value: Any) -> datetime | None:
    """Best-effort conversion of an export timestamp to an aware datetime.

    Accepts Unix epochs (seconds or milliseconds), ISO-8601 strings and
    Mongo-style ``{"$date": {"$numberLong": "..."}}`` wrappers.
    Anything unparseable becomes ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, dict):
        inner = value.get("$date", value.get("$numberLong"))
        if isinstance(inner, dict):
            inner = inner.get("$numberLong")
        return safe_timestamp(inner)
    if isinstance(value, str):
        stripped = value.strip()
        try:
            return safe_timestamp(float(stripped))
        except ValueError:
            pass
        try:
            parsed = datetime.fromisoformat(stripped)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    if isinstance(value, int | float) and not isinstance(value, bool):
        ts = float(value)
        if ts > _MAX_SECONDS_EPOCH:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    return None


class MessageCollector:
    """Accumulates messages in source order, counting the ones it drops."""

    def __init__(self) -> None:
        self.messages: list[Message] = []
        self.skipped = 0

    def add(self, role: str | None, text: str | None, timestamp: Any = None) -> bool:
        parsed_role = parse_role(role)
        if parsed_role is None or text is None or not text.strip():
            self.skipped += 1
            return False
        self.messages.append(
            Message(
                role=parsed_role,
                text=text.strip(),
                timestamp=safe_timestamp(timestamp),
            )
        )
        return True

    def skip(self, count: int = 1) -> None:
        self.skipped += count

    def build(
        self, platform: Platform, title: str | None = None
    ) -> NormalizedConversation:
        return NormalizedConversation(
            platform=platform,
            title=title,
            messages=list(self.messages),
            skipped_count=self.skipped,
        )


class Extractor(ABC):
    """Turns the raw bytes of one container kind into a conversation.

    Subclasses implement :meth:`parse`; :meth:`extract` wraps it with the
    guarantees every strategy shares: a conversation with at least one
    message, or :class:`ExtractionError`.
    """

    container: ClassVar[ContainerKind]

    @abstractmethod
    def parse(
        self, data: bytes, *, platform: Platform | None = None
    ) -> NormalizedConversation:
        """Parse *data*, skipping malformed messages.

        *platform* is a hint from detection; strategies may refine it.
        """
        ...

    def extract(
        self, data: bytes, *, platform: Platform | None = None
    ) -> NormalizedConversation:
        return self.check(self.parse(data, platform=platform))

    def check(self, conversation: NormalizedConversation) -> NormalizedConversation:
        """Reject a conversation with no messages; log what was skipped."""
        if not conversation.messages:
            raise ExtractionError(
                f"no messages found in {self.container.value} input "
                f"({conversation.skipped_count} skipped)"
            )
        if conversation.skipped_count:
            logger.info(
                "Skipped %d malformed message(s) in %s input",
                conversation.skipped_count,
                self.container.value,
            )
        return conversation


def decode_text(data: bytes) -> str:
    """Decode export bytes, tolerating a BOM and stray invalid bytes."""
    return data.decode("utf-8-sig", errors="replace")
