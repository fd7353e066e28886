from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime

from chat2doc.core.exceptions import RenderError
from chat2doc.core.types import FileFormat
from chat2doc.models import ConversionMetadata, Message, NormalizedConversation

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M UTC"

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
# C0 controls other than tab, newline and carriage return are not valid XML 1.0.
_XML_INVALID = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


@dataclass(frozen=True)
class RenderedDocuments:
    pdf: bytes
    docx: bytes

    def for_format(self, fmt: FileFormat) -> bytes:
        return self.pdf if fmt is FileFormat.PDF else self.docx


def printable(text: str) -> str:
    """Drop terminal colour codes and characters neither format can hold."""
    return _XML_INVALID.sub("", _ANSI_ESCAPE.sub("", text))


def message_heading(message: Message) -> str:
    """``"User"`` or ``"Assistant · 2024-05-01 09:30 UTC"``."""
    if message.timestamp is None:
        return message.role.label
    stamp = message.timestamp.strftime(TIMESTAMP_FORMAT)
    return f"{message.role.label} · {stamp}"


def compute_metadata(
    conversation: NormalizedConversation, processing_time_ms: int
) -> ConversionMetadata:
    return ConversionMetadata(
        message_count=conversation.message_count,
        word_count=conversation.word_count,
        processing_time_ms=max(0, int(processing_time_ms)),
        skipped_count=conversation.skipped_count,
        title=conversation.display_title,
    )


class Renderer(ABC):
    """Renders a conversation into one document format."""

    format: FileFormat

    @abstractmethod
    def _render(self, conversation: NormalizedConversation) -> bytes: ...

    def render(self, conversation: NormalizedConversation) -> bytes:
        if not conversation.messages:
            raise RenderError("conversation has no messages")
        try:
            return self._render(conversation)
        except RenderError:
            raise
        except Exception as exc:
            logger.exception("%s rendering failed", self.format.value.upper())
            raise RenderError(f"{self.format.value}: {exc}") from exc


def fixed_document_time(conversation: NormalizedConversation) -> datetime:
    """Timestamp embedded in document metadata.

    Derived from the conversation, never from the clock.
    """
    stamps = [m.timestamp for m in conversation.messages if m.timestamp]
    if stamps:
        earliest = min(stamps).astimezone(UTC)
        return earliest.replace(tzinfo=None, microsecond=0)
    return datetime(2000, 1, 1)
