from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from chat2doc.core.types import Platform
from chat2doc.models.utils import generate_id, isoformat, utcnow


class ConversionStatus(enum.StrEnum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: frozenset[ConversionStatus] = frozenset(
    {ConversionStatus.COMPLETED, ConversionStatus.FAILED}
)

ALLOWED_TRANSITIONS: dict[ConversionStatus, frozenset[ConversionStatus]] = {
    ConversionStatus.UPLOADING: frozenset(
        {ConversionStatus.PROCESSING, ConversionStatus.FAILED}
    ),
    ConversionStatus.PROCESSING: frozenset(
        {ConversionStatus.COMPLETED, ConversionStatus.FAILED}
    ),
    ConversionStatus.COMPLETED: frozenset(),
    ConversionStatus.FAILED: frozenset(),
}


def can_transition(current: ConversionStatus, new: ConversionStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


@dataclass(frozen=True)
class OutputFiles:
    """Opaque, downloadable locations of the rendered artifacts."""

    pdf: str
    docx: str

    def to_dict(self) -> dict[str, str]:
        return {"pdf": self.pdf, "docx": self.docx}


@dataclass(frozen=True)
class ConversionMetadata:
    message_count: int
    word_count: int
    processing_time_ms: int
    skipped_count: int = 0
    title: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "messageCount": self.message_count,
            "wordCount": self.word_count,
            "processingTime": self.processing_time_ms,
            "skippedCount": self.skipped_count,
            "title": self.title,
        }


@dataclass
class ConversionJob:
    """One tracked conversion of a chat export into PDF/DOCX documents.

    ``output_files`` and ``metadata`` are only set once the job is
    ``completed``; ``error`` only once it has ``failed``.  The tracker is
    the sole writer of these fields.
    """

    user_id: str
    original_filename: str
    platform: Platform = Platform.UNKNOWN
    status: ConversionStatus = ConversionStatus.UPLOADING
    input_location: str = ""

    id: str = field(default_factory=generate_id)
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
    output_files: OutputFiles | None = None
    metadata: ConversionMetadata | None = None
    error: str | None = None
    error_kind: str | None = None
    history: list[ConversionStatus] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history = [self.status]

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase record shape the web client expects."""
        data: dict[str, Any] = {
            "conversionId": self.id,
            "userId": self.user_id,
            "originalFilename": self.original_filename,
            "platform": self.platform.value,
            "status": self.status.value,
            "inputFile": self.input_location,
            "createdAt": isoformat(self.created_at),
        }
        if self.output_files is not None:
            data["outputFiles"] = self.output_files.to_dict()
        if self.completed_at is not None:
            data["completedAt"] = isoformat(self.completed_at)
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        if self.error is not None:
            data["error"] = self.error
            data["errorKind"] = self.error_kind
        return data
