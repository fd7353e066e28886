"""Enumerations and value types shared across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Platform(StrEnum):
    CHATGPT = "chatgpt"
    CLAUDE = "claude"
    GROK = "grok"
    UNKNOWN = "unknown"


class ContainerKind(StrEnum):
    JSON = "json"
    HTML = "html"
    ZIP = "zip"
    REMOTE_LINK = "remote_link"


class FileFormat(StrEnum):
    PDF = "pdf"
    DOCX = "docx"


@dataclass(frozen=True)
class Detection:
    """Result of format detection: logical platform + physical packaging."""

    platform: Platform
    container: ContainerKind
