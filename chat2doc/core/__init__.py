from chat2doc.core.exceptions import (
    CANCELLED,
    Chat2DocError,
    ExtractionError,
    FetchError,
    InvalidTransition,
    JobNotFound,
    QuotaExceeded,
    RenderError,
    UnsupportedFormat,
)
from chat2doc.core.types import ContainerKind, Detection, FileFormat, Platform

__all__ = [
    "CANCELLED",
    "Chat2DocError",
    "ContainerKind",
    "Detection",
    "ExtractionError",
    "FetchError",
    "FileFormat",
    "InvalidTransition",
    "JobNotFound",
    "Platform",
    "QuotaExceeded",
    "RenderError",
    "UnsupportedFormat",
]
