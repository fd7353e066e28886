from chat2doc.core import (
    Chat2DocError,
    ContainerKind,
    ExtractionError,
    FetchError,
    FileFormat,
    InvalidTransition,
    JobNotFound,
    Platform,
    QuotaExceeded,
    RenderError,
    UnsupportedFormat,
)
from chat2doc.facade import Chat2Doc
from chat2doc.models import (
    ConversionJob,
    ConversionMetadata,
    ConversionStatus,
    Message,
    NormalizedConversation,
    OutputFiles,
    Role,
    SubscriptionTier,
    UserPreferences,
    UserProfile,
)

__all__ = [
    "Chat2Doc",
    "Chat2DocError",
    "ContainerKind",
    "ConversionJob",
    "ConversionMetadata",
    "ConversionStatus",
    "ExtractionError",
    "FetchError",
    "FileFormat",
    "InvalidTransition",
    "JobNotFound",
    "Message",
    "NormalizedConversation",
    "OutputFiles",
    "Platform",
    "QuotaExceeded",
    "RenderError",
    "Role",
    "SubscriptionTier",
    "UnsupportedFormat",
    "UserPreferences",
    "UserProfile",
]
