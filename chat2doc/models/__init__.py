"""Domain models: plain dataclasses with no infrastructure dependencies.

The SQLAlchemy rows used by :class:`~chat2doc.store.sql.SqlJobStore`
live separately in ``chat2doc.db.models`` and map to/from these.
"""

from chat2doc.models.conversation import (
    Message,
    NormalizedConversation,
    Role,
    parse_role,
)
from chat2doc.models.job import (
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    ConversionJob,
    ConversionMetadata,
    ConversionStatus,
    OutputFiles,
    can_transition,
)
from chat2doc.models.user import SubscriptionTier, UserPreferences, UserProfile

__all__ = [
    "ALLOWED_TRANSITIONS",
    "ConversionJob",
    "ConversionMetadata",
    "ConversionStatus",
    "Message",
    "NormalizedConversation",
    "OutputFiles",
    "Role",
    "SubscriptionTier",
    "TERMINAL_STATUSES",
    "UserPreferences",
    "UserProfile",
    "can_transition",
    "parse_role",
]
