from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from chat2doc.core.types import FileFormat
from chat2doc.models.utils import utcnow


class SubscriptionTier(StrEnum):
    FREE = "free"
    PREMIUM = "premium"


@dataclass
class UserPreferences:
    default_format: FileFormat = FileFormat.PDF
    auto_delete: bool = False


@dataclass
class UserProfile:
    """Account data owned by the identity layer.

    The pipeline reads ``subscription`` for policy decisions and bumps
    ``conversion_count`` whenever a job is created for the user.
    """

    uid: str
    email: str = ""
    display_name: str = ""
    subscription: SubscriptionTier = SubscriptionTier.FREE
    conversion_count: int = 0
    preferences: UserPreferences = field(default_factory=UserPreferences)
    created_at: datetime = field(default_factory=utcnow)
