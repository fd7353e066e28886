"""Per-tier limits on concurrent conversions."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Mapping

from chat2doc.core.exceptions import QuotaExceeded
from chat2doc.models import SubscriptionTier, UserProfile

logger = logging.getLogger(__name__)

DEFAULT_LIMITS: dict[SubscriptionTier, int] = {
    SubscriptionTier.FREE: 1,
    SubscriptionTier.PREMIUM: 5,
}


class RunPolicy(ABC):
    """Admission control consulted before a job is created."""

    @abstractmethod
    def acquire(self, user_id: str, profile: UserProfile | None = None) -> None:
        """Reserve a slot for *user_id* or raise :class:`QuotaExceeded`."""
        ...

    @abstractmethod
    def release(self, user_id: str) -> None: ...


class UnlimitedPolicy(RunPolicy):
    def acquire(self, user_id: str, profile: UserProfile | None = None) -> None:
        return None

    def release(self, user_id: str) -> None:
        return None


class InFlightPolicy(RunPolicy):
    """Caps the number of unfinished conversions per user.

    Unknown users are treated as :attr:`SubscriptionTier.FREE`.
    """

    def __init__(self, limits: Mapping[SubscriptionTier, int] | None = None) -> None:
        self._limits = dict(DEFAULT_LIMITS)
        if limits:
            self._limits.update(
                {SubscriptionTier(tier): int(n) for tier, n in limits.items()}
            )
        self._in_flight: Counter[str] = Counter()

    def limit_for(self, profile: UserProfile | None) -> int:
        tier = profile.subscription if profile else SubscriptionTier.FREE
        return self._limits[tier]

    def in_flight(self, user_id: str) -> int:
        return self._in_flight[user_id]

    def acquire(self, user_id: str, profile: UserProfile | None = None) -> None:
        limit = self.limit_for(profile)
        if self._in_flight[user_id] >= limit:
            logger.info("User %s is at the in-flight limit (%d)", user_id, limit)
            raise QuotaExceeded(user_id, limit)
        self._in_flight[user_id] += 1

    def release(self, user_id: str) -> None:
        if self._in_flight[user_id] <= 1:
            self._in_flight.pop(user_id, None)
        else:
            self._in_flight[user_id] -= 1
