"""The platform-agnostic conversation that feeds rendering and metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from chat2doc.core.types import Platform


class Role(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"

    @property
    def label(self) -> str:
        return self.value.title()


_ROLE_ALIASES: dict[str, Role] = {
    "user": Role.USER,
    "human": Role.USER,
    "you": Role.USER,
    "assistant": Role.ASSISTANT,
    "ai": Role.ASSISTANT,
    "bot": Role.ASSISTANT,
    "model": Role.ASSISTANT,
    "chatgpt": Role.ASSISTANT,
    "claude": Role.ASSISTANT,
    "grok": Role.ASSISTANT,
    "system": Role.SYSTEM,
}


def parse_role(raw: str | None) -> Role | None:
    """Map a platform-specific author label onto a :class:`Role`."""
    if not raw:
        return None
    return _ROLE_ALIASES.get(raw.strip().lower())


@dataclass(frozen=True)
class Message:
    role: Role
    text: str
    timestamp: datetime | None = None

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass
class NormalizedConversation:
    """Ordered messages extracted from one export.

    Transient: produced by an extractor, consumed by the renderer and the
    metadata computation, never persisted.
    """

    platform: Platform = Platform.UNKNOWN
    title: str | None = None
    messages: list[Message] = field(default_factory=list)
    skipped_count: int = 0

    def __len__(self) -> int:
        return len(self.messages)

    @property
    def message_count(self) -> int:
        return len(self.messages)

    @property
    def word_count(self) -> int:
        return sum(m.word_count for m in self.messages)

    @property
    def display_title(self) -> str:
        if self.title and self.title.strip():
            return self.title.strip()
        for msg in self.messages:
            if msg.role is Role.USER:
                first_line = msg.text.strip().splitlines()[0]
                if len(first_line) > 60:
                    return first_line[:57] + "..."
                return first_line
        return "Conversation"
