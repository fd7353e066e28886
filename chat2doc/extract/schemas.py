"""Pydantic schemas for raw chat export records."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

# ---------------------------------------------------------------------------
# ChatGPT (conversations.json with a ``mapping`` node tree)
# ---------------------------------------------------------------------------


class ChatGPTAuthor(BaseModel):
    role: str


class ChatGPTContent(BaseModel):
    content_type: str | None = None
    parts: list[Any] | None = None
    text: str | None = None

    def joined_text(self) -> str:
        if self.parts:
            return "\n".join(p for p in self.parts if isinstance(p, str))
        return self.text or ""


class ChatGPTMessage(BaseModel):
    author: ChatGPTAuthor
    content: ChatGPTContent
    create_time: float | None = None
    metadata: dict[str, Any] | None = None

    @property
    def is_hidden(self) -> bool:
        return bool((self.metadata or {}).get("is_visually_hidden_from_conversation"))


class ChatGPTNode(BaseModel):
    id: str | None = None
    message: dict[str, Any] | None = None
    parent: str | None = None
    children: list[str] = []


# ---------------------------------------------------------------------------
# Claude (conversations.json with ``chat_messages``, or flat turn arrays)
# ---------------------------------------------------------------------------


class ClaudeContentBlock(BaseModel):
    type: str | None = None
    text: str | None = None


class ClaudeMessage(BaseModel):
    sender: str
    text: str | None = None
    content: list[ClaudeContentBlock] | None = None
    created_at: Any = None

    def joined_text(self) -> str:
        if self.text and self.text.strip():
            return self.text
        if self.content:
            return "\n".join(
                b.text for b in self.content if b.type in (None, "text") and b.text
            )
        return ""


# ---------------------------------------------------------------------------
# Grok (``conversations`` → ``responses`` wrappers)
# ---------------------------------------------------------------------------


class GrokResponse(BaseModel):
    message: str
    sender: str
    create_time: Any = None


# ---------------------------------------------------------------------------
# Generic ``{"role": ..., "content": ...}`` turns
# ---------------------------------------------------------------------------


class GenericMessage(BaseModel):
    role: str
    content: str | list[Any]
    timestamp: Any = None

    def joined_text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        texts: list[str] = []
        for part in self.content:
            if isinstance(part, str):
                texts.append(part)
            elif isinstance(part, dict) and isinstance(part.get("text"), str):
                texts.append(part["text"])
        return "\n".join(texts)
