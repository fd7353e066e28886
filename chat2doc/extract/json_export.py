"""JSON export parsing: ChatGPT, Claude, Grok and generic role/content turns."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from typing import Any

from pydantic import ValidationError

from chat2doc.core.exceptions import ExtractionError
from chat2doc.core.types import ContainerKind, Platform
from chat2doc.extract.base import Extractor, MessageCollector, decode_text
from chat2doc.extract.detector import detect_platform
from chat2doc.extract.schemas import (
    ChatGPTMessage,
    ChatGPTNode,
    ClaudeMessage,
    GenericMessage,
    GrokResponse,
)
from chat2doc.models import NormalizedConversation

logger = logging.getLogger(__name__)

_Walker = Callable[[dict[str, Any], MessageCollector], None]


# ---------------------------------------------------------------------------
# ChatGPT: conversations hold a ``mapping`` tree of message nodes
# ---------------------------------------------------------------------------


def _chatgpt_branch(
    mapping: dict[str, ChatGPTNode], current_node: str | None
) -> list[ChatGPTNode]:
    """Return the nodes of the visible branch, root first.

    When the export names a ``current_node`` the parent chain is followed
    from it; otherwise nodes are ordered by message ``create_time``
    (nodes without one keep their position at the end).
    """
    if current_node and current_node in mapping:
        chain: list[ChatGPTNode] = []
        seen: set[str] = set()
        node_id: str | None = current_node
        while node_id and node_id in mapping and node_id not in seen:
            seen.add(node_id)
            node = mapping[node_id]
            chain.append(node)
            node_id = node.parent
        return list(reversed(chain))

    def sort_key(item: tuple[int, ChatGPTNode]) -> tuple[int, float, int]:
        index, node = item
        created = (node.message or {}).get("create_time")
        if isinstance(created, int | float):
            return (0, float(created), index)
        return (1, 0.0, index)

    return [node for _, node in sorted(enumerate(mapping.values()), key=sort_key)]


def _walk_chatgpt(conversation: dict[str, Any], out: MessageCollector) -> None:
    mapping: dict[str, ChatGPTNode] = {}
    for node_id, raw in (conversation.get("mapping") or {}).items():
        try:
            mapping[node_id] = ChatGPTNode.model_validate(raw)
        except ValidationError:
            out.skip()

    for node in _chatgpt_branch(mapping, conversation.get("current_node")):
        if not node.message:
            continue
        try:
            message = ChatGPTMessage.model_validate(node.message)
        except ValidationError:
            out.skip()
            continue
        text = message.content.joined_text()
        if message.author.role == "system" and (message.is_hidden or not text.strip()):
            continue
        if message.author.role == "tool" or message.is_hidden:
            out.skip()
            continue
        out.add(message.author.role, text, message.create_time)


# ---------------------------------------------------------------------------
# Claude: ``chat_messages`` lists, or a flat array of turns
# ---------------------------------------------------------------------------


def _add_claude_turn(raw: Any, out: MessageCollector) -> None:
    if isinstance(raw, dict) and "sender" not in raw and "role" in raw:
        raw = {**raw, "sender": raw["role"]}
        if isinstance(raw.get("content"), str):
            raw["text"] = raw.pop("content")
    try:
        message = ClaudeMessage.model_validate(raw)
    except ValidationError:
        out.skip()
        return
    out.add(message.sender, message.joined_text(), message.created_at)


def _walk_claude(conversation: dict[str, Any], out: MessageCollector) -> None:
    for raw in conversation.get("chat_messages") or []:
        _add_claude_turn(raw, out)


# ---------------------------------------------------------------------------
# Grok: ``{"conversation": {...}, "responses": [{"response": {...}}]}``
# ---------------------------------------------------------------------------


def _walk_grok(conversation: dict[str, Any], out: MessageCollector) -> None:
    for raw in conversation.get("responses") or []:
        if isinstance(raw, dict) and isinstance(raw.get("response"), dict):
            raw = raw["response"]
        try:
            response = GrokResponse.model_validate(raw)
        except ValidationError:
            out.skip()
            continue
        out.add(response.sender, response.message, response.create_time)


# ---------------------------------------------------------------------------
# Generic: ``{"messages": [{"role": ..., "content": ...}]}``
# ---------------------------------------------------------------------------


def _walk_generic(conversation: dict[str, Any], out: MessageCollector) -> None:
    for raw in conversation.get("messages") or []:
        try:
            message = GenericMessage.model_validate(raw)
        except ValidationError:
            out.skip()
            continue
        out.add(
            message.role,
            message.joined_text(),
            message.timestamp,
        )


_WALKERS: dict[Platform, _Walker] = {
    Platform.CHATGPT: _walk_chatgpt,
    Platform.CLAUDE: _walk_claude,
    Platform.GROK: _walk_grok,
    Platform.UNKNOWN: _walk_generic,
}

_TITLE_KEYS = ("title", "name")


def _title_of(conversation: dict[str, Any]) -> str | None:
    meta = conversation.get("conversation")
    source = meta if isinstance(meta, dict) else conversation
    for key in _TITLE_KEYS:
        value = source.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _iter_conversations(data: Any, platform: Platform) -> Iterator[dict[str, Any]]:
    """Yield the conversation objects held by an export, in file order."""
    if isinstance(data, dict):
        if isinstance(data.get("conversations"), list):
            yield from (c for c in data["conversations"] if isinstance(c, dict))
            return
        if platform is Platform.GROK and "responses" not in data:
            yield {"responses": [data]}
            return
        yield data
        return

    if isinstance(data, list):
        if not data or not isinstance(data[0], dict):
            return
        if platform is Platform.CLAUDE and "chat_messages" not in data[0]:
            # A flat array of turns is a single conversation.
            yield {"chat_messages": data}
            return
        if platform is Platform.GROK and "responses" not in data[0]:
            yield {"responses": data}
            return
        if platform is Platform.UNKNOWN and "messages" not in data[0]:
            yield {"messages": data}
            return
        yield from (c for c in data if isinstance(c, dict))


class JsonExportExtractor(Extractor):
    """Parses JSON chat exports.

    Exports holding several conversations produce the first one that has
    any readable messages; everything skipped before it is still counted.
    """

    container = ContainerKind.JSON

    def parse(
        self, data: bytes, *, platform: Platform | None = None
    ) -> NormalizedConversation:
        try:
            payload = json.loads(decode_text(data))
        except ValueError as exc:
            raise ExtractionError(f"invalid JSON: {exc}") from exc
        return self.parse_payload(payload, platform=platform)

    def parse_payload(
        self, payload: Any, *, platform: Platform | None = None
    ) -> NormalizedConversation:
        # The payload's shape picks the walker; a hint from the link host
        # only labels exports whose shape names no platform.
        shape = detect_platform(payload)
        walker = _WALKERS[shape]
        label = shape
        if shape is Platform.UNKNOWN and platform is not None:
            label = platform

        skipped = 0
        last = MessageCollector()
        title: str | None = None
        for conversation in _iter_conversations(payload, shape):
            collector = MessageCollector()
            walker(conversation, collector)
            title = _title_of(conversation)
            if collector.messages:
                collector.skip(skipped)
                return collector.build(label, title)
            skipped += collector.skipped
            last = collector

        logger.debug("No readable conversation in %s export", shape.value)
        last.skipped = skipped
        return last.build(label, title)
