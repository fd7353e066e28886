from __future__ import annotations

import pytest

from chat2doc.core import ExtractionError, Platform
from chat2doc.extract.base import MessageCollector
from chat2doc.extract.html_export import HtmlExportExtractor, parse_transcript
from chat2doc.models import Role


@pytest.fixture()
def extractor() -> HtmlExportExtractor:
    return HtmlExportExtractor()


def test_chatgpt_share_page(extractor, chatgpt_share_page):
    conv = extractor.extract(chatgpt_share_page)
    assert conv.platform is Platform.CHATGPT
    assert conv.title == "ChatGPT - Sourdough starter"
    assert [m.role for m in conv.messages] == [Role.USER, Role.ASSISTANT]
    assert conv.messages[0].text == "How do I feed a sourdough starter?"
    assert conv.messages[1].text == (
        "Discard half, then add equal weights of flour and water.\n"
        "Keep it somewhere warm."
    )
    # The tool block has no readable role.
    assert conv.skipped_count == 1


def test_scripts_and_styles_are_ignored(extractor, chatgpt_share_page):
    conv = extractor.extract(chatgpt_share_page)
    assert all("__NEXT_DATA__" not in m.text for m in conv.messages)


def test_claude_test_ids(extractor):
    html = b"""
    <html><body>
      <div data-testid="user-message"><p>Summarise this.</p></div>
      <div class="font-claude-message"><p>Here is a summary.</p></div>
    </body></html>
    """
    conv = extractor.extract(html)
    assert conv.platform is Platform.CLAUDE
    assert [(m.role, m.text) for m in conv.messages] == [
        (Role.USER, "Summarise this."),
        (Role.ASSISTANT, "Here is a summary."),
    ]


def test_role_classes(extractor):
    html = b"""
    <div class="chat">
      <div class="message user"><span>Ping</span></div>
      <div class="message assistant"><span>Pong</span></div>
    </div>
    """
    conv = extractor.extract(html, platform=Platform.GROK)
    assert conv.platform is Platform.GROK
    assert [m.text for m in conv.messages] == ["Ping", "Pong"]


def test_nested_markers_use_outermost(extractor):
    html = b"""
    <div data-message-author-role="assistant">
      <p>Outer</p>
      <div data-message-author-role="assistant"><p>Inner</p></div>
    </div>
    """
    conv = extractor.extract(html)
    assert conv.message_count == 1
    assert conv.messages[0].text == "Outer\nInner"


def test_transcript_fallback(extractor, transcript):
    conv = extractor.extract(transcript)
    assert conv.platform is Platform.UNKNOWN
    assert [m.role for m in conv.messages] == [Role.USER, Role.ASSISTANT, Role.USER]
    assert conv.messages[1].text == (
        "The capital of France is Paris.\nIt has been the capital for centuries."
    )


def test_transcript_speaker_aliases():
    out = MessageCollector()
    parse_transcript("You: hi\nChatGPT: hello\n**Claude**: hey\nGrok - yo", out)
    assert [m.role for m in out.messages] == [
        Role.USER,
        Role.ASSISTANT,
        Role.ASSISTANT,
        Role.ASSISTANT,
    ]


def test_page_without_messages(extractor):
    with pytest.raises(ExtractionError):
        extractor.extract(b"<html><body><p>Nothing to see here.</p></body></html>")
