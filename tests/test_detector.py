"""Tests for container and platform detection."""

from __future__ import annotations

import json

import pytest

from chat2doc.core import ContainerKind, Platform, UnsupportedFormat
from chat2doc.extract.detector import (
    detect,
    detect_container,
    detect_html_platform,
    detect_platform,
    platform_from_url,
)


class TestDetectContainer:
    @pytest.mark.parametrize(
        ("filename", "expected"),
        [
            ("conversations.json", ContainerKind.JSON),
            ("CHAT.JSON", ContainerKind.JSON),
            ("notes.txt", ContainerKind.JSON),
            ("page.html", ContainerKind.HTML),
            ("page.htm", ContainerKind.HTML),
            ("export.zip", ContainerKind.ZIP),
        ],
    )
    def test_extensions(self, filename: str, expected: ContainerKind):
        assert detect_container(filename=filename) is expected

    def test_url(self):
        kind = detect_container(url="https://chatgpt.com/share/abc")
        assert kind is ContainerKind.REMOTE_LINK

    @pytest.mark.parametrize("filename", ["slides.pdf", "README", "archive.tar.gz"])
    def test_unsupported_extension(self, filename: str):
        with pytest.raises(UnsupportedFormat) as exc_info:
            detect_container(filename=filename)
        assert exc_info.value.kind == "UnsupportedFormat"

    def test_non_http_url_rejected(self):
        with pytest.raises(UnsupportedFormat):
            detect_container(url="ftp://example.com/chat")


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://chatgpt.com/share/123", Platform.CHATGPT),
        ("https://chat.openai.com/share/123", Platform.CHATGPT),
        ("https://claude.ai/share/xyz", Platform.CLAUDE),
        ("https://grok.com/share/q", Platform.GROK),
        ("https://x.com/i/grok/share/q", Platform.GROK),
        ("https://example.com/chat", Platform.UNKNOWN),
    ],
)
def test_platform_from_url(url: str, expected: Platform):
    assert platform_from_url(url) is expected


class TestDetectPlatform:
    def test_chatgpt_mapping(self, chatgpt_conversations):
        assert detect_platform(chatgpt_conversations) is Platform.CHATGPT

    def test_claude_chat_messages(self, claude_export):
        assert detect_platform(json.loads(claude_export)) is Platform.CLAUDE

    def test_flat_turns_are_claude(self):
        turns = [
            {"sender": "human", "text": "hi"},
            {"sender": "assistant", "text": "hello"},
        ]
        assert detect_platform(turns) is Platform.CLAUDE

    def test_grok_wrapper(self, grok_export):
        assert detect_platform(json.loads(grok_export)) is Platform.GROK

    def test_grok_sender_message(self):
        data = {"message": "hi", "sender": "human"}
        assert detect_platform(data) is Platform.GROK

    def test_unknown_is_not_an_error(self):
        assert detect_platform({"foo": "bar"}) is Platform.UNKNOWN
        assert detect_platform([1, 2, 3]) is Platform.UNKNOWN
        assert detect_platform("text") is Platform.UNKNOWN


class TestDetectHtmlPlatform:
    def test_chatgpt_marker(self, chatgpt_share_page):
        html = chatgpt_share_page.decode()
        assert detect_html_platform(html) is Platform.CHATGPT

    def test_claude_marker(self):
        html = '<div data-testid="user-message">hi</div>'
        assert detect_html_platform(html) is Platform.CLAUDE

    def test_grok_title(self):
        assert detect_html_platform("<title>Grok | chat</title>") is Platform.GROK

    def test_plain_page(self):
        assert detect_html_platform("<p>hello</p>") is Platform.UNKNOWN


class TestDetect:
    def test_json_upload(self, chatgpt_export):
        detection = detect(chatgpt_export, filename="conversations.json")
        assert detection.container is ContainerKind.JSON
        assert detection.platform is Platform.CHATGPT

    def test_txt_with_json_body(self, claude_export):
        detection = detect(claude_export, filename="export.txt")
        assert detection.container is ContainerKind.JSON
        assert detection.platform is Platform.CLAUDE

    def test_txt_transcript_goes_to_html(self, transcript):
        detection = detect(transcript, filename="chat.txt")
        assert detection.container is ContainerKind.HTML
        assert detection.platform is Platform.UNKNOWN

    def test_invalid_json_keeps_container(self):
        detection = detect(b"{not json", filename="broken.json")
        assert detection.container is ContainerKind.JSON
        assert detection.platform is Platform.UNKNOWN

    def test_zip_platform_deferred(self, zip_builder, chatgpt_export):
        data = zip_builder({"conversations.json": chatgpt_export})
        detection = detect(data, filename="export.zip")
        assert detection.container is ContainerKind.ZIP
        assert detection.platform is Platform.UNKNOWN

    def test_link(self):
        detection = detect(url="https://claude.ai/share/abc")
        assert detection.container is ContainerKind.REMOTE_LINK
        assert detection.platform is Platform.CLAUDE
