from __future__ import annotations

import io
from xml.sax.saxutils import escape

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.pdfgen.canvas import Canvas
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer

from chat2doc.core.types import FileFormat
from chat2doc.models import NormalizedConversation, Role
from chat2doc.render.base import Renderer, message_heading, printable

_ROLE_COLOURS = {
    Role.USER: HexColor("#1565c0"),
    Role.ASSISTANT: HexColor("#2e7d32"),
    Role.SYSTEM: HexColor("#6d4c41"),
}


def _markup(text: str) -> str:
    return escape(printable(text)).replace("\n", "<br/>")


def _draw_page_number(canvas: Canvas, doc: SimpleDocTemplate) -> None:
    canvas.saveState()
    canvas.setFont("Helvetica", 8)
    canvas.drawRightString(
        doc.pagesize[0] - doc.rightMargin,
        0.5 * inch,
        f"Page {canvas.getPageNumber()}",
    )
    canvas.restoreState()


class PdfRenderer(Renderer):
    """Lays a conversation out with ReportLab platypus."""

    format = FileFormat.PDF

    def __init__(self) -> None:
        styles = getSampleStyleSheet()
        self._title = styles["Title"]
        self._body = ParagraphStyle(
            "MessageBody", parent=styles["BodyText"], spaceAfter=6, leading=14
        )
        self._headings = {
            role: ParagraphStyle(
                f"{role.label}Heading",
                parent=styles["Heading3"],
                textColor=colour,
                spaceBefore=10,
                spaceAfter=4,
            )
            for role, colour in _ROLE_COLOURS.items()
        }

    def _render(self, conversation: NormalizedConversation) -> bytes:
        buffer = io.BytesIO()
        title = printable(conversation.display_title)
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=title,
            author="chat2doc",
            invariant=1,
        )

        story = [Paragraph(_markup(title), self._title), Spacer(1, 12)]
        for message in conversation.messages:
            heading = _markup(message_heading(message))
            story.append(Paragraph(heading, self._headings[message.role]))
            for block in message.text.split("\n\n"):
                if block.strip():
                    story.append(Paragraph(_markup(block.strip()), self._body))

        doc.build(story, onFirstPage=_draw_page_number, onLaterPages=_draw_page_number)
        return buffer.getvalue()
