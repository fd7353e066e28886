"""PDF and DOCX rendering of normalized conversations."""

import logging

from chat2doc.models import NormalizedConversation
from chat2doc.render.base import RenderedDocuments, Renderer, compute_metadata
from chat2doc.render.pdf import PdfRenderer
from chat2doc.render.word import DocxRenderer

logger = logging.getLogger(__name__)


class DocumentRenderer:
    """Produces both artifacts for one conversation."""

    def __init__(
        self,
        pdf: PdfRenderer | None = None,
        docx: DocxRenderer | None = None,
    ) -> None:
        self._pdf = pdf or PdfRenderer()
        self._docx = docx or DocxRenderer()

    def render(self, conversation: NormalizedConversation) -> RenderedDocuments:
        documents = RenderedDocuments(
            pdf=self._pdf.render(conversation),
            docx=self._docx.render(conversation),
        )
        logger.debug(
            "Rendered %d messages: pdf=%d bytes docx=%d bytes",
            conversation.message_count,
            len(documents.pdf),
            len(documents.docx),
        )
        return documents


__all__ = [
    "DocumentRenderer",
    "DocxRenderer",
    "PdfRenderer",
    "RenderedDocuments",
    "Renderer",
    "compute_metadata",
]
