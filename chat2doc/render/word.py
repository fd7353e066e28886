from __future__ import annotations

import io
import zipfile

from docx import Document

from chat2doc.core.types import FileFormat
from chat2doc.models import NormalizedConversation
from chat2doc.render.base import (
    Renderer,
    fixed_document_time,
    message_heading,
    printable,
)

# Earliest timestamp a ZIP entry can carry.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


def _repack(data: bytes) -> bytes:
    """Rewrite the package with fixed entry timestamps.

    python-docx stamps every part with the wall clock when saving.
    """
    out = io.BytesIO()
    with (
        zipfile.ZipFile(io.BytesIO(data)) as src,
        zipfile.ZipFile(out, "w", zipfile.ZIP_DEFLATED) as dst,
    ):
        for info in src.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=_ZIP_EPOCH)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = info.external_attr
            dst.writestr(entry, src.read(info))
    return out.getvalue()


class DocxRenderer(Renderer):
    format = FileFormat.DOCX

    def _render(self, conversation: NormalizedConversation) -> bytes:
        doc = Document()
        title = printable(conversation.display_title)

        stamp = fixed_document_time(conversation)
        props = doc.core_properties
        props.title = title
        props.author = "chat2doc"
        props.last_modified_by = "chat2doc"
        props.created = stamp
        props.modified = stamp
        props.revision = 1

        doc.add_heading(title, level=0)
        for message in conversation.messages:
            doc.add_heading(message_heading(message), level=2)
            for block in printable(message.text).split("\n\n"):
                if block.strip():
                    doc.add_paragraph(block.strip())

        buffer = io.BytesIO()
        doc.save(buffer)
        return _repack(buffer.getvalue())
