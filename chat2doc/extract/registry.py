"""Extractor registry -- maps container kinds to extraction strategies"""

from __future__ import annotations

from chat2doc.core.types import ContainerKind
from chat2doc.extract.archive import ZipArchiveExtractor
from chat2doc.extract.base import Extractor
from chat2doc.extract.html_export import HtmlExportExtractor
from chat2doc.extract.json_export import JsonExportExtractor
from chat2doc.extract.remote import RemoteLinkExtractor

EXTRACTOR_REGISTRY: dict[ContainerKind, type[Extractor]] = {
    ContainerKind.JSON: JsonExportExtractor,
    ContainerKind.HTML: HtmlExportExtractor,
    ContainerKind.ZIP: ZipArchiveExtractor,
    ContainerKind.REMOTE_LINK: RemoteLinkExtractor,
}


def get_extractor(kind: ContainerKind) -> Extractor:
    """Instantiate the extractor for *kind*. Raises ``KeyError`` for unknown kinds."""
    return EXTRACTOR_REGISTRY[kind]()
