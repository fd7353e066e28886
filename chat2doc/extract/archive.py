"""ZIP archive handling: find the export file inside, then delegate."""

from __future__ import annotations

import logging
import zipfile
import zlib
from io import BytesIO
from pathlib import PurePosixPath

from chat2doc.core.exceptions import ExtractionError
from chat2doc.core.types import ContainerKind, Platform
from chat2doc.extract.base import Extractor
from chat2doc.extract.detector import looks_like_json
from chat2doc.extract.html_export import HtmlExportExtractor
from chat2doc.extract.json_export import JsonExportExtractor
from chat2doc.models import NormalizedConversation

logger = logging.getLogger(__name__)

PRIMARY_EXPORT = "conversations.json"


def _is_junk(name: str) -> bool:
    path = PurePosixPath(name)
    return (
        name.endswith("/")
        or "__MACOSX" in path.parts
        or path.name.startswith("._")
        or path.name == ".DS_Store"
    )


def find_primary_file(names: list[str]) -> str | None:
    """Pick the archive member that holds the conversation.

    Preference: ``conversations.json`` (shallowest first), any other
    ``.json``, any ``.html``/``.htm``, then any ``.txt``.
    """
    candidates = sorted(
        (n for n in names if not _is_junk(n)),
        key=lambda n: (len(PurePosixPath(n).parts), n),
    )
    for name in candidates:
        if PurePosixPath(name).name.lower() == PRIMARY_EXPORT:
            return name
    for suffixes in ((".json",), (".html", ".htm"), (".txt",)):
        for name in candidates:
            if PurePosixPath(name).suffix.lower() in suffixes:
                return name
    return None


class ZipArchiveExtractor(Extractor):
    container = ContainerKind.ZIP

    def __init__(
        self,
        json_extractor: JsonExportExtractor | None = None,
        html_extractor: HtmlExportExtractor | None = None,
    ) -> None:
        self._json = json_extractor or JsonExportExtractor()
        self._html = html_extractor or HtmlExportExtractor()

    def parse(
        self, data: bytes, *, platform: Platform | None = None
    ) -> NormalizedConversation:
        try:
            with zipfile.ZipFile(BytesIO(data)) as zf:
                primary = find_primary_file(zf.namelist())
                if primary is None:
                    raise ExtractionError(
                        "archive contains no .json, .html or .txt export"
                    )
                logger.debug("Using %s from archive", primary)
                payload = zf.read(primary)
        except (zipfile.BadZipFile, zlib.error) as exc:
            raise ExtractionError(f"corrupt archive: {exc}") from exc

        suffix = PurePosixPath(primary).suffix.lower()
        if suffix == ".json" or (suffix == ".txt" and looks_like_json(payload)):
            return self._json.parse(payload, platform=platform)
        return self._html.parse(payload, platform=platform)
