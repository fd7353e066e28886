from chat2doc.extract.archive import ZipArchiveExtractor
from chat2doc.extract.base import Extractor, MessageCollector, safe_timestamp
from chat2doc.extract.detector import (
    SUPPORTED_EXTENSIONS,
    detect,
    detect_container,
    detect_html_platform,
    detect_platform,
    platform_from_url,
)
from chat2doc.extract.html_export import HtmlExportExtractor
from chat2doc.extract.json_export import JsonExportExtractor
from chat2doc.extract.registry import EXTRACTOR_REGISTRY, get_extractor
from chat2doc.extract.remote import RemoteLinkExtractor

__all__ = [
    "EXTRACTOR_REGISTRY",
    "SUPPORTED_EXTENSIONS",
    "Extractor",
    "HtmlExportExtractor",
    "JsonExportExtractor",
    "MessageCollector",
    "RemoteLinkExtractor",
    "ZipArchiveExtractor",
    "detect",
    "detect_container",
    "detect_html_platform",
    "detect_platform",
    "get_extractor",
    "platform_from_url",
    "safe_timestamp",
]
