"""Blob storage for uploads and generated documents."""

from chat2doc.storage.base import StorageBackend
from chat2doc.storage.disk import DiskStorage

__all__ = ["DiskStorage", "StorageBackend"]
