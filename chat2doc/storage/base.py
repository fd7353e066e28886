from __future__ import annotations

from abc import ABC, abstractmethod
from typing import BinaryIO


class StorageBackend(ABC):
    """Blob storage for raw uploads and rendered artifacts.

    Keys are ``/``-separated relative paths such as
    ``<job_id>/output/chat.pdf``.  The pipeline writes one folder per job,
    which :meth:`delete_prefix` removes in one call.
    """

    @abstractmethod
    def write(self, key: str, data: bytes) -> None: ...

    @abstractmethod
    def read(self, key: str) -> bytes: ...

    @abstractmethod
    def open_stream(self, key: str) -> BinaryIO:
        """Binary file object for *key*; the caller closes it."""
        ...

    @abstractmethod
    def list_keys(self, prefix: str) -> list[str]:
        """Sorted keys under *prefix* (or ``[prefix]`` if it names a blob)."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error."""
        ...

    @abstractmethod
    def resolve_uri(self, key: str) -> str:
        """Location a client can download *key* from."""
        ...

    def delete_prefix(self, prefix: str) -> int:
        """Remove every blob under *prefix*, returning the count."""
        removed = 0
        for key in self.list_keys(prefix):
            self.delete(key)
            removed += 1
        return removed
