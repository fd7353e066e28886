from __future__ import annotations

import shutil
from pathlib import Path
from typing import BinaryIO

from chat2doc.storage.base import StorageBackend


class DiskStorage(StorageBackend):
    """Keeps blobs as files below *base_path*.

    URIs are absolute ``file://`` URLs.  Keys that would resolve outside
    the root (``../x``) are rejected with :class:`ValueError`.
    """

    def __init__(self, base_path: str) -> None:
        self._root = Path(base_path).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        path = (self._root / key).resolve()
        if not path.is_relative_to(self._root):
            raise ValueError(f"Key escapes storage root: {key!r}")
        return path

    def _key(self, path: Path) -> str:
        return path.relative_to(self._root).as_posix()

    def write(self, key: str, data: bytes) -> None:
        target = self._path(key)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)

    def read(self, key: str) -> bytes:
        return self._path(key).read_bytes()

    def open_stream(self, key: str) -> BinaryIO:
        return self._path(key).open("rb")

    def list_keys(self, prefix: str) -> list[str]:
        target = self._path(prefix)
        if target.is_file():
            return [prefix]
        if not target.is_dir():
            return []
        return sorted(self._key(p) for p in target.rglob("*") if p.is_file())

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def delete(self, key: str) -> None:
        path = self._path(key)
        if path.is_file():
            path.unlink()

    def delete_prefix(self, prefix: str) -> int:
        target = self._path(prefix)
        if target == self._root or not target.is_dir():
            return super().delete_prefix(prefix)
        removed = len(self.list_keys(prefix))
        shutil.rmtree(target)
        return removed

    def resolve_uri(self, key: str) -> str:
        return self._path(key).as_uri()
