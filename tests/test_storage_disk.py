"""Unit tests for DiskStorage."""

from pathlib import Path

import pytest

from chat2doc.storage.disk import DiskStorage


@pytest.fixture()
def disk(tmp_path: Path) -> DiskStorage:
    return DiskStorage(str(tmp_path / "blobs"))


class TestDiskStorage:
    def test_write_creates_parents(self, disk: DiskStorage):
        disk.write("job-1/input/chat.json", b"{}")
        assert disk.read("job-1/input/chat.json") == b"{}"

    def test_list_keys_under_job(self, disk: DiskStorage):
        disk.write("job-1/input/chat.json", b"1")
        disk.write("job-1/output/chat.pdf", b"2")
        disk.write("job-10/input/other.json", b"3")
        assert disk.list_keys("job-1/") == [
            "job-1/input/chat.json",
            "job-1/output/chat.pdf",
        ]

    def test_list_single_file(self, disk: DiskStorage):
        disk.write("one.bin", b"x")
        assert disk.list_keys("one.bin") == ["one.bin"]

    def test_delete_missing_is_ignored(self, disk: DiskStorage):
        disk.delete("never/written.txt")
        assert not disk.exists("never/written.txt")

    def test_delete_prefix(self, disk: DiskStorage):
        disk.write("job-1/input/a", b"a")
        disk.write("job-1/output/b", b"b")
        disk.write("job-2/input/c", b"c")
        assert disk.delete_prefix("job-1/") == 2
        assert disk.list_keys("job-1/") == []
        assert not disk.exists("job-1")
        assert disk.exists("job-2/input/c")
        assert disk.delete_prefix("job-1/") == 0

    def test_open_stream(self, disk: DiskStorage):
        disk.write("stream.txt", b"streaming content")
        with disk.open_stream("stream.txt") as f:
            assert f.read() == b"streaming content"

    def test_resolve_uri_is_file_url(self, disk: DiskStorage, tmp_path: Path):
        disk.write("job-1/output/my chat.pdf", b"%PDF")
        uri = disk.resolve_uri("job-1/output/my chat.pdf")
        assert uri.startswith("file://")
        assert uri.endswith("/job-1/output/my%20chat.pdf")

    def test_rejects_keys_outside_root(self, disk: DiskStorage):
        with pytest.raises(ValueError):
            disk.write("../escape.txt", b"nope")
