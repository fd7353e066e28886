"""Console formatting for the chat2doc CLI.

Colour is emitted only when stdout is a terminal and ``NO_COLOR`` is unset.
"""

from __future__ import annotations

import os
import sys
from typing import TextIO

from chat2doc.models import ConversionJob, ConversionStatus

_CODES = {"bold": "1", "dim": "2", "red": "31", "green": "32", "yellow": "33"}

_STATUS_COLOURS = {
    ConversionStatus.UPLOADING: "dim",
    ConversionStatus.PROCESSING: "yellow",
    ConversionStatus.COMPLETED: "green",
    ConversionStatus.FAILED: "red",
}

_NAME_WIDTH = 40


def _colour_enabled() -> bool:
    if "NO_COLOR" in os.environ:
        return False
    return sys.stdout.isatty()


def paint(text: str, colour: str) -> str:
    if not _colour_enabled():
        return text
    return f"\033[{_CODES[colour]}m{text}\033[0m"


def dim(text: str) -> str:
    return paint(text, "dim")


def status_label(status: ConversionStatus, width: int = 0) -> str:
    return paint(status.value.ljust(width), _STATUS_COLOURS[status])


def _emit(marker: str, msg: str, stream: TextIO | None = None) -> None:
    prefix = f"{marker} " if marker else ""
    print(f"  {prefix}{msg}", file=stream or sys.stdout)


def header(title: str) -> None:
    print(f"\n{paint(title, 'bold')}")


def success(msg: str) -> None:
    _emit(paint("✓", "green"), msg)


def warn(msg: str) -> None:
    _emit(paint("!", "yellow"), msg)


def error(msg: str) -> None:
    _emit(paint("✗", "red"), msg, sys.stderr)


def info(msg: str) -> None:
    _emit("", msg)


def kv(key: str, value: object) -> None:
    _emit("", f"{dim(key + ':')}  {value}")


def _shorten(name: str, width: int = _NAME_WIDTH) -> str:
    return name if len(name) <= width else name[: width - 3] + "..."


def job_line(job: ConversionJob) -> str:
    """``id  status  platform  filename  created`` on one line."""
    return "  ".join(
        [
            job.id[:8],
            status_label(job.status, 10),
            f"{job.platform.value:<7}",
            f"{_shorten(job.original_filename):<{_NAME_WIDTH}}",
            dim(job.created_at.strftime("%Y-%m-%d %H:%M")),
        ]
    )


def job_details(job: ConversionJob) -> None:
    rows: list[tuple[str, object]] = [
        ("id", job.id),
        ("status", status_label(job.status)),
        ("platform", job.platform.value),
        ("source", job.input_location or job.original_filename),
    ]
    if job.metadata is not None:
        meta = job.metadata
        rows += [
            ("title", meta.title or ""),
            ("messages", meta.message_count),
            ("words", meta.word_count),
            ("time", f"{meta.processing_time_ms} ms"),
        ]
        if meta.skipped_count:
            rows.append(("skipped", meta.skipped_count))
    if job.output_files is not None:
        rows += [("pdf", job.output_files.pdf), ("docx", job.output_files.docx)]
    if job.error:
        rows.append(("error", f"{job.error_kind}: {job.error}"))
    for key, value in rows:
        kv(key, value)
