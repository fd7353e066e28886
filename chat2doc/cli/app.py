from __future__ import annotations

import argparse
import asyncio
import json
import logging
import shutil
import sys
from collections.abc import Callable, Coroutine
from pathlib import Path, PurePosixPath
from typing import Any

from chat2doc.cli import output as out
from chat2doc.cli.config import (
    STORE_PROVIDERS,
    Config,
    config_exists,
    config_path_display,
    load_config,
    save_config,
)
from chat2doc.core.exceptions import Chat2DocError, QuotaExceeded, UnsupportedFormat
from chat2doc.core.types import FileFormat
from chat2doc.extract.detector import SUPPORTED_EXTENSIONS, is_url
from chat2doc.facade import Chat2Doc
from chat2doc.models import (
    ConversionJob,
    ConversionStatus,
    SubscriptionTier,
    UserPreferences,
    UserProfile,
)

DESCRIPTION = """\
chat2doc: turn chat exports into PDF and Word documents

Converts conversations exported from ChatGPT, Claude and Grok (JSON,
HTML, ZIP archives or public share links) into a PDF and a DOCX file,
and keeps a history of your conversions."""


# ── Infrastructure helpers ──────────────────────────────────────────


def _build_app(cfg: Config) -> Chat2Doc:
    cfg.ensure_dirs()
    return Chat2Doc.from_config(cfg.to_dict())


async def _ensure_user(c2d: Chat2Doc, cfg: Config, user_id: str) -> UserProfile:
    """Register *user_id* or bring its tier and preferences in line with *cfg*."""
    try:
        tier = SubscriptionTier(cfg.subscription)
    except ValueError:
        out.warn(f"Unknown subscription {cfg.subscription!r}; using free")
        tier = SubscriptionTier.FREE
    try:
        fmt = FileFormat(cfg.default_format)
    except ValueError:
        out.warn(f"Unknown format {cfg.default_format!r}; using pdf")
        fmt = FileFormat.PDF
    preferences = UserPreferences(default_format=fmt, auto_delete=cfg.auto_delete)

    profile = await c2d.get_user(user_id)
    if profile is None:
        profile = UserProfile(uid=user_id)
    elif profile.subscription is tier and profile.preferences == preferences:
        return profile
    profile.subscription = tier
    profile.preferences = preferences
    await c2d.register_user(profile)
    return profile


async def _resolve_job(c2d: Chat2Doc, user_id: str, ident: str) -> ConversionJob:
    """Find a job by full id or by a unique prefix of the user's job ids."""
    job = await c2d.get_conversion(ident)
    if job is not None:
        return job
    matches = [j for j in await c2d.list_conversions(user_id) if j.id.startswith(ident)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        out.error(f"No conversion matches {ident!r}")
    else:
        out.error(f"{ident!r} is ambiguous ({len(matches)} matches)")
    sys.exit(1)


def _export_outputs(
    c2d: Chat2Doc, job: ConversionJob, out_dir: Path, formats: set[FileFormat]
) -> list[Path]:
    """Copy a completed job's artifacts in *formats* from storage into *out_dir*."""
    out_dir.mkdir(parents=True, exist_ok=True)
    suffixes = {f".{fmt.value}" for fmt in formats}
    written: list[Path] = []
    for key in c2d.storage.list_keys(f"{job.id}/output/"):
        name = PurePosixPath(key)
        if name.suffix.lower() not in suffixes:
            continue
        dest = out_dir / name.name
        with c2d.storage.open_stream(key) as src, dest.open("wb") as dst:
            shutil.copyfileobj(src, dst)
        written.append(dest)
    return written


def _print_progress(job: ConversionJob) -> None:
    out.info(f"{out.dim(job.id[:8])} {out.status_label(job.status)}")


# ── convert ─────────────────────────────────────────────────────────


async def cmd_convert(args: argparse.Namespace) -> None:
    """Convert a local export file or a share link."""
    cfg = load_config()
    user_id = args.user or cfg.user_id
    source: str = args.source

    async with _build_app(cfg) as c2d:
        profile = await _ensure_user(c2d, cfg, user_id)
        out.header(f"Converting {source}")
        try:
            if is_url(source):
                job = await c2d.submit_url(source, user_id, on_status=_print_progress)
            else:
                path = Path(source).expanduser()
                if not path.is_file():
                    out.error(f"File not found: {path}")
                    sys.exit(1)
                job = await c2d.submit_file(
                    path.read_bytes(), path.name, user_id, on_status=_print_progress
                )
        except (UnsupportedFormat, QuotaExceeded) as exc:
            out.error(exc.message)
            sys.exit(1)

        print()
        out.job_details(job)
        if job.status is not ConversionStatus.COMPLETED:
            sys.exit(1)

        if args.format == "both":
            formats = set(FileFormat)
        elif args.format:
            formats = {FileFormat(args.format)}
        else:
            formats = {profile.preferences.default_format}

        out_dir = Path(args.out).expanduser() if args.out else cfg.output_dir
        print()
        for dest in _export_outputs(c2d, job, out_dir, formats):
            out.success(f"Saved {dest}")

        if profile.preferences.auto_delete:
            await c2d.delete_conversion(job.id)
            out.info(out.dim(f"Removed {job.id[:8]} from history (auto_delete)"))


# ── history ─────────────────────────────────────────────────────────


async def cmd_list(args: argparse.Namespace) -> None:
    cfg = load_config()
    user_id = args.user or cfg.user_id

    async with _build_app(cfg) as c2d:
        jobs = await c2d.list_conversions(user_id)

    if args.json:
        print(json.dumps([job.to_dict() for job in jobs], indent=2))
        return

    out.header(f"Conversions for {user_id} ({len(jobs)})")
    if not jobs:
        out.info("Nothing converted yet. Try: chat2doc convert <file-or-url>")
        return
    for job in jobs:
        out.info(out.job_line(job))


async def cmd_show(args: argparse.Namespace) -> None:
    cfg = load_config()
    user_id = args.user or cfg.user_id

    async with _build_app(cfg) as c2d:
        job = await _resolve_job(c2d, user_id, args.job_id)

    if args.json:
        print(json.dumps(job.to_dict(), indent=2))
        return
    out.header(job.original_filename)
    out.job_details(job)


async def cmd_delete(args: argparse.Namespace) -> None:
    cfg = load_config()
    user_id = args.user or cfg.user_id

    async with _build_app(cfg) as c2d:
        job = await _resolve_job(c2d, user_id, args.job_id)
        await c2d.delete_conversion(job.id)
    out.success(f"Deleted {job.id}")


# ── config ──────────────────────────────────────────────────────────


async def cmd_config_show(args: argparse.Namespace) -> None:
    """Display current configuration."""
    cfg = load_config()

    out.header(f"Configuration ({config_path_display()})")
    if not config_exists():
        out.info(out.dim("(no config file; showing defaults)"))
    out.kv("store", cfg.store_provider)
    if cfg.uses_sqlite:
        out.kv("database", cfg.database_path)
    out.kv("user", cfg.user_id)
    out.kv("subscription", cfg.subscription)
    out.kv("format", cfg.default_format)
    out.kv("auto delete", "yes" if cfg.auto_delete else "no")
    out.kv("limits", f"free={cfg.free_limit} premium={cfg.premium_limit}")
    out.kv("data dir", cfg.data_dir)
    out.kv("formats", ", ".join(SUPPORTED_EXTENSIONS))


async def cmd_config_set_store(args: argparse.Namespace) -> None:
    cfg = load_config()
    cfg.store_provider = args.backend
    if args.path:
        cfg.db_path = args.path
    path = save_config(cfg)
    out.success(f"Store set to {cfg.store_provider} ({path})")
    if not cfg.uses_sqlite:
        out.warn("The memory store forgets conversions when the command exits")


async def cmd_config_path(args: argparse.Namespace) -> None:
    print(config_path_display())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chat2doc",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  chat2doc convert conversations.json          "
            "Convert an export file\n"
            "  chat2doc convert https://chatgpt.com/share/… "
            "Convert a share link\n"
            "  chat2doc list                                "
            "Show your conversion history\n"
            "  chat2doc config set-store sqlite             "
            "Keep history in ./data/chat2doc.db\n"
        ),
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress logs",
    )
    sub = parser.add_subparsers(dest="command", title="commands")

    p_convert = sub.add_parser("convert", help="Convert an export file or share link")
    p_convert.add_argument("source", help="Path to a .json/.html/.zip/.txt or a URL")
    p_convert.add_argument("--user", help="User id (defaults to the configured user)")
    p_convert.add_argument(
        "--out",
        metavar="DIR",
        help="Directory for the PDF/DOCX copies (default: <data>/output)",
    )
    p_convert.add_argument(
        "--format",
        choices=("pdf", "docx", "both"),
        help="Which files to copy out (default: the configured format)",
    )

    p_list = sub.add_parser("list", help="List conversions, newest first")
    p_list.add_argument("--user", help="User id (defaults to the configured user)")
    p_list.add_argument("--json", action="store_true", help="Print JSON records")

    p_show = sub.add_parser("show", help="Show one conversion")
    p_show.add_argument("job_id", help="Conversion id or unique prefix")
    p_show.add_argument("--user", help="User id (defaults to the configured user)")
    p_show.add_argument("--json", action="store_true", help="Print the JSON record")

    p_delete = sub.add_parser("delete", help="Delete a conversion and its files")
    p_delete.add_argument("job_id", help="Conversion id or unique prefix")
    p_delete.add_argument("--user", help="User id (defaults to the configured user)")

    p_cfg = sub.add_parser("config", help="View and change settings")
    cfg_sub = p_cfg.add_subparsers(dest="config_command", title="config commands")

    cfg_sub.add_parser("show", help="Show current settings")

    p_cfg_store = cfg_sub.add_parser("set-store", help="Configure the store backend")
    p_cfg_store.add_argument(
        "backend",
        choices=STORE_PROVIDERS,
        help="Store backend to use",
    )
    p_cfg_store.add_argument("--path", help="SQLite database file")

    cfg_sub.add_parser("path", help="Print config file location")

    return parser


# ── Dispatch ────────────────────────────────────────────────────────

_CommandHandler = Callable[[argparse.Namespace], Coroutine[Any, Any, None]]

_COMMAND_MAP: dict[str, _CommandHandler] = {
    "convert": cmd_convert,
    "list": cmd_list,
    "show": cmd_show,
    "delete": cmd_delete,
}

_CONFIG_MAP: dict[str, _CommandHandler] = {
    "show": cmd_config_show,
    "set-store": cmd_config_set_store,
    "path": cmd_config_path,
}


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="  %(name)s: %(message)s",
        )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    if args.command == "config":
        if not args.config_command:
            parser.parse_args(["config", "--help"])
            return
        handler = _CONFIG_MAP.get(args.config_command)
    else:
        handler = _COMMAND_MAP.get(args.command)

    if handler is None:
        parser.print_help()
        return

    try:
        asyncio.run(handler(args))
    except KeyboardInterrupt:
        print()
    except Chat2DocError as exc:
        out.error(exc.message)
        sys.exit(1)
