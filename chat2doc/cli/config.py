"""Settings for the ``chat2doc`` command.

Stored as TOML at ``~/.config/chat2doc/config.toml`` (``CHAT2DOC_CONFIG``
points elsewhere).  ``CHAT2DOC_*`` environment variables win over the
file.  Everything the CLI writes lives under one data directory::

    data/
      chat2doc.db  <- job history (sqlite store)
      output/      <- copies of finished PDF/DOCX files
      storage/     <- per-job uploads and rendered artifacts
"""

from __future__ import annotations

import json
import os
import tomllib
from collections import defaultdict
from dataclasses import dataclass
from pathlib import Path
from typing import Any

STORE_PROVIDERS = ("sqlite", "memory")

_CONFIG_HOME = Path("~/.config/chat2doc").expanduser()

# (TOML section, TOML key, Config attribute)
_FILE_FIELDS: tuple[tuple[str, str, str], ...] = (
    ("store", "provider", "store_provider"),
    ("store", "path", "db_path"),
    ("user", "id", "user_id"),
    ("user", "subscription", "subscription"),
    ("user", "format", "default_format"),
    ("user", "auto_delete", "auto_delete"),
    ("limits", "free", "free_limit"),
    ("limits", "premium", "premium_limit"),
    ("data", "dir", "data_dir"),
)

_ENV_FIELDS: dict[str, str] = {
    "CHAT2DOC_STORE": "store_provider",
    "CHAT2DOC_DB_PATH": "db_path",
    "CHAT2DOC_USER": "user_id",
    "CHAT2DOC_FORMAT": "default_format",
    "CHAT2DOC_DATA_DIR": "data_dir",
}


def _config_path() -> Path:
    override = os.environ.get("CHAT2DOC_CONFIG")
    return Path(override).expanduser() if override else _CONFIG_HOME / "config.toml"


@dataclass
class Config:
    store_provider: str = "sqlite"
    # Empty means <data_dir>/chat2doc.db
    db_path: str = ""

    user_id: str = "local"
    subscription: str = "free"
    # Format `convert` copies out by default: pdf or docx
    default_format: str = "pdf"
    # Remove the conversion once its files are copied out
    auto_delete: bool = False

    free_limit: int = 1
    premium_limit: int = 5

    data_dir: str = "./data"

    @property
    def uses_sqlite(self) -> bool:
        return self.store_provider == "sqlite"

    @property
    def database_path(self) -> str:
        return self.db_path or str(Path(self.data_dir) / "chat2doc.db")

    @property
    def storage_path(self) -> str:
        return str(Path(self.data_dir) / "storage")

    @property
    def output_dir(self) -> Path:
        return Path(self.data_dir) / "output"

    def ensure_dirs(self) -> None:
        for directory in (Path(self.storage_path), self.output_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def to_dict(self) -> dict[str, Any]:
        """The dict :meth:`Chat2Doc.from_config` expects."""
        return {
            "storage": {"provider": "disk", "config": {"base_path": self.storage_path}},
            "store": {
                "provider": self.store_provider,
                "config": {"path": self.database_path} if self.uses_sqlite else {},
            },
            "limits": {"free": self.free_limit, "premium": self.premium_limit},
        }

    def _set(self, attr: str, value: Any) -> None:
        current = getattr(self, attr)
        if isinstance(current, bool):
            if not isinstance(value, bool):
                value = str(value).strip().lower() in ("1", "true", "yes", "on")
            setattr(self, attr, value)
            return
        setattr(self, attr, int(value) if isinstance(current, int) else str(value))


def load_config() -> Config:
    """Defaults, then the TOML file if present, then the environment."""
    cfg = Config()

    path = _config_path()
    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)
        for section, key, attr in _FILE_FIELDS:
            value = data.get(section, {}).get(key)
            if value is not None:
                cfg._set(attr, value)

    for var, attr in _ENV_FIELDS.items():
        value = os.environ.get(var)
        if value is not None:
            cfg._set(attr, value)

    return cfg


def _toml_value(value: Any) -> str:
    # JSON string escapes and booleans are valid TOML.
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return json.dumps(value)


def save_config(cfg: Config) -> Path:
    """Write *cfg* as TOML and return the file path."""
    sections: dict[str, list[str]] = defaultdict(list)
    for section, key, attr in _FILE_FIELDS:
        value = getattr(cfg, attr)
        if value == "":
            continue
        sections[section].append(f"{key} = {_toml_value(value)}")

    body = "\n\n".join(
        "\n".join([f"[{name}]", *entries]) for name, entries in sections.items()
    )
    path = _config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body + "\n", encoding="utf-8")
    return path


def config_exists() -> bool:
    return _config_path().exists()


def config_path_display() -> str:
    return str(_config_path())
