"""Backend selection from plain config dicts."""

from __future__ import annotations

import importlib
from typing import Any, Generic, TypeVar

from chat2doc.storage.base import StorageBackend
from chat2doc.store.base import JobStore


T = TypeVar("T")


class _Registry(Generic[T]):
    """Maps provider names to backend classes.

    Built-in backends are listed as ``"module:Class"`` paths and imported
    on first use, so selecting ``memory`` never imports SQLAlchemy.
    :meth:`build` prefers ``cls.from_config(config)`` and falls back to
    ``cls(**config)``.
    """

    def __init__(self, label: str, builtins: dict[str, str]) -> None:
        self._label = label
        self._builtins = dict(builtins)
        self._classes: dict[str, type[T]] = {}

    def register(self, name: str, cls: type[T]) -> None:
        self._classes[name] = cls

    def available(self) -> list[str]:
        return sorted(self._builtins.keys() | self._classes.keys())

    def _lookup(self, provider: str) -> type[T]:
        if provider in self._classes:
            return self._classes[provider]
        path = self._builtins.get(provider)
        if path is None:
            raise ValueError(
                f"Unknown {self._label} provider '{provider}'. "
                f"Available: {self.available()}"
            )
        module_name, _, attr = path.partition(":")
        cls = getattr(importlib.import_module(module_name), attr)
        self._classes[provider] = cls
        return cls

    def build(self, provider: str, config: dict[str, Any]) -> T:
        cls = self._lookup(provider)
        from_config = getattr(cls, "from_config", None)
        if from_config is not None:
            return from_config(config)
        try:
            return cls(**config)
        except TypeError as exc:
            raise ValueError(
                f"Invalid config for {self._label} provider '{provider}': {exc}"
            ) from exc


storage_registry: _Registry[StorageBackend] = _Registry(
    "storage",
    {"disk": "chat2doc.storage.disk:DiskStorage"},
)
store_registry: _Registry[JobStore] = _Registry(
    "store",
    {
        "memory": "chat2doc.store.memory:InMemoryJobStore",
        "sqlite": "chat2doc.store.sql:SqlJobStore",
    },
)


def _section(config: dict[str, Any], name: str) -> dict[str, Any]:
    value = config.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{name}' config section must be a table")
    return value


def parse_config(config: dict[str, Any]) -> tuple[StorageBackend, JobStore]:
    """Build ``(storage, store)`` from a config dict.

    Expected shape::

        {
            "storage": {"provider": "disk", "config": {"base_path": "./data"}},
            "store": {"provider": "sqlite", "config": {"path": "./chat2doc.db"}},
            "limits": {"free": 1, "premium": 5},
        }

    ``storage`` is required; ``store`` defaults to ``memory``.  ``limits``
    is consumed by :meth:`Chat2Doc.from_config`.
    """
    storage_cfg = _section(config, "storage")
    if not storage_cfg:
        raise ValueError(
            "Missing 'storage' config section. "
            'Provide at least {"storage": {"config": {"base_path": "./data"}}}.'
        )
    store_cfg = _section(config, "store")

    storage = storage_registry.build(
        storage_cfg.get("provider", "disk"), storage_cfg.get("config") or {}
    )
    store = store_registry.build(
        store_cfg.get("provider", "memory"), store_cfg.get("config") or {}
    )
    return storage, store
