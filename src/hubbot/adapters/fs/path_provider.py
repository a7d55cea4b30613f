# src/hubbot/adapters/fs/path_provider.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

from hubbot.config import const
from hubbot.services.settings import Settings


@dataclass(slots=True)
class PathProvider:
    """Single source of truth for host paths. Always works with pathlib.Path."""

    base: Path
    env_name: str

    def __init__(self, settings: Settings):
        object.__setattr__(self, "base", Path(settings.base_dir).expanduser().resolve())
        object.__setattr__(self, "env_name", settings.env_file)

    def base_dir(self) -> Path:
        return self.base

    def plugins_dir(self) -> Path:
        return (self.base / "plugins").resolve()

    def data_dir(self) -> Path:
        return (self.base / "data").resolve()

    def plugin_data_dir(self, name: str) -> Path:
        # scoped names (@scope/pkg) are kept as nested folders
        return (self.data_dir() / name).resolve()

    def logs_dir(self) -> Path:
        return (self.base / "logs").resolve()

    def host_manifest(self) -> Path:
        return self.base / const.HOST_MANIFEST_NAME

    def host_plugin_manifest(self) -> Path:
        return self.base / const.MANIFEST_NAME

    def env_file(self) -> Path:
        p = Path(self.env_name)
        return p if p.is_absolute() else self.base / p

    def ensure_tree(self) -> None:
        for p in (self.base_dir(), self.plugins_dir(), self.data_dir(), self.logs_dir()):
            p.mkdir(parents=True, exist_ok=True)
