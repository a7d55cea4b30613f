# src/hubbot/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
import os
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import dotenv_values

from hubbot import __version__


def _split(value: str) -> Tuple[str, ...]:
    return tuple(v.strip() for v in value.split(",") if v.strip())


@dataclass(frozen=True, slots=True)
class Settings:
    base_dir: Path
    profile: str = "default"
    version: str = __version__
    source_mode: bool = False
    log_level: str = "INFO"
    masters: Tuple[str, ...] = ()
    admins: Tuple[str, ...] = ()
    env_file: str = ".env"

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        """Environment first, then the ``.env`` file, then defaults."""
        env_file_vars: Dict[str, Optional[str]] = {}
        if env_file and Path(env_file).exists():
            env_file_vars = dotenv_values(env_file)

        def pick_env(key: str, default: Optional[str] = None) -> str:
            return os.environ.get(key) or env_file_vars.get(key) or (default or "")

        base = Path(pick_env("HUBBOT_BASE_DIR") or os.getcwd()).expanduser().resolve()
        source_mode = pick_env("HUBBOT_SOURCE_MODE", "0") == "1" or pick_env("ENV_TYPE", "prod") == "dev"

        return Settings(
            base_dir=base,
            profile=pick_env("HUBBOT_PROFILE", "default"),
            version=pick_env("HUBBOT_VERSION", __version__),
            source_mode=source_mode,
            log_level=pick_env("HUBBOT_LOG_LEVEL", "INFO"),
            masters=_split(pick_env("HUBBOT_MASTERS")),
            admins=_split(pick_env("HUBBOT_ADMINS")),
            env_file=env_file or ".env",
        )

    def with_overrides(self, **kw) -> "Settings":
        safe = {k: v for k, v in kw.items() if v is not None}
        if "base_dir" in safe:
            safe["base_dir"] = Path(safe["base_dir"]).expanduser().resolve()
        return replace(self, **safe)
