# src/hubbot/domain/manifest.py
from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from hubbot.config import const


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


class EnvEntry(BaseModel):
    key: str
    value: str = ""
    comment: str = ""

    @field_validator("value", mode="before")
    @classmethod
    def _stringify(cls, v: Any) -> str:
        return "" if v is None else str(v)


class PluginSection(BaseModel):
    """The plugin marker block of ``plugin.yaml``."""

    model_config = ConfigDict(extra="allow")

    entry: Optional[str] = None
    source_entry: Optional[str] = None
    apps: List[str] = Field(default_factory=list)
    source_apps: List[str] = Field(default_factory=list)
    static: List[str] = Field(default_factory=list)
    files: List[str] = Field(default_factory=list)

    @field_validator("apps", "source_apps", "static", "files", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any) -> List[str]:
        return _as_list(v)


class PluginManifest(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = ""
    version: str = "0.0.0"
    engines: Dict[str, str] = Field(default_factory=dict)
    env: List[EnvEntry] = Field(default_factory=list)
    plugin: Optional[PluginSection] = Field(default=None, alias=const.MARKER_KEY)

    @field_validator("plugin", mode="before")
    @classmethod
    def _marker_flag(cls, v: Any) -> Any:
        # `hubbot: true` marks a plugin without declared paths
        if v is True:
            return {}
        if v is False:
            return None
        return v

    @property
    def is_plugin(self) -> bool:
        return self.plugin is not None

    @property
    def engine_range(self) -> Optional[str]:
        return self.engines.get(const.ENGINE_KEY) or None

    @classmethod
    def from_file(cls, path: Path) -> "PluginManifest":
        """Read and validate a manifest. yaml / validation / OS errors propagate."""
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: manifest must be a mapping")
        return cls.model_validate(data)
