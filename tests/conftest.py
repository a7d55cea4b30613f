# tests/conftest.py
from __future__ import annotations
import os
import textwrap
from pathlib import Path
from typing import Callable, Dict, Optional

import pytest
import yaml

from hubbot.adapters.fs.path_provider import PathProvider
from hubbot.apps.bootstrap import clear_ctx
from hubbot.services.settings import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in list(os.environ):
        if key.startswith("HUBBOT_") or key == "ENV_TYPE":
            monkeypatch.delenv(key, raising=False)
    yield
    clear_ctx()


@pytest.fixture
def base_dir(tmp_path) -> Path:
    base = (tmp_path / "base").resolve()
    base.mkdir()
    return base


@pytest.fixture
def settings(base_dir) -> Settings:
    return Settings(base_dir=base_dir, profile="test", version="0.3.0")


@pytest.fixture
def paths(settings) -> PathProvider:
    p = PathProvider(settings)
    p.ensure_tree()
    return p


def write_files(root: Path, files: Dict[str, str]) -> None:
    for rel, src in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(textwrap.dedent(src).lstrip(), encoding="utf-8")


@pytest.fixture
def make_plugin(paths) -> Callable[..., Path]:
    """Create ``<plugins>/<name>`` with the given files and an optional ``plugin.yaml``."""

    def _make(
        name: str,
        files: Optional[Dict[str, str]] = None,
        *,
        manifest: Optional[dict] = None,
        root: Optional[Path] = None,
    ) -> Path:
        d = (root if root is not None else paths.plugins_dir()) / name
        d.mkdir(parents=True, exist_ok=True)
        write_files(d, files or {})
        if manifest is not None:
            (d / "plugin.yaml").write_text(yaml.safe_dump(manifest, sort_keys=False), encoding="utf-8")
        return d

    return _make


def clone_manifest(name: str, **plugin) -> dict:
    section = {"apps": ["apps"]}
    section.update(plugin)
    return {"name": name, "version": "1.0.0", "hubbot": section}
