# src/hubbot/domain/package.py
from __future__ import annotations
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path
from typing import List, Optional

from hubbot.config import const
from hubbot.domain.manifest import PluginManifest
from hubbot.domain.types import LoadState, PluginKind


@dataclass(eq=False)
class PackageDescriptor:
    """A discovered plugin package: where it lives and which app files it declares.

    ``id`` stays -1 until the package is loaded into a registry; a hot reload
    builds a new descriptor and therefore a new id.
    """

    kind: PluginKind
    name: str
    dir: Path
    apps: List[Path] = field(default_factory=list)
    app_dirs: List[Path] = field(default_factory=list)
    id: int = -1
    state: LoadState = LoadState.DISCOVERED

    @property
    def identifier(self) -> str:
        return f"{self.kind.value}:{self.name}"

    @property
    def manifest_path(self) -> Optional[Path]:
        p = self.dir / const.MANIFEST_NAME
        return p if p.is_file() else None

    @cached_property
    def manifest(self) -> Optional[PluginManifest]:
        """Manifest read on first access; ``None`` for scaffold packages."""
        path = self.manifest_path
        if path is None:
            return None
        return PluginManifest.from_file(path)

    def owns(self, file: Path) -> bool:
        """True if ``file`` is one of the package's apps or lies inside its app dirs."""
        file = Path(file).resolve()
        if file in self.apps:
            return True
        if any(file.is_relative_to(d) for d in self.app_dirs):
            return True
        # an empty scaffold folder still owns whatever appears in it
        return self.kind is PluginKind.SCAFFOLD and file.is_relative_to(self.dir)

    def __repr__(self) -> str:
        return f"PackageDescriptor(id={self.id}, {self.identifier}, apps={len(self.apps)})"
