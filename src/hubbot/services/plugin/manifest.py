# src/hubbot/services/plugin/manifest.py
"""Reading package and host manifests, plus the engine compatibility check."""

from __future__ import annotations
import logging
import tomllib
from pathlib import Path
from typing import List, Optional

import yaml
from packaging.requirements import InvalidRequirement, Requirement
from packaging.specifiers import InvalidSpecifier, SpecifierSet
from packaging.utils import canonicalize_name
from packaging.version import InvalidVersion, Version
from pydantic import ValidationError

from hubbot.config import const
from hubbot.domain.manifest import PluginManifest
from hubbot.services.errors import CompatibilityMismatch, DiscoveryError

log = logging.getLogger("hubbot.plugin.manifest")


def read_manifest(path: Path, *, package: Optional[str] = None) -> PluginManifest:
    """Read ``plugin.yaml``; any read/parse/validation problem becomes a DiscoveryError."""
    try:
        return PluginManifest.from_file(path)
    except (OSError, yaml.YAMLError, ValidationError, ValueError) as exc:
        raise DiscoveryError(f"invalid manifest {path}: {exc}", package=package, path=path) from exc


def is_compatible(manifest: PluginManifest, running: str) -> bool:
    """A missing engine range is compatible with every version."""
    required = manifest.engine_range
    if not required:
        return True
    try:
        return Version(running) in SpecifierSet(required, prereleases=True)
    except (InvalidSpecifier, InvalidVersion):
        log.warning(
            "plugin.engine.unparsable",
            extra={"extra": {"package": manifest.name, "required": required, "running": running}},
        )
        return False


def check_compatible(manifest: PluginManifest, running: str, *, path: Optional[Path] = None) -> None:
    if not is_compatible(manifest, running):
        raise CompatibilityMismatch(manifest.name, manifest.engine_range or "", running, path=path)


def is_type_only(name: str) -> bool:
    name = canonicalize_name(name)
    return name.startswith(const.TYPE_ONLY_PREFIX) or name.endswith(const.TYPE_ONLY_SUFFIX)


def is_excluded(name: str) -> bool:
    return canonicalize_name(name) in const.DEPENDENCY_EXCLUDE or is_type_only(name)


def read_host_dependencies(path: Path) -> List[str]:
    """
    Dependency names declared by the host ``pyproject.toml``
    (``[project].dependencies`` + the ``dev`` optional group), excluded and
    type-only names removed, declaration order kept, duplicates dropped.
    """
    path = Path(path)
    if not path.is_file():
        return []
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise DiscoveryError(f"invalid host manifest {path}: {exc}", path=path) from exc

    project = data.get("project") or {}
    raw: List[str] = list(project.get("dependencies") or [])
    raw += list((project.get("optional-dependencies") or {}).get("dev") or [])

    names: List[str] = []
    for item in raw:
        try:
            name = Requirement(item).name
        except InvalidRequirement:
            log.warning("host.dependency.invalid", extra={"extra": {"requirement": item}})
            continue
        if is_excluded(name) or name in names:
            continue
        names.append(name)
    return names
