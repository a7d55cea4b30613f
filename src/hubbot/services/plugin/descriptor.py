# src/hubbot/services/plugin/descriptor.py
from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from hubbot.adapters.fs.path_provider import PathProvider
from hubbot.config import const
from hubbot.domain.manifest import EnvEntry, PluginSection
from hubbot.domain.package import PackageDescriptor
from hubbot.domain.types import PluginKind
from hubbot.services.errors import DiscoveryError, ErrorReport
from hubbot.services.plugin.env import write_env
from hubbot.services.plugin.scanner import dependency_dir, parse_identifier

log = logging.getLogger("hubbot.plugin.descriptor")


def is_app_file(path: Path) -> bool:
    return path.is_file() and path.suffix in const.APP_EXTENSIONS and not path.name.startswith(("_", "."))


def collect_app_files(directory: Path) -> List[Path]:
    """Recursive, sorted; ``__pycache__``, hidden and ``_``-prefixed entries are skipped."""
    out: List[Path] = []
    if not directory.is_dir():
        return out
    for child in sorted(directory.iterdir()):
        if child.name.startswith(("_", ".")):
            continue
        if child.is_dir():
            out.extend(collect_app_files(child))
        elif is_app_file(child):
            out.append(child.resolve())
    return out


def plugin_section(desc: PackageDescriptor) -> PluginSection:
    manifest = desc.manifest
    if manifest is None or manifest.plugin is None:
        return PluginSection()
    return manifest.plugin


def uses_source(desc: PackageDescriptor, source_mode: bool) -> bool:
    return source_mode and desc.kind in (PluginKind.CLONE, PluginKind.ROOT)


def resolve_entry(desc: PackageDescriptor, source_mode: bool) -> Optional[Path]:
    """Entry module of a manifest package; scaffolds have none."""
    if desc.kind is PluginKind.SCAFFOLD:
        return None
    section = plugin_section(desc)
    rel = section.source_entry if uses_source(desc, source_mode) and section.source_entry else section.entry
    if not rel:
        return None
    path = (desc.dir / rel).resolve()
    return path if path.is_file() else None


def static_dirs(desc: PackageDescriptor) -> List[Path]:
    declared = plugin_section(desc).static if desc.kind is not PluginKind.SCAFFOLD else []
    names = declared or list(const.DEFAULT_STATIC)
    return [(desc.dir / n).resolve() for n in names if (desc.dir / n).is_dir()]


def ensure_scaffold(desc: PackageDescriptor, paths: PathProvider) -> List[Path]:
    """Create ``<data>/<package>/<folder>`` for the package's scaffold folders."""
    if desc.kind is PluginKind.SCAFFOLD:
        names = list(const.SCAFFOLD_FILES)
    else:
        names = plugin_section(desc).files
    base = paths.plugin_data_dir(desc.name)
    created = []
    for n in names:
        target = base / n
        target.mkdir(parents=True, exist_ok=True)
        created.append(target)
    return created


class DescriptorBuilder:
    """Turns ``kind:name`` identifiers into package descriptors with resolved app files."""

    def __init__(self, paths: PathProvider, *, source_mode: bool = False, report: Optional[ErrorReport] = None) -> None:
        self.paths = paths
        self.source_mode = source_mode
        self.report = report if report is not None else ErrorReport()

    def package_dir(self, kind: PluginKind, name: str) -> Optional[Path]:
        if kind in (PluginKind.SCAFFOLD, PluginKind.CLONE):
            d = self.paths.plugins_dir() / name
        elif kind is PluginKind.ROOT:
            d = self.paths.base_dir()
        else:
            d = dependency_dir(name)
        if d is None or not d.is_dir():
            return None
        return d.resolve()

    def _build_sync(self, ident: str) -> Tuple[Optional[PackageDescriptor], List[EnvEntry]]:
        kind, name = parse_identifier(ident)
        pkg_dir = self.package_dir(kind, name)
        if pkg_dir is None:
            log.debug("plugin.dir.missing", extra={"extra": {"package": ident}})
            return None, []

        desc = PackageDescriptor(kind=kind, name=name, dir=pkg_dir)
        if kind is PluginKind.SCAFFOLD:
            desc.app_dirs = [pkg_dir]
            desc.apps = collect_app_files(pkg_dir)
            return desc, []

        try:
            manifest = desc.manifest
        except (OSError, yaml.YAMLError, ValidationError, ValueError) as exc:
            raise DiscoveryError(f"invalid manifest for {ident}: {exc}", package=name, path=desc.manifest_path) from exc
        section = plugin_section(desc)
        rels = section.source_apps if uses_source(desc, self.source_mode) and section.source_apps else section.apps

        for rel in rels:
            d = (pkg_dir / rel).resolve()
            if d.is_dir():
                desc.app_dirs.append(d)
                desc.apps.extend(collect_app_files(d))
        env = list(manifest.env) if manifest is not None else []
        return desc, env

    async def build(self, ident: str) -> Optional[PackageDescriptor]:
        desc, _ = await asyncio.to_thread(self._build_sync, ident)
        return desc

    async def build_all(
        self,
        identifiers: Iterable[str],
        *,
        collect_env: bool = False,
        report: Optional[ErrorReport] = None,
    ) -> List[PackageDescriptor]:
        report = report if report is not None else self.report
        identifiers = list(identifiers)
        results = await asyncio.gather(
            *(asyncio.to_thread(self._build_sync, i) for i in identifiers), return_exceptions=True
        )
        descriptors: List[PackageDescriptor] = []
        env: List[EnvEntry] = []
        for ident, res in zip(identifiers, results):
            if isinstance(res, BaseException):
                if isinstance(res, DiscoveryError):
                    report.record(res)
                else:
                    report.record(DiscoveryError(f"cannot describe {ident}: {res}", package=ident))
                log.warning("plugin.describe.failed", extra={"extra": {"package": ident, "error": str(res)}})
                continue
            desc, entries = res
            if desc is None:
                continue
            descriptors.append(desc)
            if collect_env:
                env.extend(entries)

        if collect_env and env:
            await asyncio.to_thread(write_env, env, self.paths.env_file())
        return descriptors
