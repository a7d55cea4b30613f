# src/hubbot/services/plugin/scanner.py
from __future__ import annotations
import asyncio
import importlib.util
import logging
from pathlib import Path
from typing import List, Optional

from hubbot.adapters.fs.path_provider import PathProvider
from hubbot.config import const
from hubbot.domain.types import PluginFilter, PluginKind
from hubbot.services.errors import CompatibilityMismatch, DiscoveryError, ErrorReport
from hubbot.services.plugin.cache import TTLCache
from hubbot.services.plugin.manifest import check_compatible, is_excluded, read_host_dependencies, read_manifest

log = logging.getLogger("hubbot.plugin.scanner")


def identifier(kind: PluginKind, name: str) -> str:
    return f"{kind.value}:{name}"


def parse_identifier(value: str) -> tuple[PluginKind, str]:
    kind, sep, name = value.partition(":")
    if not sep or not name:
        raise ValueError(f"invalid plugin identifier: {value!r}")
    return PluginKind(kind), name


def dependency_dir(name: str) -> Optional[Path]:
    """Directory of an installed distribution's top-level package, if importable."""
    module = name.strip().lower().replace("-", "_").replace(".", "_")
    try:
        spec = importlib.util.find_spec(module)
    except (ImportError, ValueError):
        return None
    if spec is None:
        return None
    if spec.submodule_search_locations:
        return Path(list(spec.submodule_search_locations)[0]).resolve()
    if spec.origin:
        return Path(spec.origin).resolve().parent
    return None


class SourceScanner:
    """
    Enumerates plugin candidates per provenance and caches each filter's list.
    Problems go to the ``report`` passed to :meth:`scan`, else to ``self.report``.
    """

    def __init__(self, paths: PathProvider, *, version: str, cache: Optional[TTLCache[List[str]]] = None) -> None:
        self.paths = paths
        self.version = version
        self.cache: TTLCache[List[str]] = cache if cache is not None else TTLCache()
        self.report = ErrorReport()

    async def scan(
        self,
        filter: PluginFilter | str = PluginFilter.ALL,
        *,
        force: bool = False,
        report: Optional[ErrorReport] = None,
    ) -> List[str]:
        filter = PluginFilter(filter)
        report = report if report is not None else self.report
        if force:
            self.cache.clear(filter)
        cached = self.cache.get(filter)
        if cached is not None:
            return list(cached)

        if filter is PluginFilter.SCAFFOLD:
            result = await self.scan_scaffold()
        elif filter is PluginFilter.CLONE:
            result = await self.scan_clone(report)
        elif filter is PluginFilter.DEPENDENCY:
            result = await self.scan_dependency(report)
        else:
            scaffold, clone, dependency = await asyncio.gather(
                self.scan_scaffold(), self.scan_clone(report), self.scan_dependency(report)
            )
            result = [*scaffold, *clone, *dependency]

        self.cache.set(filter, result)
        return list(result)

    def _prefixed_dirs(self) -> List[Path]:
        root = self.paths.plugins_dir()
        if not root.is_dir():
            return []
        return sorted(p for p in root.iterdir() if p.is_dir() and p.name.startswith(const.PLUGIN_PREFIX))

    async def scan_scaffold(self) -> List[str]:
        dirs = await asyncio.to_thread(self._prefixed_dirs)
        return [identifier(PluginKind.SCAFFOLD, d.name) for d in dirs if not (d / const.MANIFEST_NAME).is_file()]

    def _accept(self, manifest_path: Path, package: str, report: ErrorReport) -> bool:
        try:
            manifest = read_manifest(manifest_path, package=package)
            check_compatible(manifest, self.version, path=manifest_path)
        except CompatibilityMismatch as exc:
            report.record(exc)
            log.warning("plugin.incompatible", extra={"extra": {"package": package, "required": exc.required, "running": exc.running}})
            return False
        except DiscoveryError as exc:
            report.record(exc)
            log.warning("plugin.manifest.invalid", extra={"extra": {"package": package, "error": str(exc)}})
            return False
        return True

    def _scan_clone_sync(self, report: ErrorReport) -> List[str]:
        found: List[str] = []
        for d in self._prefixed_dirs():
            manifest_path = d / const.MANIFEST_NAME
            if manifest_path.is_file() and self._accept(manifest_path, d.name, report):
                found.append(identifier(PluginKind.CLONE, d.name))

        root_manifest = self.paths.host_plugin_manifest()
        if root_manifest.is_file():
            try:
                manifest = read_manifest(root_manifest)
            except DiscoveryError as exc:
                report.record(exc)
                log.warning("plugin.manifest.invalid", extra={"extra": {"package": "root", "error": str(exc)}})
            else:
                if manifest.name and manifest.is_plugin and self._accept(root_manifest, manifest.name, report):
                    found.append(identifier(PluginKind.ROOT, manifest.name))
        return found

    async def scan_clone(self, report: Optional[ErrorReport] = None) -> List[str]:
        return await asyncio.to_thread(self._scan_clone_sync, report if report is not None else self.report)

    def is_dependency_plugin(self, name: str, report: Optional[ErrorReport] = None) -> bool:
        """True when an installed dependency ships a ``plugin.yaml`` with the plugin marker."""
        pkg_dir = dependency_dir(name)
        if pkg_dir is None:
            return False
        manifest_path = pkg_dir / const.MANIFEST_NAME
        if not manifest_path.is_file():
            return False
        try:
            manifest = read_manifest(manifest_path, package=name)
        except DiscoveryError as exc:
            (report if report is not None else self.report).record(exc)
            log.warning("plugin.manifest.invalid", extra={"extra": {"package": name, "error": str(exc)}})
            return False
        return manifest.is_plugin

    def _scan_dependency_sync(self, report: ErrorReport) -> List[str]:
        try:
            names = read_host_dependencies(self.paths.host_manifest())
        except DiscoveryError as exc:
            report.record(exc)
            log.warning("host.manifest.invalid", extra={"extra": {"error": str(exc)}})
            return []
        found: List[str] = []
        for name in names:
            # excluded names never become plugins, marker or not
            if is_excluded(name) or not self.is_dependency_plugin(name, report):
                continue
            pkg_dir = dependency_dir(name)
            if pkg_dir is not None and self._accept(pkg_dir / const.MANIFEST_NAME, name, report):
                found.append(identifier(PluginKind.DEPENDENCY, name))
        return found

    async def scan_dependency(self, report: Optional[ErrorReport] = None) -> List[str]:
        return await asyncio.to_thread(self._scan_dependency_sync, report if report is not None else self.report)
