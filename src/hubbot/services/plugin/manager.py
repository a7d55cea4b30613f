# src/hubbot/services/plugin/manager.py
from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from hubbot.adapters.fs.path_provider import PathProvider
from hubbot.domain.package import PackageDescriptor
from hubbot.domain.types import LoadState, PluginFilter, PluginKind
from hubbot.services.errors import DiscoveryError, ErrorReport, HubbotError, LoadError, UnknownPackageError
from hubbot.services.plugin.cache import TTLCache
from hubbot.services.plugin.classifier import classify
from hubbot.services.plugin.descriptor import DescriptorBuilder, ensure_scaffold, resolve_entry, static_dirs
from hubbot.services.plugin.loader import ModuleLoader
from hubbot.services.plugin.registry import PluginRegistry, RegistryState
from hubbot.services.plugin.scanner import SourceScanner, identifier
from hubbot.services.plugin.scheduler import ScheduledJob, TaskScheduler
from hubbot.services.settings import Settings

log = logging.getLogger("hubbot.plugin.manager")


@dataclass(slots=True)
class LoadReport:
    packages: List[PackageDescriptor] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    missing: Dict[str, str] = field(default_factory=dict)
    errors: ErrorReport = field(default_factory=ErrorReport)
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.errors


class PluginManager:
    """
    Discovery, loading and hot reload of plugin packages into one registry.
    Every load cycle runs inside a single ``registry.batch()``.
    """

    def __init__(
        self,
        settings: Settings,
        paths: PathProvider,
        *,
        registry: Optional[PluginRegistry] = None,
        scheduler: Optional[TaskScheduler] = None,
    ) -> None:
        self.settings = settings
        self.paths = paths
        self.registry = registry or PluginRegistry()
        self.scheduler = scheduler or TaskScheduler()
        self.scanner = SourceScanner(paths, version=settings.version)
        self.builder = DescriptorBuilder(paths, source_mode=settings.source_mode)
        self.details: TTLCache[List[PackageDescriptor]] = TTLCache()
        self.last_report: Optional[LoadReport] = None

    # ---- query surface ----
    async def list_packages(self, filter: PluginFilter | str = PluginFilter.ALL, *, force: bool = False) -> List[str]:
        return await self.scanner.scan(filter, force=force)

    async def list_package_details(
        self, filter: PluginFilter | str = PluginFilter.ALL, *, force: bool = False
    ) -> List[PackageDescriptor]:
        filter = PluginFilter(filter)
        if force:
            self.details.clear(filter)
        cached = self.details.get(filter)
        if cached is not None:
            return list(cached)
        ids = await self.scanner.scan(filter, force=force)
        descs = await self.builder.build_all(ids, collect_env=filter is PluginFilter.ALL)
        self.details.set(filter, descs)
        return list(descs)

    # ---- load cycles ----
    def _drop(self, state: RegistryState, kind: PluginKind, name: str, retired: List[ScheduledJob]) -> int:
        """Remove a package from the draft; its task jobs are stopped only once the draft is live."""
        removed = state.remove_package(kind, name)
        for rec in removed:
            job = getattr(rec, "job", None)
            if job is not None:
                retired.append(job)
        return len(removed)

    def _activate(self, retired: List[ScheduledJob]) -> None:
        for job in retired:
            self.scheduler.cancel(job)
        for rec in self.registry.state.task:
            if rec.job is not None:
                self.scheduler.start(rec.job)

    async def _load_package(
        self,
        state: RegistryState,
        desc: PackageDescriptor,
        loader: ModuleLoader,
        report: ErrorReport,
        *,
        refresh: bool = False,
    ) -> None:
        desc.id = self.registry.next_id()
        await asyncio.to_thread(ensure_scaffold, desc, self.paths)

        entry = resolve_entry(desc, self.settings.source_mode)
        if entry is not None:
            module = await loader.load_file(desc, entry, refresh=refresh)
            if module is not None:
                await loader.run_init(desc, module)

        apps = [p for p in desc.apps if p != entry]
        modules = await asyncio.gather(*(loader.load_file(desc, p, refresh=refresh) for p in apps))
        added = 0
        for path, module in zip(apps, modules):
            if module is None:
                continue
            added += len(classify(module, desc, path, state, scheduler=self.scheduler, report=report))

        desc.state = LoadState.LOADED
        state.packages[desc.id] = desc
        for d in static_dirs(desc):
            if d not in state.static:
                state.static.append(d)
        log.debug("plugin.loaded", extra={"extra": {"package": desc.identifier, "id": desc.id, "records": added}})

    async def _load_many(
        self,
        state: RegistryState,
        descs: List[PackageDescriptor],
        report: ErrorReport,
        *,
        refresh: bool = False,
    ) -> None:
        loader = ModuleLoader(report=report, missing=state.missing)
        results = await asyncio.gather(
            *(self._load_package(state, d, loader, report, refresh=refresh) for d in descs), return_exceptions=True
        )
        for desc, res in zip(descs, results):
            if isinstance(res, BaseException):
                err = res if isinstance(res, HubbotError) else LoadError(f"{desc.identifier}: {res}", package=desc.name)
                if err is not res:
                    err.__cause__ = res
                report.record(err)
                log.error("plugin.load.failed", exc_info=res, extra={"extra": {"package": desc.identifier}})

    def _finish(self, started: float, descs: List[PackageDescriptor], report: ErrorReport) -> LoadReport:
        state = self.registry.state
        result = LoadReport(
            packages=descs,
            counts=state.counts,
            missing=dict(state.missing),
            errors=report,
            elapsed=round(time.perf_counter() - started, 3),
        )
        self.last_report = result
        log.info(
            "plugin.load.summary",
            extra={
                "extra": {
                    "counts": result.counts,
                    "missing": result.missing,
                    "errors": report.by_kind(),
                    "elapsed": result.elapsed,
                }
            },
        )
        return result

    async def load_all(self) -> LoadReport:
        """Discover every package and rebuild the registry from scratch."""
        started = time.perf_counter()
        report = ErrorReport()
        self.details.clear()

        ids = await self.scanner.scan(PluginFilter.ALL, force=True, report=report)
        descs = await self.builder.build_all(ids, collect_env=True, report=report)

        retired: List[ScheduledJob] = []
        async with self.registry.batch() as draft:
            for pkg in list(draft.packages.values()):
                self._drop(draft, pkg.kind, pkg.name, retired)
            draft.missing.clear()
            await self._load_many(draft, descs, report)
        self._activate(retired)
        return self._finish(started, descs, report)

    async def reload_package(self, kind: PluginKind | str, name: str) -> LoadReport:
        """Reload one package; the rest of the registry keeps its records."""
        started = time.perf_counter()
        kind = PluginKind(kind)
        report = ErrorReport()

        try:
            desc = await self.builder.build(identifier(kind, name))
        except DiscoveryError as exc:
            # the registry keeps the package's previous records
            report.record(exc)
            log.warning("plugin.reload.skipped", extra={"extra": {"package": f"{kind.value}:{name}", "error": str(exc)}})
            return self._finish(started, [], report)
        if desc is None:
            raise UnknownPackageError(kind.value, name)

        retired: List[ScheduledJob] = []
        async with self.registry.batch() as draft:
            dropped = self._drop(draft, kind, name, retired)
            await self._load_many(draft, [desc], report, refresh=True)
        self._activate(retired)
        self.details.clear()
        log.info("plugin.reloaded", extra={"extra": {"package": desc.identifier, "dropped": dropped, "id": desc.id}})
        return self._finish(started, [desc], report)

    def shutdown(self) -> None:
        self.scheduler.cancel_all()
        self.scanner.cache.clear()
        self.details.clear()
