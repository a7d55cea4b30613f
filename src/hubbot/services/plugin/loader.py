# src/hubbot/services/plugin/loader.py
from __future__ import annotations
import asyncio
import importlib.util
import logging
import re
import sys
from inspect import isawaitable
from pathlib import Path
from types import ModuleType
from typing import Dict, Optional

from hubbot.config import const
from hubbot.domain.package import PackageDescriptor
from hubbot.services.errors import ErrorReport, LoadError

log = logging.getLogger("hubbot.plugin.loader")

_unsafe = re.compile(r"\W")


def module_name_for(path: Path) -> str:
    """Unique module name per file so two plugins' ``main.py`` never collide."""
    return "hubbot_plugin_" + _unsafe.sub("_", Path(path).resolve().as_posix().strip("/"))


def _import_file(name: str, path: Path) -> ModuleType:
    spec = importlib.util.spec_from_file_location(name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot build import spec for {path}")
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    try:
        spec.loader.exec_module(module)  # type: ignore[attr-defined]
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


class ModuleLoader:
    """
    Imports plugin files in worker threads. Failures never propagate: they are
    recorded into ``report`` and ``missing`` and the caller gets ``None``.
    """

    def __init__(self, *, report: Optional[ErrorReport] = None, missing: Optional[Dict[str, str]] = None) -> None:
        self.report = report if report is not None else ErrorReport()
        self.missing: Dict[str, str] = missing if missing is not None else {}

    def _ensure_sys_path(self, package: PackageDescriptor) -> None:
        d = str(package.dir)
        if d not in sys.path:
            sys.path.insert(0, d)

    def _fail(self, package: PackageDescriptor, path: Path, exc: BaseException) -> None:
        if isinstance(exc, ModuleNotFoundError) and exc.name:
            reason = f"missing module {exc.name}"
        else:
            reason = f"{type(exc).__name__}: {exc}"
        self.missing[package.name] = reason
        err = LoadError(f"failed to load {path}: {reason}", package=package.name, path=path)
        err.__cause__ = exc
        self.report.record(err)
        log.error(
            "plugin.load.failed",
            exc_info=exc,
            extra={"extra": {"package": package.identifier, "path": str(path), "reason": reason}},
        )

    async def load_file(self, package: PackageDescriptor, path: Path, *, refresh: bool = False) -> Optional[ModuleType]:
        path = Path(path).resolve()
        name = module_name_for(path)
        if not refresh and name in sys.modules:
            return sys.modules[name]
        sys.modules.pop(name, None)
        self._ensure_sys_path(package)
        try:
            return await asyncio.to_thread(_import_file, name, path)
        except Exception as exc:
            self._fail(package, path, exc)
            return None

    async def run_init(self, package: PackageDescriptor, module: ModuleType) -> bool:
        """Run the entry module's init hook once; a failure is recorded, never raised."""
        hook = getattr(module, const.INIT_HOOK, None)
        if not callable(hook):
            return False
        try:
            res = hook()
            if isawaitable(res):
                await res
        except Exception as exc:
            path = getattr(module, "__file__", None) or package.dir
            err = LoadError(f"{const.INIT_HOOK} of {package.identifier} failed: {exc}", package=package.name, path=path)
            err.__cause__ = exc
            self.report.record(err)
            log.error("plugin.init.failed", exc_info=exc, extra={"extra": {"package": package.identifier}})
            return False
        log.debug("plugin.init.done", extra={"extra": {"package": package.identifier}})
        return True
