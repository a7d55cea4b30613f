# src/hubbot/services/plugin/classifier.py
"""Turns a loaded module's exports into stamped capability records."""

from __future__ import annotations
import logging
import re
import sys
from dataclasses import replace
from pathlib import Path
from types import ModuleType
from typing import Any, Iterable, List, Optional, Union

from hubbot.domain.capability import CAPABILITY_TYPES, Capability, Command, SourceFile, Task
from hubbot.domain.package import PackageDescriptor
from hubbot.domain.types import CapabilityKind
from hubbot.sdk.plugin import Plugin, PluginSpec, Rule
from hubbot.services.errors import CapabilityDefinitionError, ErrorReport
from hubbot.services.plugin.registry import RegistryState
from hubbot.services.plugin.scheduler import TaskScheduler

log = logging.getLogger("hubbot.plugin.classifier")


def exported_names(module: ModuleType) -> List[str]:
    names = getattr(module, "__all__", None)
    if names is not None:
        return [str(n) for n in names]
    return [n for n in vars(module) if not n.startswith("_")]


def compile_pattern(pattern: Union[str, "re.Pattern[str]"]) -> "re.Pattern[str]":
    if isinstance(pattern, re.Pattern):
        return pattern
    return re.compile(pattern)


class Classifier:
    """One classification pass over a module. Collects added records in ``added``."""

    def __init__(
        self,
        package: PackageDescriptor,
        path: Path,
        state: RegistryState,
        *,
        scheduler: TaskScheduler,
        report: ErrorReport,
    ) -> None:
        self.package = package
        self.path = Path(path)
        self.state = state
        self.scheduler = scheduler
        self.report = report
        self.added: List[Capability] = []

    def _invalid(self, message: str, exc: Optional[BaseException] = None) -> None:
        err = CapabilityDefinitionError(message, package=self.package.name, path=self.path)
        if exc is not None:
            err.__cause__ = exc
        self.report.record(err)
        log.warning(
            "capability.invalid",
            extra={"extra": {"package": self.package.identifier, "path": str(self.path), "error": message}},
        )

    def run(self, module: ModuleType) -> List[Capability]:
        for name in exported_names(module):
            value = getattr(module, name, None)
            if value is None or isinstance(value, ModuleType):
                continue
            self.classify_value(value, name, module)
        return self.added

    def _from_sibling(self, value: Any, module: Optional[ModuleType]) -> bool:
        """True when ``value`` was built in another app file of this package, which classifies it itself."""
        if module is None:
            return False
        if isinstance(value, PluginSpec):
            fn = next((r.fnc for r in value.rules if callable(r.fnc)), None)
        else:
            fn = getattr(value, "handler", None)
        owner = getattr(fn, "__module__", None)
        if owner is None or owner == module.__name__:
            return False
        src = getattr(sys.modules.get(owner), "__file__", None)
        if not src:
            return False
        path = Path(src).resolve()
        return path != self.path.resolve() and path in self.package.apps

    def classify_value(self, value: Any, export: str, module: Optional[ModuleType] = None) -> None:
        if isinstance(value, type):
            if issubclass(value, Plugin) and value is not Plugin:
                # classes imported from elsewhere are classified where they are defined
                if module is None or value.__module__ == module.__name__:
                    self._plugin_class(value, export)
            return
        if isinstance(value, (list, tuple)):
            for item in value:
                self.classify_value(item, export, module)
            return
        if self._from_sibling(value, module):
            return
        if isinstance(value, PluginSpec):
            self._rules(value.name, value.rules, export, owner=None, default_priority=value.priority, default_event=value.event)
        elif isinstance(value, CAPABILITY_TYPES):
            self._record(value, export)

    def _plugin_class(self, cls: type, export: str) -> None:
        if not cls.name or not cls.rules:
            self._invalid(f"plugin class {cls.__name__} must declare name and rules")
            return
        try:
            instance = cls()
        except Exception as exc:
            self._invalid(f"cannot instantiate plugin class {cls.__name__}: {exc}", exc)
            return
        self._rules(cls.name, cls.rules, export, owner=instance, default_priority=cls.priority, default_event=cls.event)

    def _rules(
        self,
        plugin_name: str,
        rules: Iterable[Rule],
        export: str,
        *,
        owner: Optional[Plugin],
        default_priority: int,
        default_event: str,
    ) -> None:
        if not plugin_name:
            self._invalid(f"rule set {export!r} has no name")
            return
        for r in rules:
            if not isinstance(r, Rule):
                self._invalid(f"{plugin_name}: rule {r!r} is not a Rule")
                continue
            fn = r.fnc
            if isinstance(fn, str):
                fn = getattr(owner, fn, None) if owner is not None else None
            if not callable(fn):
                self._invalid(f"{plugin_name}: rule handler {r.fnc!r} is not callable")
                continue
            rec = Command(
                pattern=r.pattern,
                handler=fn,
                priority=r.priority if r.priority is not None else default_priority,
                permission=r.permission,
                event=r.event or default_event,
                adapter=r.adapter,
                dsb_adapter=r.dsb_adapter,
                log=r.log,
                auth_fail_msg=r.auth_fail_msg,
                name=plugin_name,
            )
            method = r.fnc if isinstance(r.fnc, str) else getattr(r.fnc, "__name__", export)
            self._record(rec, method, display=plugin_name)

    def _record(self, record: Capability, export: str, *, display: str = "") -> None:
        source = SourceFile(
            abs_path=self.path.resolve(),
            kind=record.kind,
            method=export,
            name=display or getattr(record, "name", "") or export,
        )
        stamped = replace(record, pkg=self.package, file=source)

        if stamped.kind is CapabilityKind.COMMAND:
            stamped = self._compile(stamped)
            if stamped is None:
                return
        elif stamped.kind is CapabilityKind.TASK:
            stamped = self._schedule(stamped)
            if stamped is None:
                return

        self.state.add(stamped)
        self.added.append(stamped)

    def _compile(self, rec: Command) -> Optional[Command]:
        try:
            return replace(rec, pattern=compile_pattern(rec.pattern))
        except (re.error, TypeError) as exc:
            self._invalid(f"{rec.name or 'command'}: invalid pattern {rec.pattern!r}: {exc}", exc)
            return None

    def _schedule(self, rec: Task) -> Optional[Task]:
        if not rec.name:
            self._invalid("task without a name")
            return None
        try:
            job = self.scheduler.prepare(rec)
        except CapabilityDefinitionError as exc:
            exc.path = str(self.path)
            self.report.record(exc)
            log.warning("capability.invalid", extra={"extra": {"package": self.package.identifier, "error": str(exc)}})
            return None
        return replace(rec, job=job)


def classify(
    module: ModuleType,
    package: PackageDescriptor,
    path: Path,
    state: RegistryState,
    *,
    scheduler: TaskScheduler,
    report: ErrorReport,
) -> List[Capability]:
    """
    Classify every export of ``module`` into ``state``; returns the added records.
    Task jobs are prepared, not started: the caller starts them once ``state`` is live.
    """
    return Classifier(package, path, state, scheduler=scheduler, report=report).run(module)


__all__ = ["Classifier", "classify", "compile_pattern", "exported_names"]
