# src/hubbot/services/plugin/registry.py
from __future__ import annotations
import asyncio
import itertools
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional

from hubbot.domain.capability import Accept, Button, Capability, Command, Handler, Task
from hubbot.domain.package import PackageDescriptor
from hubbot.domain.types import CapabilityKind, PluginKind

BUCKETS = ("command", "accept", "task", "button", "handler")


@dataclass(slots=True)
class RegistryState:
    """Indexed capabilities. Mutated only inside :meth:`PluginRegistry.batch`."""

    packages: Dict[int, PackageDescriptor] = field(default_factory=dict)
    command: List[Command] = field(default_factory=list)
    accept: List[Accept] = field(default_factory=list)
    task: List[Task] = field(default_factory=list)
    button: List[Button] = field(default_factory=list)
    handler: Dict[str, List[Handler]] = field(default_factory=dict)
    missing: Dict[str, str] = field(default_factory=dict)
    static: List[Path] = field(default_factory=list)

    def copy(self) -> "RegistryState":
        return RegistryState(
            packages=dict(self.packages),
            command=list(self.command),
            accept=list(self.accept),
            task=list(self.task),
            button=list(self.button),
            handler={k: list(v) for k, v in self.handler.items()},
            missing=dict(self.missing),
            static=list(self.static),
        )

    def add(self, record: Capability) -> None:
        kind = record.kind
        if kind is CapabilityKind.COMMAND:
            self.command.append(record)
        elif kind is CapabilityKind.ACCEPT:
            self.accept.append(record)
        elif kind is CapabilityKind.TASK:
            self.task.append(record)
        elif kind is CapabilityKind.BUTTON:
            self.button.append(record)
        elif kind is CapabilityKind.HANDLER:
            self.handler.setdefault(record.key, []).append(record)
        else:
            raise ValueError(f"unknown capability kind: {kind!r}")

    def records(self) -> List[Capability]:
        out: List[Capability] = [*self.command, *self.accept, *self.task, *self.button]
        for items in self.handler.values():
            out.extend(items)
        return out

    def records_of(self, kind: PluginKind, name: str) -> List[Capability]:
        return [r for r in self.records() if _owned(r, kind, name)]

    def remove_package(self, kind: PluginKind, name: str) -> List[Capability]:
        """Drop every record, index entry and static dir of one package; returns the dropped records."""
        removed = self.records_of(kind, name)
        self.command = [r for r in self.command if not _owned(r, kind, name)]
        self.accept = [r for r in self.accept if not _owned(r, kind, name)]
        self.task = [r for r in self.task if not _owned(r, kind, name)]
        self.button = [r for r in self.button if not _owned(r, kind, name)]
        handlers = {}
        for key, items in self.handler.items():
            kept = [r for r in items if not _owned(r, kind, name)]
            if kept:
                handlers[key] = kept
        self.handler = handlers

        gone = [pid for pid, p in self.packages.items() if p.kind is kind and p.name == name]
        for pid in gone:
            pkg = self.packages.pop(pid)
            self.static = [d for d in self.static if not d.is_relative_to(pkg.dir)]
        self.missing.pop(name, None)
        return removed

    def find_package(self, kind: PluginKind, name: str) -> Optional[PackageDescriptor]:
        for pkg in self.packages.values():
            if pkg.kind is kind and pkg.name == name:
                return pkg
        return None

    def find_package_by_file(self, path: Path) -> Optional[PackageDescriptor]:
        for pkg in self.packages.values():
            if pkg.owns(path):
                return pkg
        return None

    @property
    def counts(self) -> Dict[str, int]:
        return {
            "packages": len(self.packages),
            "command": len(self.command),
            "accept": len(self.accept),
            "task": len(self.task),
            "button": len(self.button),
            "handler": sum(len(v) for v in self.handler.values()),
        }


def _owned(record: Capability, kind: PluginKind, name: str) -> bool:
    return record.pkg is not None and record.pkg.kind is kind and record.pkg.name == name


def sort_buckets(state: RegistryState) -> None:
    """Stable ascending priority sort; tasks are ordered by name."""
    state.command.sort(key=lambda r: r.priority)
    state.accept.sort(key=lambda r: r.priority)
    state.button.sort(key=lambda r: r.priority)
    for items in state.handler.values():
        items.sort(key=lambda r: r.priority)
    state.task.sort(key=lambda r: r.name)


class PluginRegistry:
    """
    Owner of the current :class:`RegistryState`.
    Readers take ``registry.state``; the single writer goes through ``batch()``,
    which swaps a sorted copy in on success and leaves the old state on error.
    """

    def __init__(self) -> None:
        self._state = RegistryState()
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)

    @property
    def state(self) -> RegistryState:
        return self._state

    def next_id(self) -> int:
        return next(self._ids)

    @asynccontextmanager
    async def batch(self) -> AsyncIterator[RegistryState]:
        async with self._lock:
            draft = self._state.copy()
            yield draft
            sort_buckets(draft)
            self._state = draft

    @property
    def counts(self) -> Dict[str, int]:
        return self._state.counts

    def find_package_by_file(self, path: Path) -> Optional[PackageDescriptor]:
        return self._state.find_package_by_file(path)
