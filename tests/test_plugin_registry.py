from __future__ import annotations

import re
from dataclasses import replace
from pathlib import Path

import pytest

from hubbot.domain.package import PackageDescriptor
from hubbot.domain.types import PluginKind
from hubbot.sdk import accept, command, handler, task
from hubbot.services.plugin.registry import PluginRegistry, RegistryState, sort_buckets


def _pkg(name: str, kind: PluginKind = PluginKind.CLONE) -> PackageDescriptor:
    return PackageDescriptor(kind=kind, name=name, dir=Path("/plugins") / name, id=1)


def _cmd(pattern: str, priority: int, pkg: PackageDescriptor):
    return replace(command(re.compile(pattern), lambda e: None, priority=priority), pkg=pkg)


def test_sort_is_stable_by_priority_and_tasks_by_name():
    a, b = _pkg("a"), _pkg("b")
    state = RegistryState()
    for rec in (
        _cmd("late", 300, a),
        _cmd("first-of-100", 100, a),
        _cmd("second-of-100", 100, b),
        _cmd("early", 1, b),
    ):
        state.add(rec)
    state.add(replace(accept("notice", lambda e: None, priority=9), pkg=a))
    state.add(replace(accept("request", lambda e: None, priority=2), pkg=a))
    for key, prio in (("k", 30), ("k", 10), ("k", 20)):
        state.add(replace(handler(key, lambda a, n: None, priority=prio), pkg=a))
    for name in ("zeta", "alpha", "mid"):
        state.add(replace(task(name, "* * * * *", lambda: None), pkg=a))

    sort_buckets(state)
    assert [c.pattern.pattern for c in state.command] == ["early", "first-of-100", "second-of-100", "late"]
    assert [x.event for x in state.accept] == ["request", "notice"]
    assert [h.priority for h in state.handler["k"]] == [10, 20, 30]
    assert [t.name for t in state.task] == ["alpha", "mid", "zeta"]


def test_remove_package_is_scoped_to_kind_and_name():
    a_clone = _pkg("a")
    a_dep = _pkg("a", PluginKind.DEPENDENCY)
    state = RegistryState(packages={1: a_clone, 2: a_dep}, missing={"a": "missing module x"})
    state.add(_cmd("clone", 1, a_clone))
    state.add(_cmd("dep", 1, a_dep))
    state.add(replace(handler("k", lambda a, n: None), pkg=a_clone))

    removed = state.remove_package(PluginKind.CLONE, "a")
    assert len(removed) == 2
    assert [c.pattern.pattern for c in state.command] == ["dep"]
    assert state.handler == {}
    assert list(state.packages.values()) == [a_dep]
    assert state.missing == {}


def test_counts_follow_buckets():
    a = _pkg("a")
    state = RegistryState(packages={1: a})
    state.add(_cmd("x", 1, a))
    state.add(replace(handler("k1", lambda a, n: None), pkg=a))
    state.add(replace(handler("k2", lambda a, n: None), pkg=a))
    assert state.counts == {"packages": 1, "command": 1, "accept": 0, "task": 0, "button": 0, "handler": 2}


@pytest.mark.asyncio
async def test_batch_swaps_on_exit_only():
    registry = PluginRegistry()
    before = registry.state
    a = _pkg("a")
    async with registry.batch() as draft:
        draft.add(_cmd("b", 20, a))
        draft.add(_cmd("a", 10, a))
        assert registry.state is before
        assert registry.state.command == []
    assert registry.state is draft
    assert [c.pattern.pattern for c in registry.state.command] == ["a", "b"]


@pytest.mark.asyncio
async def test_failed_batch_keeps_previous_state():
    registry = PluginRegistry()
    a = _pkg("a")
    async with registry.batch() as draft:
        draft.add(_cmd("kept", 1, a))
    kept = registry.state

    with pytest.raises(RuntimeError):
        async with registry.batch() as draft:
            draft.command.clear()
            raise RuntimeError("abort")
    assert registry.state is kept
    assert len(registry.state.command) == 1


def test_ids_are_monotonic():
    registry = PluginRegistry()
    ids = [registry.next_id() for _ in range(3)]
    assert ids == sorted(set(ids))
