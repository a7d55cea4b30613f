"""Hot reload of a single package and the file watcher in front of it."""

from __future__ import annotations

import asyncio
import textwrap

import pytest

from conftest import clone_manifest
from hubbot.domain.types import PluginKind
from hubbot.services.errors import UnknownPackageError
from hubbot.services.plugin import registry as registry_module
from hubbot.services.plugin.manager import PluginManager
from hubbot.services.plugin.watcher import PluginWatcher


def _app(reply: str, priority: int) -> str:
    return textwrap.dedent(
        f"""
        from hubbot.sdk import command, task

        c = command(r"^#{reply}", lambda e: "{reply}", priority={priority})
        t = task("tick-{reply}", "* * * * *", lambda: None)
        """
    )


@pytest.mark.asyncio
async def test_reload_replaces_only_that_package(settings, paths, make_plugin):
    a = make_plugin("hubbot-plugin-a", {"apps/x.py": _app("a1", 10)}, manifest=clone_manifest("hubbot-plugin-a"))
    make_plugin("hubbot-plugin-b", {"x.py": _app("b", 20)})

    manager = PluginManager(settings, paths)
    try:
        await manager.load_all()
        before = manager.registry.state
        b_records = [c for c in before.command if c.pkg.name == "hubbot-plugin-b"]
        old_a = before.find_package(PluginKind.CLONE, "hubbot-plugin-a")
        old_task = next(t for t in before.task if t.name == "tick-a1")

        (a / "apps" / "x.py").write_text(_app("a2", 300), encoding="utf-8")
        report = await manager.reload_package("clone", "hubbot-plugin-a")
        after = manager.registry.state

        assert report.ok
        assert [c.handler(None) for c in after.command] == ["b", "a2"]
        # untouched package keeps the very same records
        assert [c for c in after.command if c.pkg.name == "hubbot-plugin-b"] == b_records
        assert all(x is y for x, y in zip(b_records, [c for c in after.command if c.pkg.name == "hubbot-plugin-b"]))

        new_a = after.find_package(PluginKind.CLONE, "hubbot-plugin-a")
        assert new_a is not old_a and new_a.id > old_a.id
        assert [t.name for t in after.task] == ["tick-a2", "tick-b"]

        await asyncio.sleep(0)
        assert not old_task.job.active
        assert len(manager.scheduler.jobs) == 2
    finally:
        manager.shutdown()


@pytest.mark.asyncio
async def test_reload_of_absent_package_raises(settings, paths):
    manager = PluginManager(settings, paths)
    with pytest.raises(UnknownPackageError):
        await manager.reload_package(PluginKind.CLONE, "hubbot-plugin-nope")


@pytest.mark.asyncio
async def test_watcher_maps_files_to_packages_and_reloads(settings, paths, make_plugin):
    d = make_plugin("hubbot-plugin-w", {"w.py": _app("w1", 1)})
    manager = PluginManager(settings, paths)
    try:
        await manager.load_all()
        watcher = PluginWatcher(manager, debounce=0.01)
        watcher._loop = asyncio.get_running_loop()

        assert watcher.schedule(paths.base_dir() / "elsewhere.py") is None
        (d / "w.py").write_text(_app("w2", 100), encoding="utf-8")
        assert watcher.schedule(d / "w.py") == "scaffold:hubbot-plugin-w"
        # a second event inside the debounce window re-arms the same reload
        assert watcher.schedule(d / "w.py") == "scaffold:hubbot-plugin-w"

        for _ in range(100):
            await asyncio.sleep(0.02)
            if [c.handler(None) for c in manager.registry.state.command] == ["w2"]:
                break
        assert [c.handler(None) for c in manager.registry.state.command] == ["w2"]
        assert manager.last_report.packages[0].identifier == "scaffold:hubbot-plugin-w"
        assert watcher.watched_dirs() == [d.resolve()]
        watcher.stop()
    finally:
        manager.shutdown()


@pytest.mark.asyncio
async def test_failed_batch_keeps_old_jobs_running(settings, paths, make_plugin, monkeypatch):
    a = make_plugin("hubbot-plugin-a", {"apps/x.py": _app("a1", 10)}, manifest=clone_manifest("hubbot-plugin-a"))
    manager = PluginManager(settings, paths)
    try:
        await manager.load_all()
        before = manager.registry.state
        old_job = before.task[0].job
        assert old_job.active

        def broken_sort(state):
            raise RuntimeError("sort failed")

        (a / "apps" / "x.py").write_text(_app("a2", 300), encoding="utf-8")
        monkeypatch.setattr(registry_module, "sort_buckets", broken_sort)
        with pytest.raises(RuntimeError):
            await manager.reload_package(PluginKind.CLONE, "hubbot-plugin-a")

        assert manager.registry.state is before
        await asyncio.sleep(0)
        assert old_job.active
        # the replacement task was classified but never started
        assert manager.scheduler.jobs == [old_job]
    finally:
        manager.shutdown()


@pytest.mark.asyncio
async def test_last_report_is_closed_after_the_cycle(settings, paths, make_plugin):
    make_plugin("hubbot-plugin-ok", {"apps/x.py": _app("ok", 1)}, manifest=clone_manifest("hubbot-plugin-ok"))
    manager = PluginManager(settings, paths)
    try:
        report = await manager.load_all()
        assert report.ok and manager.last_report is report

        bad = paths.plugins_dir() / "hubbot-plugin-bad"
        bad.mkdir()
        (bad / "plugin.yaml").write_text("name: [unclosed\n", encoding="utf-8")
        assert await manager.list_packages("clone", force=True) == ["clone:hubbot-plugin-ok"]
        await manager.list_package_details(force=True)

        assert report.ok and len(report.errors) == 0
        # both scans logged the broken manifest on the scanner, not on the finished cycle
        assert manager.scanner.report.by_kind() == {"DiscoveryError": 2}
    finally:
        manager.shutdown()
