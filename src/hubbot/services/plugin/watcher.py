# src/hubbot/services/plugin/watcher.py
from __future__ import annotations
import asyncio
import logging
from pathlib import Path
from typing import Dict, List, Optional, Set

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from hubbot.config import const
from hubbot.services.errors import HubbotError
from hubbot.services.plugin.manager import PluginManager

log = logging.getLogger("hubbot.plugin.watcher")


class _Handler(FileSystemEventHandler):
    def __init__(self, watcher: "PluginWatcher") -> None:
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in ("created", "modified", "deleted", "moved"):
            return
        paths = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(dest)
        for p in paths:
            self.watcher.notify(Path(str(p)))


class PluginWatcher:
    """
    Watches the app dirs of loaded packages and hot-reloads the owning package
    once its files have been quiet for ``debounce`` seconds.
    """

    def __init__(self, manager: PluginManager, *, debounce: float = 0.5) -> None:
        self.manager = manager
        self.debounce = debounce
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._observer: Optional[Observer] = None
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._running: Set[asyncio.Task] = set()

    def watched_dirs(self) -> List[Path]:
        dirs: List[Path] = []
        for pkg in self.manager.registry.state.packages.values():
            for d in pkg.app_dirs:
                if d.is_dir() and not any(d.is_relative_to(x) for x in dirs):
                    dirs.append(d)
        return dirs

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        observer = Observer()
        handler = _Handler(self)
        for d in self.watched_dirs():
            observer.schedule(handler, str(d), recursive=True)
        observer.daemon = True
        observer.start()
        self._observer = observer
        log.info("watcher.started", extra={"extra": {"dirs": [str(d) for d in self.watched_dirs()]}})

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=2)
            self._observer = None
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def notify(self, path: Path) -> None:
        """Called from the observer thread."""
        if path.suffix not in const.APP_EXTENSIONS or self._loop is None:
            return
        self._loop.call_soon_threadsafe(self.schedule, path)

    def schedule(self, path: Path) -> Optional[str]:
        """Arm (or re-arm) the debounced reload of the package owning ``path``. Loop thread only."""
        pkg = self.manager.registry.find_package_by_file(path)
        if pkg is None:
            log.debug("watcher.unowned", extra={"extra": {"path": str(path)}})
            return None
        loop = self._loop or asyncio.get_running_loop()
        key = pkg.identifier
        old = self._timers.pop(key, None)
        if old is not None:
            old.cancel()
        self._timers[key] = loop.call_later(self.debounce, self._fire, pkg.kind, pkg.name)
        return key

    def _fire(self, kind, name: str) -> None:
        self._timers.pop(f"{kind.value}:{name}", None)
        t = asyncio.ensure_future(self._reload(kind, name))
        self._running.add(t)
        t.add_done_callback(self._running.discard)

    async def _reload(self, kind, name: str) -> None:
        try:
            report = await self.manager.reload_package(kind, name)
        except HubbotError as exc:
            log.warning("watcher.reload.failed", extra={"extra": {"package": f"{kind.value}:{name}", "error": str(exc)}})
            return
        log.info(
            "watcher.reloaded",
            extra={"extra": {"package": f"{kind.value}:{name}", "errors": len(report.errors)}},
        )
