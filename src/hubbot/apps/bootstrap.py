# src/hubbot/apps/bootstrap.py
from __future__ import annotations
import logging
from dataclasses import dataclass
from threading import RLock
from typing import Optional

from hubbot.adapters.console import ConsoleAdapter
from hubbot.adapters.fs.path_provider import PathProvider
from hubbot.services.dispatch.dispatcher import Dispatcher
from hubbot.services.logging import setup_logging
from hubbot.services.plugin.manager import PluginManager
from hubbot.services.plugin.registry import PluginRegistry
from hubbot.services.plugin.scheduler import TaskScheduler
from hubbot.services.settings import Settings


@dataclass(slots=True)
class HostContext:
    settings: Settings
    paths: PathProvider
    logger: logging.Logger
    registry: PluginRegistry
    scheduler: TaskScheduler
    manager: PluginManager
    dispatcher: Dispatcher
    console: ConsoleAdapter


class _CtxHolder:
    _ctx: Optional[HostContext] = None
    _lock = RLock()

    @classmethod
    def get(cls) -> HostContext:
        with cls._lock:
            if cls._ctx is None:
                cls._ctx = cls._build(Settings.from_sources())
            return cls._ctx

    @classmethod
    def init(cls, settings: Optional[Settings] = None) -> HostContext:
        with cls._lock:
            if cls._ctx is not None:
                cls._ctx.manager.shutdown()
            cls._ctx = cls._build(settings or Settings.from_sources())
            return cls._ctx

    @classmethod
    def clear(cls) -> None:
        with cls._lock:
            if cls._ctx is not None:
                cls._ctx.manager.shutdown()
            cls._ctx = None

    @staticmethod
    def _build(settings: Settings) -> HostContext:
        paths = PathProvider(settings)
        paths.ensure_tree()
        logger = setup_logging(paths, settings.log_level)

        # one registry shared by the manager (writer) and the dispatcher (reader)
        registry = PluginRegistry()
        scheduler = TaskScheduler()
        manager = PluginManager(settings, paths, registry=registry, scheduler=scheduler)
        dispatcher = Dispatcher(registry, settings)

        return HostContext(
            settings=settings,
            paths=paths,
            logger=logger,
            registry=registry,
            scheduler=scheduler,
            manager=manager,
            dispatcher=dispatcher,
            console=ConsoleAdapter(),
        )


def get_ctx() -> HostContext:
    return _CtxHolder.get()


def init_ctx(settings: Optional[Settings] = None) -> HostContext:
    """Build the host context and make it the current one."""
    return _CtxHolder.init(settings)


def clear_ctx() -> None:
    _CtxHolder.clear()
