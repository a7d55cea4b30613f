# src/hubbot/services/dispatch/dispatcher.py
from __future__ import annotations
import logging
from inspect import isawaitable
from typing import Any, Callable, Optional

from hubbot.config import const
from hubbot.domain.capability import Command
from hubbot.services.dispatch.event import Event, MessageEvent
from hubbot.services.errors import ReplySendError
from hubbot.services.plugin.registry import PluginRegistry
from hubbot.services.settings import Settings

log = logging.getLogger("hubbot.dispatch")


async def _call(fn: Callable[..., Any], *args: Any) -> Any:
    res = fn(*args)
    if isawaitable(res):
        res = await res
    return res


def _adapter_names(event: Event) -> set[str]:
    if event.bot is None:
        return set()
    info = event.bot.info
    return {n for n in (info.name, info.protocol) if n}


def _adapter_allowed(cmd: Command, names: set[str]) -> bool:
    if cmd.adapter and not names.intersection(cmd.adapter):
        return False
    if cmd.dsb_adapter and names.intersection(cmd.dsb_adapter):
        return False
    return True


def _event_matches(filter: str, event: str, sub: str) -> bool:
    return filter == event or filter == f"{event}.{sub}"


class Dispatcher:
    """Routes events to the registry's sorted buckets. Reads whatever state is current."""

    def __init__(self, registry: PluginRegistry, settings: Settings) -> None:
        self.registry = registry
        self.settings = settings

    def stamp(self, event: Event) -> None:
        """Raise the flags for configured masters and admins; flags set by the adapter are kept."""
        event.is_master = event.is_master or event.user_id in self.settings.masters
        event.is_admin = event.is_admin or event.user_id in self.settings.admins

    async def dispatch(self, event: Event) -> bool:
        """True once a handler has taken the event (or a permission denial stopped it)."""
        self.stamp(event)
        if isinstance(event, MessageEvent):
            return await self._dispatch_message(event)
        return await self._dispatch_accept(event)

    async def _deny(self, cmd: Command, event: MessageEvent) -> None:
        if cmd.auth_fail_msg is False:
            return
        text = const.AUTH_FAIL_TEXT if cmd.auth_fail_msg is True else str(cmd.auth_fail_msg)
        try:
            await event.reply(text, at=True)
        except ReplySendError as exc:
            log.warning("command.deny.reply_failed", extra={"extra": {"command": cmd.name, "error": str(exc)}})

    async def _dispatch_message(self, event: MessageEvent) -> bool:
        names = _adapter_names(event)
        for cmd in self.registry.state.command:
            if not _event_matches(cmd.event, event.event, event.contact.scene.value):
                continue
            if not _adapter_allowed(cmd, names):
                continue
            if not cmd.pattern.search(event.msg):
                continue
            if not event.has_permission(cmd.permission):
                log.info(
                    "command.denied",
                    extra={"extra": {"command": cmd.name, "user": event.user_id, "required": str(cmd.permission)}},
                )
                await self._deny(cmd, event)
                return True
            if cmd.log:
                log.info(
                    "command.hit",
                    extra={
                        "extra": {
                            "command": cmd.name,
                            "package": cmd.pkg.identifier if cmd.pkg else None,
                            "user": event.user_id,
                            "msg": event.msg,
                        }
                    },
                )
            try:
                res = await _call(cmd.handler, event)
            except Exception as exc:
                log.error("command.failed", exc_info=exc, extra={"extra": {"command": cmd.name}})
                return True
            if res is False:
                continue
            return True
        return False

    async def _dispatch_accept(self, event: Event) -> bool:
        for acc in self.registry.state.accept:
            if not _event_matches(acc.event, event.event, event.sub_event):
                continue
            try:
                res = await _call(acc.handler, event)
            except Exception as exc:
                log.error("accept.failed", exc_info=exc, extra={"extra": {"accept": acc.name, "event": event.event}})
                return True
            if res is False:
                continue
            return True
        return False

    async def call_handler(self, key: str, args: Any = None) -> Any:
        """
        Call the generic handlers registered under ``key`` in priority order.
        A handler passes to the next one by calling the ``next_`` callback it
        receives; otherwise its result is returned.
        """
        for h in list(self.registry.state.handler.get(key, [])):
            passed = False

            def next_() -> None:
                nonlocal passed
                passed = True

            try:
                res = await _call(h.handler, args, next_)
            except Exception as exc:
                log.error("handler.failed", exc_info=exc, extra={"extra": {"key": key, "handler": h.name}})
                return None
            if not passed:
                return res
        return None

    async def click_button(self, text: str, event: Optional[Event] = None) -> Any:
        """First button handler result that is not ``None``."""
        for btn in list(self.registry.state.button):
            try:
                res = await _call(btn.handler, text, event)
            except Exception as exc:
                log.error("button.failed", exc_info=exc, extra={"extra": {"button": btn.name}})
                continue
            if res is not None:
                return res
        return None
