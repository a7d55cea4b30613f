# src/hubbot/sdk/plugin.py
"""Builders plugin authors export from their app files.

Two styles are recognised by the loader:

* records built with :func:`command`, :func:`accept`, :func:`task`,
  :func:`button` and :func:`handler` (or lists of them);
* rule sets, either as a :class:`Plugin` subclass whose rules name methods,
  or as a :func:`plugin` value whose rules hold callables.
"""

from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Callable, ClassVar, Iterable, List, Optional, Sequence, Tuple, Union

from hubbot.config import const
from hubbot.domain.capability import Accept, Button, Command, Handler, Task
from hubbot.domain.types import Permission

Pattern = Union[str, "re.Pattern[str]"]


def _names(value: Union[str, Iterable[str], None]) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def command(
    pattern: Pattern,
    handler: Callable[..., Any],
    *,
    priority: int = const.DEFAULT_PRIORITY,
    permission: Union[Permission, str] = Permission.ALL,
    event: str = "message",
    adapter: Union[str, Iterable[str], None] = None,
    dsb_adapter: Union[str, Iterable[str], None] = None,
    log: bool = True,
    auth_fail_msg: Union[bool, str] = True,
    name: str = "",
) -> Command:
    return Command(
        pattern=pattern,
        handler=handler,
        priority=priority,
        permission=permission,
        event=event,
        adapter=_names(adapter),
        dsb_adapter=_names(dsb_adapter),
        log=log,
        auth_fail_msg=auth_fail_msg,
        name=name or getattr(handler, "__name__", ""),
    )


def accept(event: str, handler: Callable[..., Any], *, priority: int = const.DEFAULT_PRIORITY, name: str = "") -> Accept:
    return Accept(event=event, handler=handler, priority=priority, name=name or getattr(handler, "__name__", ""))


def task(name: str, cron: str, handler: Callable[..., Any], *, log: bool = True) -> Task:
    if not name:
        raise ValueError("task name is required")
    return Task(name=name, cron=cron, handler=handler, log=log)


def button(handler: Callable[..., Any], *, priority: int = const.DEFAULT_PRIORITY, name: str = "") -> Button:
    return Button(handler=handler, priority=priority, name=name or getattr(handler, "__name__", ""))


def handler(key: str, fn: Callable[..., Any], *, priority: int = const.DEFAULT_PRIORITY, name: str = "") -> Handler:
    return Handler(key=key, handler=fn, priority=priority, name=name or getattr(fn, "__name__", ""))


@dataclass(frozen=True, slots=True)
class Rule:
    """One command rule of a rule set. ``None`` fields inherit the plugin's value."""

    pattern: Pattern
    fnc: Union[str, Callable[..., Any]]
    priority: Optional[int] = None
    permission: Union[Permission, str] = Permission.ALL
    event: Optional[str] = None
    adapter: Tuple[str, ...] = ()
    dsb_adapter: Tuple[str, ...] = ()
    log: bool = True
    auth_fail_msg: Union[bool, str] = True


def rule(
    pattern: Pattern,
    fnc: Union[str, Callable[..., Any]],
    *,
    priority: Optional[int] = None,
    permission: Union[Permission, str] = Permission.ALL,
    event: Optional[str] = None,
    adapter: Union[str, Iterable[str], None] = None,
    dsb_adapter: Union[str, Iterable[str], None] = None,
    log: bool = True,
    auth_fail_msg: Union[bool, str] = True,
) -> Rule:
    return Rule(
        pattern=pattern,
        fnc=fnc,
        priority=priority,
        permission=permission,
        event=event,
        adapter=_names(adapter),
        dsb_adapter=_names(dsb_adapter),
        log=log,
        auth_fail_msg=auth_fail_msg,
    )


@dataclass(frozen=True, slots=True)
class PluginSpec:
    name: str
    rules: Tuple[Rule, ...]
    desc: str = ""
    priority: int = const.DEFAULT_PRIORITY
    event: str = "message"


def plugin(
    name: str,
    rules: Sequence[Rule],
    *,
    desc: str = "",
    priority: int = const.DEFAULT_PRIORITY,
    event: str = "message",
) -> PluginSpec:
    return PluginSpec(name=name, rules=tuple(rules), desc=desc, priority=priority, event=event)


class Plugin:
    """
    Class-style rule set. The loader instantiates each subclass once and
    binds rules whose ``fnc`` is a method name to that instance::

        class Echo(Plugin):
            name = "echo"
            rules = [rule(r"^#echo (.+)$", "echo")]

            async def echo(self, e):
                await e.reply(e.msg[6:])
    """

    name: ClassVar[str] = ""
    desc: ClassVar[str] = ""
    priority: ClassVar[int] = const.DEFAULT_PRIORITY
    event: ClassVar[str] = "message"
    rules: ClassVar[List[Rule]] = []



__all__ = [
    "Plugin",
    "PluginSpec",
    "Rule",
    "accept",
    "button",
    "command",
    "handler",
    "plugin",
    "rule",
    "task",
]
