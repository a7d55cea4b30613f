"""Public authoring API for hubbot plugins."""

from hubbot.domain.message import Element, at, quote, text
from hubbot.domain.types import Permission
from .plugin import Plugin, PluginSpec, Rule, accept, button, command, handler, plugin, rule, task

__all__ = [
    "Element",
    "Permission",
    "Plugin",
    "PluginSpec",
    "Rule",
    "accept",
    "at",
    "button",
    "command",
    "handler",
    "plugin",
    "quote",
    "rule",
    "task",
    "text",
]
