# src/hubbot/domain/types.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PluginKind(str, Enum):
    """Provenance of a plugin package."""

    SCAFFOLD = "scaffold"
    CLONE = "clone"
    ROOT = "root"
    DEPENDENCY = "dependency"


class PluginFilter(str, Enum):
    SCAFFOLD = "scaffold"
    CLONE = "clone"
    DEPENDENCY = "dependency"
    ALL = "all"


class CapabilityKind(str, Enum):
    COMMAND = "command"
    ACCEPT = "accept"
    TASK = "task"
    BUTTON = "button"
    HANDLER = "handler"


class LoadState(str, Enum):
    DISCOVERED = "discovered"
    LOADED = "loaded"


class Permission(str, Enum):
    """Role names a command can require, highest first."""

    MASTER = "master"
    ADMIN = "admin"
    GROUP_OWNER = "group.owner"
    GUILD_OWNER = "guild.owner"
    GROUP_ADMIN = "group.admin"
    GUILD_ADMIN = "guild.admin"
    MEMBER = "member"
    ALL = "all"


class Scene(str, Enum):
    FRIEND = "friend"
    GROUP = "group"
    GUILD = "guild"
    GUILD_DIRECT = "direct"
    GROUP_TEMP = "group_temp"


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


@dataclass(frozen=True, slots=True)
class Contact:
    """Where an event came from and where replies go."""

    scene: Scene
    peer: str
    sub_peer: Optional[str] = None
    name: str = ""


@dataclass(frozen=True, slots=True)
class Sender:
    user_id: str
    nick: str = ""
    role: Optional[Role] = None
