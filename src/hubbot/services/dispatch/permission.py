# src/hubbot/services/dispatch/permission.py
from __future__ import annotations
import sys
from typing import Optional, Union

from hubbot.domain.types import Permission, Role, Scene

LEVELS: dict[str, int] = {
    Permission.MASTER.value: 100,
    Permission.ADMIN.value: 80,
    Permission.GROUP_OWNER.value: 60,
    Permission.GUILD_OWNER.value: 60,
    Permission.GROUP_ADMIN.value: 40,
    Permission.GUILD_ADMIN.value: 40,
    Permission.MEMBER.value: 20,
    Permission.ALL.value: 0,
}

UNKNOWN_LEVEL = sys.maxsize


def required_level(required: Union[Permission, str]) -> int:
    """Level a permission name demands; unknown names can never be met."""
    name = required.value if isinstance(required, Permission) else str(required)
    return LEVELS.get(name, UNKNOWN_LEVEL)


def effective_level(*, is_master: bool, is_admin: bool, scene: Scene, role: Optional[Role]) -> int:
    if is_master:
        return LEVELS["master"]
    if is_admin:
        return LEVELS["admin"]
    if scene in (Scene.GROUP, Scene.GUILD):
        role = role or Role.MEMBER
        if role is Role.OWNER:
            return LEVELS["group.owner" if scene is Scene.GROUP else "guild.owner"]
        if role is Role.ADMIN:
            return LEVELS["group.admin" if scene is Scene.GROUP else "guild.admin"]
    return LEVELS["member"]


def has_permission(level: int, required: Union[Permission, str], upward: bool = True) -> bool:
    """``upward`` accepts any level at or above the requirement; otherwise it must match exactly."""
    if required == Permission.ALL or required == Permission.ALL.value:
        return True
    need = required_level(required)
    return level >= need if upward else level == need
