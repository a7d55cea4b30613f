from __future__ import annotations

import pytest

from hubbot.domain.types import Contact, Permission, Role, Scene, Sender
from hubbot.services.dispatch.event import MessageEvent
from hubbot.services.dispatch.permission import effective_level, has_permission


def _event(scene: Scene, role=None, *, master=False, admin=False) -> MessageEvent:
    e = MessageEvent(
        self_id="bot",
        event="message",
        sub_event=scene.value,
        event_id="1",
        contact=Contact(scene=scene, peer="p"),
        sender=Sender(user_id="u", role=role),
        src_reply=lambda elements: None,
    )
    e.is_master = master
    e.is_admin = admin
    return e


@pytest.mark.parametrize(
    "scene,role,master,admin,level",
    [
        (Scene.GROUP, None, True, False, 100),
        (Scene.GROUP, Role.OWNER, False, True, 80),
        (Scene.GROUP, Role.OWNER, False, False, 60),
        (Scene.GUILD, Role.OWNER, False, False, 60),
        (Scene.GROUP, Role.ADMIN, False, False, 40),
        (Scene.GUILD, Role.ADMIN, False, False, 40),
        (Scene.GROUP, None, False, False, 20),
        (Scene.FRIEND, Role.OWNER, False, False, 20),
        (Scene.GROUP_TEMP, Role.ADMIN, False, False, 20),
    ],
)
def test_effective_level(scene, role, master, admin, level):
    assert effective_level(is_master=master, is_admin=admin, scene=scene, role=role) == level
    assert _event(scene, role, master=master, admin=admin).level == level


@pytest.mark.parametrize("level", [0, 20, 40, 60, 80, 100])
def test_member_upward_and_exact(level):
    assert has_permission(level, "member", True) == (level >= 20)
    assert has_permission(level, "member", False) == (level == 20)


def test_all_always_passes_and_unknown_never_does():
    assert has_permission(0, Permission.ALL)
    assert has_permission(0, "all", upward=False)
    assert not has_permission(100, "superuser")
    assert not has_permission(100, "superuser", upward=False)


def test_event_has_permission():
    owner = _event(Scene.GROUP, Role.OWNER)
    assert owner.has_permission(Permission.GROUP_ADMIN)
    assert owner.has_permission("guild.owner", upward=False)
    assert not owner.has_permission(Permission.ADMIN)
    assert _event(Scene.FRIEND, master=True).has_permission("master", upward=False)
