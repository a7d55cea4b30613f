"""Reply semantics of the event entity: mention, quote, retry and recall."""

from __future__ import annotations

import asyncio
from typing import List

import pytest

from hubbot.domain.message import Element, text
from hubbot.domain.types import Contact, Scene, Sender
from hubbot.ports.adapter import AdapterInfo, SendResult
from hubbot.services.dispatch.event import MessageEvent
from hubbot.services.errors import ReplySendError


class FakeBot:
    def __init__(self, *, fail_recall: bool = False) -> None:
        self.self_id = "bot"
        self.info = AdapterInfo(name="fake", protocol="test")
        self.recalled: List[str] = []
        self.fail_recall = fail_recall

    async def send(self, contact, elements):
        return SendResult(message_id="m")

    async def recall(self, contact, message_id):
        if self.fail_recall:
            raise ConnectionError("gone")
        self.recalled.append(message_id)


class Sink:
    """Send primitive that fails ``failures`` times, then answers with attempt numbers."""

    def __init__(self, failures: int = 0) -> None:
        self.failures = failures
        self.calls: List[List[Element]] = []

    async def __call__(self, elements):
        self.calls.append(list(elements))
        if len(self.calls) <= self.failures:
            raise ConnectionError(f"attempt {len(self.calls)} failed")
        return SendResult(message_id=f"sent-{len(self.calls)}")


def _event(sink, scene: Scene = Scene.GROUP, *, bot=None, message_id: str = "orig-1") -> MessageEvent:
    return MessageEvent(
        self_id="bot",
        event="message",
        sub_event=scene.value,
        event_id="e1",
        contact=Contact(scene=scene, peer="room"),
        sender=Sender(user_id="alice"),
        src_reply=sink,
        bot=bot,
        message_id=message_id,
        elements=[text(" hi there ")],
    )


def test_msg_is_plain_text():
    assert _event(Sink()).msg == "hi there"


@pytest.mark.asyncio
async def test_at_and_quote_are_prepended():
    sink = Sink()
    await _event(sink).reply("hello", at=True, quote=True)
    types = [el.type for el in sink.calls[0]]
    assert types == ["reply", "at", "text"]
    assert sink.calls[0][0].data == {"message_id": "orig-1"}
    assert sink.calls[0][1].data == {"target_id": "alice"}


@pytest.mark.asyncio
async def test_no_mention_in_private_and_no_quote_without_message_id():
    sink = Sink()
    await _event(sink, Scene.FRIEND, message_id="").reply(["a", text("b")], at=True, quote=True)
    assert [el.data["text"] for el in sink.calls[0]] == ["a", "b"]


@pytest.mark.asyncio
async def test_retry_returns_third_attempt_after_two_failures():
    sink = Sink(failures=2)
    result = await _event(sink).reply("x", retry_count=2)
    assert result.message_id == "sent-3"
    assert len(sink.calls) == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_chained_error():
    sink = Sink(failures=5)
    with pytest.raises(ReplySendError) as info:
        await _event(sink).reply("x", retry_count=1)
    assert len(sink.calls) == 2
    assert isinstance(info.value.__cause__, ConnectionError)


@pytest.mark.asyncio
async def test_bad_elements_are_not_retried():
    sink = Sink()
    with pytest.raises(TypeError):
        await _event(sink).reply([42], retry_count=3)
    assert sink.calls == []


@pytest.mark.asyncio
async def test_recall_after_delay():
    bot = FakeBot()
    result = await _event(Sink(), bot=bot).reply("temp", recall_after=0.01)
    assert bot.recalled == []
    for _ in range(50):
        await asyncio.sleep(0.01)
        if bot.recalled:
            break
    assert bot.recalled == [result.message_id]


@pytest.mark.asyncio
async def test_recall_failure_is_swallowed():
    bot = FakeBot(fail_recall=True)
    await _event(Sink(), bot=bot).reply("temp", recall_after=0.01)
    await asyncio.sleep(0.05)
    assert bot.recalled == []


def test_scene_predicates():
    e = _event(Sink(), Scene.GUILD_DIRECT)
    assert e.is_guild_direct and not e.is_private and not e.is_friend
    assert _event(Sink(), Scene.FRIEND).is_private
    assert _event(Sink(), Scene.GROUP_TEMP).is_group_temp
    assert _event(Sink(), Scene.GUILD).is_guild
