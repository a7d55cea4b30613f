# src/hubbot/services/dispatch/event.py
"""Normalized runtime events and the reply primitive handlers use."""

from __future__ import annotations
import asyncio
import logging
import time
from dataclasses import dataclass, field
from inspect import isawaitable
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Union

from hubbot.domain.message import Element, Elements, at as at_element, make_message, quote as quote_element, raw_text
from hubbot.domain.types import Contact, Permission, Scene, Sender
from hubbot.ports.adapter import BotAdapter, SendResult
from hubbot.services.dispatch.permission import effective_level, has_permission
from hubbot.services.errors import ReplySendError

log = logging.getLogger("hubbot.dispatch.event")

SendPrimitive = Callable[[List[Element]], Union[SendResult, Awaitable[SendResult]]]

# fire-and-forget recalls are kept here until they finish
_pending: Set[asyncio.Task] = set()


@dataclass(eq=False)
class Event:
    self_id: str
    event: str
    sub_event: str
    event_id: str
    contact: Contact
    sender: Sender
    src_reply: SendPrimitive
    bot: Optional[BotAdapter] = None
    raw_event: Any = None
    time: float = field(default_factory=time.time)
    is_master: bool = False
    is_admin: bool = False
    store: Dict[str, Any] = field(default_factory=dict)

    # ---- scene predicates ----
    @property
    def user_id(self) -> str:
        return self.sender.user_id

    @property
    def is_private(self) -> bool:
        return self.contact.scene is Scene.FRIEND

    @property
    def is_friend(self) -> bool:
        return self.is_private

    @property
    def is_group(self) -> bool:
        return self.contact.scene is Scene.GROUP

    @property
    def is_guild(self) -> bool:
        return self.contact.scene is Scene.GUILD

    @property
    def is_group_temp(self) -> bool:
        return self.contact.scene is Scene.GROUP_TEMP

    @property
    def is_guild_direct(self) -> bool:
        return self.contact.scene is Scene.GUILD_DIRECT

    # ---- permission ----
    @property
    def level(self) -> int:
        return effective_level(
            is_master=self.is_master, is_admin=self.is_admin, scene=self.contact.scene, role=self.sender.role
        )

    def has_permission(self, required: Union[Permission, str], upward: bool = True) -> bool:
        return has_permission(self.level, required, upward)

    # ---- reply ----
    async def reply(
        self,
        elements: Elements,
        *,
        at: bool = False,
        quote: bool = False,
        recall_after: float = 0,
        retry_count: int = 0,
    ) -> SendResult:
        """
        Send ``elements`` back to where the event came from.

        ``at`` prepends a mention of the sender outside private chats, ``quote``
        prepends a reference to the triggering message, ``recall_after`` recalls
        the sent message after that many seconds and ``retry_count`` is the
        number of extra attempts before :class:`ReplySendError` is raised.
        """
        message = make_message(elements)
        if at and not self.is_private:
            message.insert(0, at_element(self.user_id))
        message_id = getattr(self, "message_id", None)
        if quote and message_id:
            message.insert(0, quote_element(message_id))

        try:
            result = self.src_reply(message)
            if isawaitable(result):
                result = await result
        except Exception as exc:
            if retry_count > 0:
                log.debug("reply.retry", extra={"extra": {"event_id": self.event_id, "left": retry_count - 1}})
                return await self.reply(
                    elements, at=at, quote=quote, recall_after=recall_after, retry_count=retry_count - 1
                )
            raise ReplySendError(f"reply to {self.contact.scene.value}:{self.contact.peer} failed: {exc}") from exc

        log.debug(
            "reply.sent",
            extra={"extra": {"scene": self.contact.scene.value, "peer": self.contact.peer, "text": raw_text(message)}},
        )
        if recall_after > 0 and result.message_id:
            asyncio.get_running_loop().call_later(recall_after, self._spawn_recall, result.message_id)
        return result

    def _spawn_recall(self, message_id: str) -> None:
        t = asyncio.ensure_future(self._recall(message_id))
        _pending.add(t)
        t.add_done_callback(_pending.discard)

    async def _recall(self, message_id: str) -> None:
        if self.bot is None:
            return
        try:
            await self.bot.recall(self.contact, message_id)
        except Exception as exc:
            log.debug("reply.recall.failed", extra={"extra": {"message_id": message_id, "error": str(exc)}})


@dataclass(eq=False)
class MessageEvent(Event):
    message_id: str = ""
    elements: List[Element] = field(default_factory=list)
    msg: str = ""

    def __post_init__(self) -> None:
        if not self.msg:
            self.msg = "".join(str(e.data.get("text", "")) for e in self.elements if e.type == "text").strip()


__all__ = ["Event", "MessageEvent", "SendPrimitive"]
