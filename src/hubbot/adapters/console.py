"""Console adapter: replies are printed with rich, messages come from the CLI."""

from __future__ import annotations
import itertools
import time
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.markup import escape

from hubbot import __version__
from hubbot.domain.message import Element, raw_text, text
from hubbot.domain.types import Contact, Role, Scene, Sender
from hubbot.ports.adapter import AdapterInfo, SendResult
from hubbot.services.dispatch.event import MessageEvent


class ConsoleAdapter:
    def __init__(self, *, self_id: str = "console", console: Optional[Console] = None) -> None:
        self.self_id = self_id
        self.info = AdapterInfo(name="console", version=__version__, protocol="console")
        self.console = console or Console()
        self.sent: Dict[str, List[Element]] = {}
        self._ids = itertools.count(1)

    async def send(self, contact: Contact, elements: Sequence[Element]) -> SendResult:
        message_id = f"console-{next(self._ids)}"
        self.sent[message_id] = list(elements)
        self.console.print(f"[green]→ {contact.scene.value}:{contact.peer}[/green] {escape(raw_text(elements))}")
        return SendResult(message_id=message_id, time=time.time())

    async def recall(self, contact: Contact, message_id: str) -> None:
        if self.sent.pop(message_id, None) is not None:
            self.console.print(f"[yellow]recalled {message_id}[/yellow]")

    def make_event(
        self,
        msg: str,
        *,
        user_id: str = "console",
        scene: Scene = Scene.FRIEND,
        peer: Optional[str] = None,
        role: Optional[Role] = None,
    ) -> MessageEvent:
        """Build a message event as if ``user_id`` had typed ``msg``."""
        contact = Contact(scene=scene, peer=peer or user_id)
        sender = Sender(user_id=user_id, nick=user_id, role=role)
        n = next(self._ids)

        async def src_reply(elements: List[Element]) -> SendResult:
            return await self.send(contact, elements)

        return MessageEvent(
            self_id=self.self_id,
            event="message",
            sub_event=scene.value,
            event_id=f"console-event-{n}",
            contact=contact,
            sender=sender,
            src_reply=src_reply,
            bot=self,
            raw_event={"msg": msg},
            message_id=f"console-msg-{n}",
            elements=[text(msg)],
        )
