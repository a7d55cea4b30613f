# src/hubbot/ports/adapter.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from hubbot.domain.message import Element
from hubbot.domain.types import Contact


@dataclass(frozen=True, slots=True)
class AdapterInfo:
    """Adapter identity used by the allow/deny lists of commands."""

    name: str
    version: str = ""
    protocol: str = ""


@dataclass(slots=True)
class SendResult:
    message_id: str
    time: float = 0.0
    raw: Any = field(default=None, repr=False)


class BotAdapter(Protocol):
    """Contract a chat-protocol adapter fulfils for the runtime."""

    self_id: str
    info: AdapterInfo

    async def send(self, contact: Contact, elements: Sequence[Element]) -> SendResult: ...

    async def recall(self, contact: Contact, message_id: str) -> None: ...
