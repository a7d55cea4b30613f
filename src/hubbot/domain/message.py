# src/hubbot/domain/message.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Union


@dataclass(frozen=True, slots=True)
class Element:
    """One message element. Only the kinds the runtime itself produces are built here."""

    type: str
    data: Mapping[str, Any] = field(default_factory=dict)


def text(value: str) -> Element:
    return Element("text", {"text": value})


def at(user_id: str) -> Element:
    return Element("at", {"target_id": user_id})


def quote(message_id: str) -> Element:
    return Element("reply", {"message_id": message_id})


Elements = Union[str, Element, Iterable[Union[str, Element]]]


def make_message(elements: Elements) -> list[Element]:
    """Normalize a str / element / iterable of both into a fresh element list."""
    if isinstance(elements, (str, Element)):
        elements = [elements]
    out: list[Element] = []
    for el in elements:
        if isinstance(el, str):
            out.append(text(el))
        elif isinstance(el, Element):
            out.append(el)
        else:
            raise TypeError(f"unsupported message element: {el!r}")
    return out


def raw_text(elements: Iterable[Element]) -> str:
    """Plain-text rendering used for logs and console output."""
    parts = []
    for el in elements:
        if el.type == "text":
            parts.append(str(el.data.get("text", "")))
        elif el.type == "at":
            parts.append(f"@{el.data.get('target_id')}")
        elif el.type == "reply":
            parts.append(f"[reply:{el.data.get('message_id')}]")
        else:
            parts.append(f"[{el.type}]")
    return "".join(parts)
