# src/hubbot/domain/capability.py
"""Capability records: the closed set of things a plugin can register.

Every record is a frozen dataclass with a ``kind`` discriminant. The owning
package, the source file, a compiled pattern or a job handle are attached by
the classifier through :func:`dataclasses.replace`, never by mutation.
"""

from __future__ import annotations
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple, Union

from hubbot.config import const
from hubbot.domain.types import CapabilityKind, Permission

if TYPE_CHECKING:
    from hubbot.domain.package import PackageDescriptor


@dataclass(frozen=True, slots=True)
class SourceFile:
    abs_path: Path
    kind: CapabilityKind
    method: str
    name: str

    @property
    def dirname(self) -> str:
        return os.path.dirname(self.abs_path)

    @property
    def basename(self) -> str:
        return os.path.basename(self.abs_path)


@dataclass(frozen=True, slots=True)
class Command:
    pattern: Union[str, "re.Pattern[str]"]
    handler: Callable[..., Any]
    priority: int = const.DEFAULT_PRIORITY
    permission: Union[Permission, str] = Permission.ALL
    event: str = "message"
    adapter: Tuple[str, ...] = ()
    dsb_adapter: Tuple[str, ...] = ()
    log: bool = True
    auth_fail_msg: Union[bool, str] = True
    name: str = ""
    pkg: Optional["PackageDescriptor"] = field(default=None, compare=False)
    file: Optional[SourceFile] = field(default=None, compare=False)
    kind: CapabilityKind = field(default=CapabilityKind.COMMAND, init=False)


@dataclass(frozen=True, slots=True)
class Accept:
    event: str
    handler: Callable[..., Any]
    priority: int = const.DEFAULT_PRIORITY
    name: str = ""
    pkg: Optional["PackageDescriptor"] = field(default=None, compare=False)
    file: Optional[SourceFile] = field(default=None, compare=False)
    kind: CapabilityKind = field(default=CapabilityKind.ACCEPT, init=False)


@dataclass(frozen=True, slots=True)
class Task:
    name: str
    cron: str
    handler: Callable[..., Any]
    log: bool = True
    job: Any = field(default=None, compare=False)
    pkg: Optional["PackageDescriptor"] = field(default=None, compare=False)
    file: Optional[SourceFile] = field(default=None, compare=False)
    kind: CapabilityKind = field(default=CapabilityKind.TASK, init=False)


@dataclass(frozen=True, slots=True)
class Button:
    handler: Callable[..., Any]
    priority: int = const.DEFAULT_PRIORITY
    name: str = ""
    pkg: Optional["PackageDescriptor"] = field(default=None, compare=False)
    file: Optional[SourceFile] = field(default=None, compare=False)
    kind: CapabilityKind = field(default=CapabilityKind.BUTTON, init=False)


@dataclass(frozen=True, slots=True)
class Handler:
    key: str
    handler: Callable[..., Any]
    priority: int = const.DEFAULT_PRIORITY
    name: str = ""
    pkg: Optional["PackageDescriptor"] = field(default=None, compare=False)
    file: Optional[SourceFile] = field(default=None, compare=False)
    kind: CapabilityKind = field(default=CapabilityKind.HANDLER, init=False)


Capability = Union[Command, Accept, Task, Button, Handler]
CAPABILITY_TYPES = (Command, Accept, Task, Button, Handler)
