"""Runtime errors of the plugin host and the batch error report."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Union

__all__ = [
    "HubbotError",
    "DiscoveryError",
    "CompatibilityMismatch",
    "LoadError",
    "CapabilityDefinitionError",
    "ScheduleRunError",
    "ReplySendError",
    "UnknownPackageError",
    "ErrorReport",
]


class HubbotError(RuntimeError):
    """Base error. ``package`` and ``path`` locate the failing unit when known."""

    def __init__(self, message: str, *, package: Optional[str] = None, path: Union[str, Path, None] = None) -> None:
        self.package = package
        self.path = str(path) if path is not None else None
        super().__init__(message)


class DiscoveryError(HubbotError):
    """A manifest is missing, unreadable or invalid."""


class CompatibilityMismatch(HubbotError):
    """The package's declared engine range excludes the running version."""

    def __init__(self, package: str, required: str, running: str, *, path: Union[str, Path, None] = None) -> None:
        self.required = required
        self.running = running
        super().__init__(f"{package} requires hubbot {required}, running {running}", package=package, path=path)


class LoadError(HubbotError):
    """Importing an entry module or app file failed."""


class CapabilityDefinitionError(HubbotError):
    """An exported capability is malformed (missing name/rules, bad pattern or method)."""


class ScheduleRunError(HubbotError):
    """A scheduled task raised during one firing."""


class ReplySendError(HubbotError):
    """Sending a reply failed after the retry budget was spent."""


class UnknownPackageError(HubbotError, LookupError):
    """A hot-reload target does not resolve to a package."""

    def __init__(self, kind: str, name: str) -> None:
        self.kind = kind
        self.name = name
        super().__init__(f"plugin package {kind}:{name} does not exist", package=name)


@dataclass(slots=True)
class ErrorReport:
    """Batch-local errors collected during one discovery/load cycle."""

    errors: List[HubbotError] = field(default_factory=list)

    def record(self, error: HubbotError) -> None:
        self.errors.append(error)

    def by_kind(self) -> dict[str, int]:
        return dict(Counter(type(e).__name__ for e in self.errors))

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self) -> Iterator[HubbotError]:
        return iter(self.errors)

    def __bool__(self) -> bool:
        return bool(self.errors)
