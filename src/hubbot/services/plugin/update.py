# src/hubbot/services/plugin/update.py
"""Update checks for dependency plugins (PyPI + pip) and clone plugins (git)."""

from __future__ import annotations
import asyncio
import logging
import sys
from dataclasses import dataclass
from importlib import metadata
from pathlib import Path
from typing import List, Optional, Sequence

import requests
from git import Repo
from packaging.version import InvalidVersion, Version

from hubbot.services.errors import UnknownPackageError

log = logging.getLogger("hubbot.plugin.update")

PYPI_URL = "https://pypi.org/pypi"


@dataclass(slots=True)
class UpdateInfo:
    name: str
    version: str
    remote: str

    @property
    def status(self) -> bool:
        """True when the index has a newer release than the installed one."""
        try:
            return Version(self.remote) > Version(self.version)
        except InvalidVersion:
            return self.remote != self.version


@dataclass(slots=True)
class PipResult:
    args: List[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(slots=True)
class CloneUpdateInfo:
    path: Path
    branch: Optional[str]
    remote: Optional[str]
    behind: int

    @property
    def status(self) -> bool:
        return self.behind > 0


def installed_version(name: str) -> str:
    try:
        return metadata.version(name)
    except metadata.PackageNotFoundError as exc:
        raise UnknownPackageError("dependency", name) from exc


def _latest_version(name: str, index: str, timeout: float) -> str:
    r = requests.get(f"{index.rstrip('/')}/{name}/json", timeout=timeout)
    r.raise_for_status()
    return str(r.json()["info"]["version"])


async def get_remote_version(name: str, *, index: str = PYPI_URL, timeout: float = 10.0) -> str:
    return await asyncio.to_thread(_latest_version, name, index, timeout)


async def check_dependency_update(name: str, *, index: str = PYPI_URL, timeout: float = 10.0) -> UpdateInfo:
    if not name:
        raise ValueError("package name is required")
    local = installed_version(name)
    remote = await get_remote_version(name, index=index, timeout=timeout)
    info = UpdateInfo(name=name, version=local, remote=remote)
    log.info("update.check", extra={"extra": {"package": name, "version": local, "remote": remote, "status": info.status}})
    return info


async def _pip(args: Sequence[str]) -> PipResult:
    cmd = [sys.executable, "-m", "pip", *args]
    proc = await asyncio.create_subprocess_exec(
        *cmd, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
    )
    out, err = await proc.communicate()
    result = PipResult(
        args=cmd,
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=out.decode("utf-8", "replace"),
        stderr=err.decode("utf-8", "replace"),
    )
    level = logging.INFO if result.ok else logging.ERROR
    log.log(level, "update.pip", extra={"extra": {"args": list(args), "returncode": result.returncode}})
    return result


async def update_dependency(name: str, *, version: Optional[str] = None, index_url: Optional[str] = None) -> PipResult:
    target = f"{name}=={version}" if version else name
    args = ["install", "-U", target]
    if index_url:
        args += ["--index-url", index_url]
    return await _pip(args)


async def update_dependencies(names: Sequence[str], *, index_url: Optional[str] = None) -> PipResult:
    if not names:
        raise ValueError("no packages to update")
    args = ["install", "-U", *names]
    if index_url:
        args += ["--index-url", index_url]
    return await _pip(args)


def _clone_status(path: Path) -> CloneUpdateInfo:
    repo = Repo(path)
    branch = None if repo.head.is_detached else repo.active_branch
    tracking = branch.tracking_branch() if branch is not None else None
    if tracking is None:
        return CloneUpdateInfo(path=path, branch=branch.name if branch else None, remote=None, behind=0)
    repo.remote(tracking.remote_name).fetch()
    behind = int(repo.git.rev_list("--count", f"HEAD..{tracking.name}") or 0)
    return CloneUpdateInfo(path=path, branch=branch.name, remote=tracking.name, behind=behind)


async def check_clone_update(path: Path) -> CloneUpdateInfo:
    """Fetch the clone's upstream and count the commits HEAD is behind."""
    info = await asyncio.to_thread(_clone_status, Path(path))
    log.info(
        "update.clone.check",
        extra={"extra": {"path": str(path), "branch": info.branch, "remote": info.remote, "behind": info.behind}},
    )
    return info
