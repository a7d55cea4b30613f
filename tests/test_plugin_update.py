from __future__ import annotations

from importlib import metadata

import pytest
from git import Actor, Repo

from hubbot.services.errors import UnknownPackageError
from hubbot.services.plugin import update

AUTHOR = Actor("hubbot tests", "tests@example.invalid")


class _Response:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


@pytest.mark.asyncio
async def test_dependency_update_compares_versions(monkeypatch):
    seen = {}

    def fake_get(url, timeout):
        seen["url"] = url
        return _Response({"info": {"version": "1.10.0"}})

    monkeypatch.setattr(update.requests, "get", fake_get)
    monkeypatch.setattr(update.metadata, "version", lambda name: "1.9.3")

    info = await update.check_dependency_update("hubbot-plugin-demo", index="https://index.example/pypi/")
    assert seen["url"] == "https://index.example/pypi/hubbot-plugin-demo/json"
    assert (info.version, info.remote, info.status) == ("1.9.3", "1.10.0", True)
    assert not update.UpdateInfo("x", "2.0", "2.0").status


@pytest.mark.asyncio
async def test_dependency_update_for_missing_package(monkeypatch):
    def missing(name):
        raise metadata.PackageNotFoundError(name)

    monkeypatch.setattr(update.metadata, "version", missing)
    with pytest.raises(UnknownPackageError):
        await update.check_dependency_update("hubbot-plugin-ghost")
    with pytest.raises(ValueError):
        await update.check_dependency_update("")


@pytest.mark.asyncio
async def test_pip_arguments(monkeypatch):
    calls = []

    async def fake_pip(args):
        calls.append(list(args))
        return update.PipResult(args=list(args), returncode=0, stdout="", stderr="")

    monkeypatch.setattr(update, "_pip", fake_pip)
    res = await update.update_dependency("hubbot-plugin-a", version="1.2.0", index_url="https://mirror/simple")
    await update.update_dependencies(["hubbot-plugin-a", "hubbot-plugin-b"])
    assert res.ok
    assert calls == [
        ["install", "-U", "hubbot-plugin-a==1.2.0", "--index-url", "https://mirror/simple"],
        ["install", "-U", "hubbot-plugin-a", "hubbot-plugin-b"],
    ]
    with pytest.raises(ValueError):
        await update.update_dependencies([])


def _commit(repo: Repo, name: str, body: str) -> None:
    path = repo.working_tree_dir + "/" + name
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(body)
    repo.index.add([name])
    repo.index.commit(f"add {name}", author=AUTHOR, committer=AUTHOR)


@pytest.mark.asyncio
async def test_clone_behind_upstream(tmp_path):
    origin = Repo.init(tmp_path / "origin")
    _commit(origin, "plugin.yaml", "name: hubbot-plugin-git\n")
    clone = origin.clone(tmp_path / "clone")

    info = await update.check_clone_update(tmp_path / "clone")
    assert info.behind == 0 and not info.status

    _commit(origin, "apps.py", "x = 1\n")
    _commit(origin, "more.py", "y = 2\n")
    info = await update.check_clone_update(tmp_path / "clone")
    assert info.branch == clone.active_branch.name
    assert info.remote == f"origin/{clone.active_branch.name}"
    assert info.behind == 2 and info.status


@pytest.mark.asyncio
async def test_clone_without_upstream(tmp_path):
    repo = Repo.init(tmp_path / "solo")
    _commit(repo, "a.txt", "a")
    info = await update.check_clone_update(tmp_path / "solo")
    assert info.remote is None and info.behind == 0
