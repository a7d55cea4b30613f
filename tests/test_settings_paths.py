from __future__ import annotations

import json
import logging

from hubbot.adapters.fs.path_provider import PathProvider
from hubbot.services.logging import setup_logging
from hubbot.services.settings import Settings


def test_from_sources_reads_env_and_dotenv(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("HUBBOT_PROFILE=dotenv\nHUBBOT_ADMINS=a, b\n", encoding="utf-8")
    monkeypatch.setenv("HUBBOT_BASE_DIR", str(tmp_path / "base"))
    monkeypatch.setenv("HUBBOT_MASTERS", "root")
    monkeypatch.setenv("ENV_TYPE", "dev")

    s = Settings.from_sources(env_file=str(env_file))
    assert s.base_dir == (tmp_path / "base").resolve()
    assert s.profile == "dotenv"
    assert s.masters == ("root",)
    assert s.admins == ("a", "b")
    assert s.source_mode


def test_with_overrides_ignores_none(settings, tmp_path):
    s = settings.with_overrides(profile=None, source_mode=True, base_dir=str(tmp_path / "other"))
    assert s.profile == "test"
    assert s.source_mode
    assert s.base_dir == (tmp_path / "other").resolve()
    assert settings.source_mode is False


def test_path_layout(settings):
    p = PathProvider(settings)
    p.ensure_tree()
    base = settings.base_dir
    assert p.plugins_dir() == base / "plugins"
    assert p.plugin_data_dir("hubbot-plugin-x").parent == p.data_dir()
    assert p.host_manifest() == base / "pyproject.toml"
    assert p.plugins_dir().is_dir() and p.logs_dir().is_dir()


def test_setup_logging_writes_json_lines(paths):
    logger = setup_logging(paths, "debug")
    try:
        logging.getLogger("hubbot.test").info("hello", extra={"extra": {"n": 1}})
        for h in logger.handlers:
            h.flush()
        lines = (paths.logs_dir() / "hubbot.log").read_text(encoding="utf-8").splitlines()
        record = json.loads(lines[-1])
        assert record["msg"] == "hello" and record["n"] == 1
        assert logger.level == logging.DEBUG
    finally:
        for h in list(logger.handlers):
            h.close()
        logger.handlers.clear()
