from __future__ import annotations

from hubbot.domain.manifest import EnvEntry
from hubbot.services.plugin.env import write_env


def test_appends_only_missing_keys(tmp_path):
    env = tmp_path / ".env"
    env.write_text("KEEP=1", encoding="utf-8")

    written = write_env(
        [
            EnvEntry(key="KEEP", value="2"),
            EnvEntry(key="TOKEN", value="abc", comment="bot token"),
            EnvEntry(key="TOKEN", value="dup"),
            EnvEntry(key="PORT", value=7777),
        ],
        env,
    )

    assert written == ["TOKEN", "PORT"]
    assert env.read_text(encoding="utf-8") == "KEEP=1\n# bot token\nTOKEN=abc\nPORT=7777\n"


def test_nothing_to_write_leaves_file_alone(tmp_path):
    env = tmp_path / "nested" / ".env"
    assert write_env([], env) == []
    assert not env.exists()

    write_env([EnvEntry(key="A", value="x")], env)
    assert write_env([EnvEntry(key="A", value="y")], env) == []
    assert env.read_text(encoding="utf-8") == "A=x\n"
