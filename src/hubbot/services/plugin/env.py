from __future__ import annotations
import logging
from pathlib import Path
from typing import Iterable, List

from dotenv import dotenv_values

from hubbot.domain.manifest import EnvEntry

log = logging.getLogger("hubbot.plugin.env")


def write_env(entries: Iterable[EnvEntry], env_file: Path) -> List[str]:
    """
    Append declared variables that the ``.env`` file does not define yet.
    Existing keys are never touched. Returns the keys that were written.
    """
    env_file = Path(env_file)
    existing = dotenv_values(env_file) if env_file.exists() else {}

    lines: List[str] = []
    written: List[str] = []
    for entry in entries:
        if not entry.key or entry.key in existing or entry.key in written:
            continue
        if entry.comment:
            lines.append(f"# {entry.comment}")
        lines.append(f"{entry.key}={entry.value}")
        written.append(entry.key)

    if not lines:
        return []

    env_file.parent.mkdir(parents=True, exist_ok=True)
    prefix = ""
    if env_file.exists():
        content = env_file.read_text(encoding="utf-8")
        if content and not content.endswith("\n"):
            prefix = "\n"
    with env_file.open("a", encoding="utf-8") as fh:
        fh.write(prefix + "\n".join(lines) + "\n")
    log.info("env.appended", extra={"extra": {"file": str(env_file), "keys": written}})
    return written
