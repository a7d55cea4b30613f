# src/hubbot/services/logging.py
from __future__ import annotations
import json
import logging
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

from hubbot.adapters.fs.path_provider import PathProvider

LOGFILE_NAME = "hubbot.log"
_HANDLER_NAMES = ("hubbot.stderr", "hubbot.file")


class JsonFormatter(logging.Formatter):
    """One JSON object per line. Context passed as ``extra={"extra": {...}}`` is merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        ctx = getattr(record, "extra", None)
        if isinstance(ctx, dict):
            payload.update(ctx)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def _handlers(paths: PathProvider, level: int) -> list[logging.Handler]:
    logs_dir = paths.logs_dir()
    logs_dir.mkdir(parents=True, exist_ok=True)

    stderr = logging.StreamHandler()
    rotating = RotatingFileHandler(logs_dir / LOGFILE_NAME, maxBytes=5_000_000, backupCount=3, encoding="utf-8")
    out = [stderr, rotating]
    for name, h in zip(_HANDLER_NAMES, out):
        h.set_name(name)
        h.setLevel(level)
        h.setFormatter(JsonFormatter())
    return out


def setup_logging(paths: PathProvider, level: str = "INFO") -> logging.Logger:
    """
    Configure the ``hubbot`` logger tree: JSON lines to stderr and to
    ``{logs_dir}/hubbot.log`` (rotating). Calling it again replaces the
    handlers installed by a previous call.
    """
    lvl = logging.getLevelName(level.upper())
    if not isinstance(lvl, int):
        lvl = logging.INFO

    logger = logging.getLogger("hubbot")
    logger.setLevel(lvl)
    for h in [h for h in logger.handlers if h.get_name() in _HANDLER_NAMES]:
        logger.removeHandler(h)
        h.close()
    for h in _handlers(paths, lvl):
        logger.addHandler(h)
    logger.propagate = False

    logger.info("logging.initialized", extra={"extra": {"logfile": str(paths.logs_dir() / LOGFILE_NAME), "level": logging.getLevelName(lvl)}})
    return logger
