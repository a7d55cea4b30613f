# src/hubbot/config/const.py
from __future__ import annotations

# folders in the plugin root that start with this prefix are plugin candidates
PLUGIN_PREFIX = "hubbot-plugin-"

# per-package manifest and the key of the plugin marker block inside it
MANIFEST_NAME = "plugin.yaml"
MARKER_KEY = "hubbot"
ENGINE_KEY = "hubbot"

# host manifest (declares dependencies)
HOST_MANIFEST_NAME = "pyproject.toml"

# recognised app file extensions
APP_EXTENSIONS: tuple[str, ...] = (".py",)

# hook looked up on the entry module, runs once before app files are classified
INIT_HOOK = "plugin_init"

DEFAULT_PRIORITY = 10000

# list/info caches live this long after insertion (seconds)
CACHE_TTL = 60.0

# scaffold folders created for packages without a manifest
SCAFFOLD_FILES: tuple[str, ...] = ("config", "data", "resources")

# default static asset folders when the manifest declares none
DEFAULT_STATIC: tuple[str, ...] = ("resource", "resources")

# host dependencies that are never plugins
DEPENDENCY_EXCLUDE: frozenset[str] = frozenset(
    {
        "croniter",
        "gitpython",
        "hubbot",
        "packaging",
        "pydantic",
        "pytest",
        "pytest-asyncio",
        "python-dotenv",
        "pyyaml",
        "requests",
        "rich",
        "typer",
        "watchdog",
    }
)

# type-only distributions
TYPE_ONLY_PREFIX = "types-"
TYPE_ONLY_SUFFIX = "-stubs"

# text sent when a command is denied and the rule asks for the default message
AUTH_FAIL_TEXT = "Permission denied."
