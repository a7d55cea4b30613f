# src/hubbot/apps/cli/app.py
from __future__ import annotations

import asyncio
import functools
import os
import sys
import traceback
from typing import Optional

from dotenv import find_dotenv, load_dotenv
import typer
from rich import print

# .env is loaded once so HUBBOT_* variables reach Settings.from_sources()
load_dotenv(find_dotenv(usecwd=True))

from hubbot.apps.bootstrap import get_ctx, init_ctx
from hubbot.apps.cli.commands import plugin as plugin_cmd
from hubbot.domain.types import Scene
from hubbot.services.plugin.watcher import PluginWatcher
from hubbot.services.settings import Settings

app = typer.Typer(help="hubbot: plugin host for chat automation")


def _run_safe(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            if os.getenv("HUBBOT_CLI_DEBUG") == "1":
                traceback.print_exc()
            raise

    return wrapper


@app.callback()
def main(
    base_dir: Optional[str] = typer.Option(None, "--base-dir", help="Host working directory (default: cwd or HUBBOT_BASE_DIR)"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Settings profile"),
    source: Optional[bool] = typer.Option(None, "--source/--dist", help="Prefer source entries of clone packages"),
):
    """Builds the host context before any subcommand runs."""
    settings = Settings.from_sources().with_overrides(base_dir=base_dir, profile=profile, source_mode=source)
    init_ctx(settings)


@app.command("where")
def where():
    ctx = get_ctx()
    print(f"base_dir: {ctx.settings.base_dir}")
    print(f"plugins:  {ctx.paths.plugins_dir()}")


@app.command("send")
@_run_safe
def send(
    text: str = typer.Argument(..., help="Message text"),
    scene: Scene = typer.Option(Scene.FRIEND, "--scene", help="Scene the message comes from"),
    user: str = typer.Option("console", "--user", help="Sender user id"),
):
    """Load plugins and dispatch one console message."""
    ctx = get_ctx()

    async def _send() -> bool:
        await ctx.manager.load_all()
        event = ctx.console.make_event(text, user_id=user, scene=scene)
        try:
            return await ctx.dispatcher.dispatch(event)
        finally:
            ctx.manager.shutdown()

    handled = asyncio.run(_send())
    if not handled:
        print("[yellow]no command matched[/yellow]")


@app.command("run")
@_run_safe
def run(
    user: str = typer.Option("console", "--user", help="Sender user id for stdin lines"),
    watch: bool = typer.Option(True, "--watch/--no-watch", help="Hot-reload packages on file changes"),
):
    """Load plugins, watch their files and dispatch every stdin line as a message."""
    ctx = get_ctx()

    async def _run() -> None:
        report = await ctx.manager.load_all()
        print(f"[green]loaded[/green] {report.counts}")
        watcher = PluginWatcher(ctx.manager) if watch else None
        if watcher is not None:
            watcher.start()
        try:
            while True:
                line = await asyncio.to_thread(sys.stdin.readline)
                if not line:
                    break
                line = line.strip()
                if line:
                    await ctx.dispatcher.dispatch(ctx.console.make_event(line, user_id=user))
        finally:
            if watcher is not None:
                watcher.stop()
            ctx.manager.shutdown()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        print("[yellow]stopped[/yellow]")


app.add_typer(plugin_cmd.app, name="plugin", help="Plugin packages: discovery, loading, reload, updates")

if __name__ == "__main__":
    app()
