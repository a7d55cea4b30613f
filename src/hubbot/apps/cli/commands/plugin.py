# src/hubbot/apps/cli/commands/plugin.py
from __future__ import annotations

import asyncio
import json

import typer
from rich import print
from rich.table import Table

from hubbot.apps.bootstrap import get_ctx
from hubbot.domain.types import PluginFilter, PluginKind
from hubbot.services.errors import UnknownPackageError
from hubbot.services.plugin.descriptor import resolve_entry
from hubbot.services.plugin.manager import LoadReport
from hubbot.services.plugin.update import check_dependency_update

app = typer.Typer(help="Plugin packages")


def _print_report(report: LoadReport) -> None:
    table = Table(title="load report")
    table.add_column("bucket")
    table.add_column("count", justify="right")
    for k, v in report.counts.items():
        table.add_row(k, str(v))
    print(table)
    for name, reason in report.missing.items():
        print(f"[red]missing[/red] {name}: {reason}")
    for err in report.errors:
        print(f"[yellow]{type(err).__name__}[/yellow] {err}")
    print(f"elapsed {report.elapsed}s")


@app.command("list")
def list_cmd(
    kind: PluginFilter = typer.Option(PluginFilter.ALL, "--kind", help="scaffold | clone | dependency | all"),
    json_output: bool = typer.Option(False, "--json", help="Print JSON"),
    force: bool = typer.Option(False, "--force", help="Ignore the discovery cache"),
):
    """Identifiers of discovered plugin packages ("kind:name")."""
    ctx = get_ctx()
    ids = asyncio.run(ctx.manager.list_packages(kind, force=force))
    if json_output:
        typer.echo(json.dumps({"plugins": ids}, ensure_ascii=False))
        return
    if not ids:
        typer.echo("No plugin packages found.")
        return
    for ident in ids:
        typer.echo(f"- {ident}")


@app.command("info")
def info_cmd(
    kind: PluginFilter = typer.Option(PluginFilter.ALL, "--kind", help="scaffold | clone | dependency | all"),
    force: bool = typer.Option(False, "--force", help="Ignore the discovery cache"),
):
    """Resolved descriptors: directory, entry and app files."""
    ctx = get_ctx()
    descs = asyncio.run(ctx.manager.list_package_details(kind, force=force))
    table = Table(title="plugins")
    for col in ("identifier", "dir", "entry", "apps"):
        table.add_column(col)
    for d in descs:
        entry = resolve_entry(d, ctx.settings.source_mode)
        table.add_row(d.identifier, str(d.dir), str(entry) if entry else "-", str(len(d.apps)))
    print(table)


@app.command("load")
def load_cmd():
    """Load every package once and print the report."""
    ctx = get_ctx()

    async def _load() -> LoadReport:
        try:
            return await ctx.manager.load_all()
        finally:
            ctx.manager.shutdown()

    _print_report(asyncio.run(_load()))


@app.command("reload")
def reload_cmd(
    kind: PluginKind = typer.Argument(..., help="scaffold | clone | root | dependency"),
    name: str = typer.Argument(..., help="Package name"),
):
    """Load everything, then hot-reload one package."""
    ctx = get_ctx()

    async def _reload() -> LoadReport:
        try:
            await ctx.manager.load_all()
            return await ctx.manager.reload_package(kind, name)
        finally:
            ctx.manager.shutdown()

    try:
        report = asyncio.run(_reload())
    except UnknownPackageError as exc:
        print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    _print_report(report)


@app.command("update-check")
def update_check_cmd(name: str = typer.Argument(..., help="Dependency plugin name")):
    """Compare the installed version of a dependency plugin with the index."""
    try:
        info = asyncio.run(check_dependency_update(name))
    except UnknownPackageError:
        print(f"[red]{name} is not installed[/red]")
        raise typer.Exit(1)
    if info.status:
        print(f"[yellow]{name}[/yellow] {info.version} -> {info.remote}")
    else:
        print(f"[green]{name}[/green] {info.version} is up to date")
