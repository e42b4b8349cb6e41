#!/usr/bin/env python3
"""
Taskflow - move Obsidian notes between folders based on a checkbox property

Usage:
    taskflow --vault-path /path/to/vault monitor
    taskflow --vault-path /path/to/vault create-task "Write report"
    taskflow --vault-path /path/to/vault settings set trueFolder done
"""

import asyncio
import signal
import sys
from pathlib import Path
from typing import Awaitable, Callable, Optional, TypeVar

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config_loader import get_config_loader
from .errors import TaskflowError
from .logging_setup import setup_logging
from .plugin import TaskflowPlugin
from .settings_store import ObsidianConfigReader
from .tasks import Notice
from .watcher import VaultWatcher

console = Console()

T = TypeVar("T")


def run_with_plugin(ctx: click.Context, fn: Callable[[TaskflowPlugin], Awaitable[T]]) -> T:
    """Load the plugin for the selected vault, run `fn`, unload"""
    vault_path: Path = ctx.obj["vault_path"]
    suppress_seconds = ctx.obj["suppress_seconds"]

    async def runner() -> T:
        plugin = TaskflowPlugin(vault_path, suppress_seconds=suppress_seconds)
        await plugin.load()
        try:
            return await fn(plugin)
        finally:
            plugin.unload()

    try:
        return asyncio.run(runner())
    except TaskflowError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


def print_notice(notice: Notice) -> None:
    """Show a command's notice; a failed command exits non-zero"""
    if notice.ok:
        console.print(f"[green]{escape(str(notice))}[/green]")
    else:
        console.print(f"[red]{escape(str(notice))}[/red]")
        sys.exit(1)


@click.group()
@click.option("--vault-path", type=click.Path(file_okay=False, path_type=Path),
              default=lambda: get_config_loader().get_vault_path(),
              help="Path to Obsidian vault (default: vault.path in config.yaml or VAULT_PATH env var)")
@click.option("--log-level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              default=None, help="Console log level (default: logging.level in config.yaml)")
@click.pass_context
def cli(ctx: click.Context, vault_path: Optional[Path], log_level: Optional[str]):
    """Taskflow - move notes between folders when a checkbox property changes"""
    config = get_config_loader()
    setup_logging(level=(log_level or config.get_log_level()).upper(), log_file=config.get_log_file())

    if not vault_path:
        console.print("[red]Error: Vault path is required. Set VAULT_PATH environment variable or use --vault-path[/red]")
        sys.exit(1)
    vault_path = Path(vault_path)
    if not vault_path.is_dir():
        console.print(f"[red]Error: Vault path does not exist: {vault_path}[/red]")
        sys.exit(1)
    if not ObsidianConfigReader(vault_path).is_obsidian_vault():
        console.print(f"[yellow]Warning: {vault_path} doesn't appear to be an Obsidian vault (no .obsidian directory)[/yellow]")
    for problem in config.validate_config(require_vault=False):
        console.print(f"[yellow]Warning: {problem}, using the default[/yellow]")

    ctx.ensure_object(dict)
    ctx.obj["vault_path"] = vault_path
    ctx.obj["suppress_seconds"] = config.get_suppress_seconds()
    ctx.obj["debounce_seconds"] = config.get_debounce_seconds()


@cli.command()
@click.option("--scan/--no-scan", default=True, help="Reclassify every note in scope before watching")
@click.pass_context
def monitor(ctx: click.Context, scan: bool):
    """Watch the vault and move notes as their checkbox property changes"""

    async def watch(plugin: TaskflowPlugin) -> None:
        loop = asyncio.get_running_loop()
        stop = asyncio.Event()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, stop.set)

        if scan:
            moved = await plugin.process_all()
            console.print(f"[cyan]Initial scan moved {len(moved)} notes[/cyan]")

        watcher = VaultWatcher(plugin, debounce_delay=ctx.obj["debounce_seconds"])
        watcher.start(loop)
        console.print("[green]Taskflow monitor started[/green]")
        console.print("[yellow]Press Ctrl+C to stop[/yellow]")
        try:
            await stop.wait()
        finally:
            watcher.stop()
            console.print("[green]Taskflow monitor stopped[/green]")

    run_with_plugin(ctx, watch)


@cli.command()
@click.argument("notes", nargs=-1)
@click.pass_context
def process(ctx: click.Context, notes: tuple):
    """Reclassify the given notes once (all notes in scope if none are given)"""

    async def run(plugin: TaskflowPlugin):
        if not notes:
            return await plugin.process_all()
        results = []
        for path in notes:
            note = plugin.resolve_note(path)
            if note is None:
                console.print(f"[yellow]Skipping {path}: not a note in this vault[/yellow]")
                continue
            result = await plugin.reclassifier.handle_change(note)
            if result is not None:
                results.append(result)
        return results

    results = run_with_plugin(ctx, run)
    for result in results:
        console.print(f"[blue]{escape(result.original_path)} → {escape(result.new_path)}[/blue]")
    console.print(f"[green]Moved {len(results)} notes[/green]")


@cli.command("create-task")
@click.argument("title")
@click.pass_context
def create_task(ctx: click.Context, title: str):
    """Create a new [TASK-NNN] note"""
    print_notice(run_with_plugin(ctx, lambda plugin: plugin.run_command("create-task", title)))


def _note_command(ctx: click.Context, command_id: str, note_path: str) -> Notice:
    async def run(plugin: TaskflowPlugin) -> Notice:
        note = plugin.resolve_note(note_path)
        if note is None:
            return Notice(f"{note_path} is not a note in this vault.", ok=False)
        return await plugin.run_command(command_id, note)

    return run_with_plugin(ctx, run)


@cli.command("move-to-icebox")
@click.argument("note_path")
@click.pass_context
def move_to_icebox(ctx: click.Context, note_path: str):
    """Move a task note to the icebox folder"""
    print_notice(_note_command(ctx, "move-to-icebox", note_path))


@cli.command("move-out-of-backlog")
@click.argument("note_path")
@click.pass_context
def move_out_of_backlog(ctx: click.Context, note_path: str):
    """Move a task note from the backlog to the root folder"""
    print_notice(_note_command(ctx, "move-out-of-backlog", note_path))


@cli.command("detect-counter")
@click.pass_context
def detect_counter(ctx: click.Context):
    """Recompute the task counter from existing task notes"""

    async def run(plugin: TaskflowPlugin) -> int:
        return plugin.detect_task_counter()

    counter = run_with_plugin(ctx, run)
    console.print(f"[green]Next task number: {counter:03d}[/green]")


@cli.group()
def settings():
    """Show or change plugin settings"""


@settings.command("show")
@click.pass_context
def settings_show(ctx: click.Context):
    """Show the current settings"""

    async def run(plugin: TaskflowPlugin):
        return plugin.settings

    current = run_with_plugin(ctx, run)
    table = Table(title="Taskflow settings")
    table.add_column("Option", style="cyan")
    table.add_column("Value")
    for key, value in current.to_data().items():
        table.add_row(key, escape(repr(value)))
    console.print(table)


@settings.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def settings_set(ctx: click.Context, key: str, value: str):
    """Set one option, e.g. `settings set enableCompletedDate true`"""

    async def run(plugin: TaskflowPlugin):
        return plugin.update_setting(key, value)

    try:
        updated = run_with_plugin(ctx, run)
    except ValidationError as e:
        console.print(f"[red]Invalid value for {key}: {e.errors()[0]['msg']}[/red]")
        sys.exit(1)
    field_name = updated.field_for_option(key)
    console.print(f"[green]✓ {key} = {getattr(updated, field_name)!r}[/green]")


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
