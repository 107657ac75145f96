"""CLI command implementations — all commands go through AppStore."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import click
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

if TYPE_CHECKING:
    from src.state.store import AppStore

logger = logging.getLogger(__name__)
console = Console(width=200)


@click.command()
@click.argument("query", required=False, default="")
@click.pass_obj
def palette(store: AppStore, query: str) -> None:
    """List palette commands matching QUERY, grouped by category."""
    store.palette.open()
    store.palette.set_query(query)
    groups = store.palette.groups()

    if not groups:
        console.print(f"[yellow]No commands match {query!r}.[/yellow]")
        return

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=3)
    table.add_column("Category", width=14)
    table.add_column("Command", max_width=30)
    table.add_column("Id", style="dim", width=14)
    table.add_column("Shortcut", width=8)

    index = 0
    for category, commands in groups:
        for i, command in enumerate(commands):
            title = command.title
            if index == store.palette.selected_index:
                title = f"[bold]{title}[/bold]"
            table.add_row(
                str(index + 1),
                category if i == 0 else "",
                title,
                command.id,
                command.shortcut or "",
            )
            index += 1
        table.add_section()

    heading = f"matching [bold]{query!r}[/bold]" if query else "available"
    console.print(f"\n{index} command(s) {heading}\n")
    console.print(table)


@click.command()
@click.argument("command_ids", nargs=-1, required=True)
@click.pass_obj
def run(store: AppStore, command_ids: tuple[str, ...]) -> None:
    """Run palette commands by id, in order, then show the resulting state."""
    unknown = [c for c in command_ids if store.commands.get(c) is None]
    if unknown:
        raise click.BadParameter(
            f"unknown command(s): {', '.join(unknown)}", param_hint="COMMAND_IDS"
        )

    asyncio.run(_run_all(store, command_ids))

    for toast in store.ui.toasts:
        console.print(f"[red]{toast.title}[/red]: {toast.message or ''}")
    console.print(Panel(_summary(store), title="[bold]State[/bold]", border_style="blue"))


async def _run_all(store: AppStore, command_ids: tuple[str, ...]) -> None:
    try:
        for command_id in command_ids:
            store.dispatch(command_id)
            await store.drain()
    finally:
        await store.aclose()


def _summary(store: AppStore) -> str:
    inbox = store.inbox
    compose = store.compose
    account = store.session.current_account()
    lines = [
        f"[bold]Location:[/bold]  {store.navigator.current}",
        f"[bold]Folder:[/bold]    {inbox.active_folder.value}",
        f"[bold]Label:[/bold]     {inbox.active_label or '—'}",
        f"[bold]Theme:[/bold]     {store.ui.theme.value}",
        f"[bold]Compose:[/bold]   {compose.window_mode.value}",
        f"[bold]Account:[/bold]   {account.email if account else 'signed out'}",
    ]
    if compose.draft is not None:
        lines.append(f"[bold]Draft:[/bold]     {compose.draft.mode.value} ({compose.draft.id})")
    return "\n".join(lines)
