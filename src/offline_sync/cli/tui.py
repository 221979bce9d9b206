"""Terminal rendering for queue inspection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from offline_sync.core.queued_request import CollatedGroup

console = Console()

METHOD_COLORS = {
    "GET": "cyan",
    "POST": "green",
    "PUT": "yellow",
    "PATCH": "bright_yellow",
    "DELETE": "red",
}


def render_queue(groups: list[CollatedGroup], pending: int) -> None:
    """Render collated groups in publish order."""
    if not groups:
        console.print("[green]Queue is empty.[/green]")
        return

    table = Table(
        title="Pending Requests",
        title_style="bold cyan",
        border_style="bright_black",
    )

    table.add_column("#", style="bright_black", width=3)
    table.add_column("Method", style="bold", width=8)
    table.add_column("Target", overflow="fold")
    table.add_column("Sequences", width=16)
    table.add_column("Queued at", width=26)

    for idx, group in enumerate(groups, 1):
        request = group.effective_request
        method = request.options.effective_method
        color = METHOD_COLORS.get(method, "white")
        table.add_row(
            str(idx),
            f"[{color}]{method}[/{color}]",
            request.target,
            ", ".join(str(s) for s in group.subsumed_sequences),
            request.added_at.isoformat(sep=" ", timespec="seconds"),
        )

    console.print(table)
    console.print(
        f"\n[bright_black]{pending} queued requests collate into "
        f"{len(groups)} publishes.[/bright_black]"
    )
