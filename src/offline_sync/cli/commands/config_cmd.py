"""CLI commands for configuration management."""

from __future__ import annotations

from typing import Annotated

import typer

from offline_sync.cli._helpers import get_config, output_result

config_app = typer.Typer(help="Configuration management")


@config_app.command("show")
def show_cmd(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show the active configuration.

    Examples:
        osync config show
        osync config show --json
    """
    config = get_config()
    if json_output:
        output_result(config.to_dict(), as_json=True)
        return

    typer.secho(f"Config file: {config.config_path}", fg=typer.colors.BRIGHT_BLACK)
    typer.echo(f"log_level: {config.effective_log_level}")
    for section, values in config.to_dict().items():
        if not isinstance(values, dict):
            continue
        typer.secho(f"[{section}]", fg=typer.colors.CYAN, bold=True)
        for key, value in values.items():
            typer.echo(f"  {key} = {value}")
