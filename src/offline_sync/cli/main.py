"""offline-sync CLI main entry point."""

from __future__ import annotations

import asyncio
from typing import Annotated, Any, Optional

import typer

from offline_sync.cli._helpers import (
    configure_logging,
    get_config,
    get_engine,
    get_monitor,
    get_storage,
    output_result,
    parse_json_argument,
    run_async,
)
from offline_sync.cli.commands.config_cmd import config_app
from offline_sync.cli.commands.objects import object_app
from offline_sync.core.queued_request import RequestOptions
from offline_sync.sync.collation import collate_queue

# Main app
app = typer.Typer(
    name="osync",
    help="offline-sync - durable request queue that replays when online",
    no_args_is_help=True,
)

app.add_typer(object_app, name="object")
app.add_typer(config_app, name="config")


@app.callback()
def _root(
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Configure logging before any command runs."""
    configure_logging(get_config(), verbose=verbose)


def _parse_headers(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header must look like 'Name: value', got {item!r}")
        headers[name.strip()] = value.strip()
    return headers


@app.command()
def status(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show connectivity, queue size and the next queued request.

    Examples:
        osync status
        osync status --json
    """
    config = get_config()

    async def _status() -> dict[str, Any]:
        storage = await get_storage(config)
        pending = await storage.count_pending_requests()
        next_request = await storage.peek_next_request()
        return {
            "online": get_monitor(config).is_online(),
            "pending": pending,
            "next_request": next_request.to_dict() if next_request else None,
        }

    result = run_async(_status())
    if json_output:
        output_result(result, as_json=True)
        return

    online = result["online"]
    typer.secho(
        f"Connectivity: {'online' if online else 'offline'}",
        fg=typer.colors.GREEN if online else typer.colors.YELLOW,
    )
    typer.echo(f"Pending requests: {result['pending']}")
    nxt = result["next_request"]
    if nxt:
        typer.echo(f"Next: {nxt['options']['method'] or 'GET'} {nxt['target']} (#{nxt['sequence']})")


@app.command()
def enqueue(
    target: Annotated[str, typer.Argument(help="URL or path of the request")],
    method: Annotated[str, typer.Option("--method", "-X", help="HTTP method")] = "POST",
    data: Annotated[
        Optional[str], typer.Option("--data", "-d", help="Request body as JSON")
    ] = None,
    header: Annotated[
        Optional[list[str]], typer.Option("--header", "-H", help="Header as 'Name: value'")
    ] = None,
) -> None:
    """Queue a request for the next publish pass.

    Examples:
        osync enqueue /todos/1 -X PUT -d '{"title": "milk"}'
        osync enqueue /todos/2 -X DELETE -H "Authorization: Bearer abc"
    """
    body = parse_json_argument(data, "data") if data is not None else None
    options = RequestOptions(method=method, headers=_parse_headers(header or []), body=body)

    async def _enqueue() -> int:
        storage = await get_storage(get_config())
        return await storage.enqueue_request(target, options)

    sequence = run_async(_enqueue())
    output_result({"message": f"Queued {options.effective_method} {target} as #{sequence}"})


@app.command()
def queue(
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Show queued requests as they would be published.

    Examples:
        osync queue
        osync queue --json
    """

    async def _queue() -> tuple[list[Any], int]:
        storage = await get_storage(get_config())
        groups = await collate_queue(storage)
        return groups, await storage.count_pending_requests()

    groups, pending = run_async(_queue())
    if json_output:
        output_result({"pending": pending, "groups": [g.to_dict() for g in groups]}, as_json=True)
        return

    from offline_sync.cli.tui import render_queue

    render_queue(groups, pending)


@app.command()
def peek() -> None:
    """Print the next queued request as JSON.

    Examples:
        osync peek
    """

    async def _peek() -> dict[str, Any] | None:
        storage = await get_storage(get_config())
        request = await storage.peek_next_request()
        return request.to_dict() if request else None

    result = run_async(_peek())
    if result is None:
        typer.secho("Queue is empty.", fg=typer.colors.GREEN)
        return
    output_result(result, as_json=True)


@app.command()
def push() -> None:
    """Run one publish pass over the queue.

    Examples:
        osync push
    """
    config = get_config()

    async def _push() -> bool:
        storage = await get_storage(config)
        engine = get_engine(config, storage)
        try:
            return await engine.push_changes()
        finally:
            await engine.stop()

    if run_async(_push()):
        output_result({"message": "Published queued changes"})
    else:
        typer.secho("Nothing published", fg=typer.colors.YELLOW)


@app.command()
def sync() -> None:
    """Push queued changes if online.

    Examples:
        osync sync
    """
    config = get_config()

    async def _sync() -> tuple[bool, int]:
        storage = await get_storage(config)
        engine = get_engine(config, storage)
        try:
            published = await engine.sync()
        finally:
            await engine.stop()
        return published, await storage.count_pending_requests()

    published, pending = run_async(_sync())
    if published:
        output_result({"message": "Sync complete", "details": f"{pending} still queued"})
    else:
        typer.secho(f"Nothing published ({pending} queued)", fg=typer.colors.YELLOW)


@app.command()
def run(
    interval_ms: Annotated[
        Optional[int],
        typer.Option("--interval-ms", "-i", min=1, help="Background sync interval"),
    ] = None,
    duration: Annotated[
        float,
        typer.Option("--duration", min=0.0, help="Stop after N seconds (0 runs until Ctrl+C)"),
    ] = 0.0,
) -> None:
    """Run the sync engine until interrupted.

    Periodic sync follows ``[sync] background_enabled`` unless
    ``--interval-ms`` is given. Without it, queued changes are still pushed
    whenever connectivity returns.

    Examples:
        osync run
        osync run --interval-ms 1000
    """
    config = get_config()

    async def _run() -> None:
        storage = await get_storage(config)
        engine = get_engine(config, storage)
        engine.start()
        if interval_ms is not None:
            engine.set_background_sync(True, interval_ms)
        try:
            if duration > 0:
                await asyncio.sleep(duration)
            else:
                await asyncio.Event().wait()
        finally:
            await engine.stop()

    if interval_ms is not None or config.sync.background_enabled:
        interval = interval_ms or config.sync.background_interval_ms
        typer.echo(f"Background sync every {interval}ms (Ctrl+C to stop)")
    else:
        typer.echo("Background sync disabled, pushing on reconnect (Ctrl+C to stop)")
    try:
        run_async(_run())
    except KeyboardInterrupt:
        typer.echo("Stopped")


@app.command()
def version() -> None:
    """Show version information."""
    from offline_sync import __version__

    typer.echo(f"offline-sync v{__version__}")


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
