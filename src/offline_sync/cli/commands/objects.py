"""CLI commands for the local object store."""

from __future__ import annotations

from typing import Annotated, Any, Optional

import typer

from offline_sync.cli._helpers import (
    get_config,
    get_storage,
    output_result,
    parse_json_argument,
    run_async,
)
from offline_sync.core.stored_object import ObjectOrigin, StoredObject

object_app = typer.Typer(help="Local object store")


@object_app.command("put")
def put_cmd(
    object_id: Annotated[str, typer.Argument(help="Object id")],
    object_type: Annotated[str, typer.Argument(help="Object type")],
    payload: Annotated[str, typer.Argument(help="Payload as JSON")],
    origin: Annotated[
        ObjectOrigin, typer.Option("--origin", help="Where the value came from")
    ] = ObjectOrigin.CLIENT,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
) -> None:
    """Store an object, replacing any previous value.

    Examples:
        osync object put todo-1 todo '{"title": "milk"}'
        osync object put user-7 user '{"name": "Ada"}' --origin api
    """
    value = parse_json_argument(payload, "payload")

    async def _put() -> dict[str, Any]:
        storage = await get_storage(get_config())
        stored = await storage.put_object(
            StoredObject(id=object_id, type=object_type, payload=value, origin=origin)
        )
        return stored.to_dict()

    result = run_async(_put())
    if json_output:
        output_result(result, as_json=True)
    else:
        output_result({"message": f"Stored {object_id}", "details": f"type: {object_type}"})


@object_app.command("get")
def get_cmd(
    object_id: Annotated[str, typer.Argument(help="Object id")],
) -> None:
    """Print an object as JSON.

    Examples:
        osync object get todo-1
    """

    async def _get() -> dict[str, Any] | None:
        storage = await get_storage(get_config())
        obj = await storage.get_object(object_id)
        return obj.to_dict() if obj else None

    result = run_async(_get())
    if result is None:
        typer.secho(f"No object with id {object_id}", fg=typer.colors.YELLOW)
        raise typer.Exit(1)
    output_result(result, as_json=True)


@object_app.command("list")
def list_cmd(
    object_type: Annotated[
        Optional[str], typer.Option("--type", "-t", help="Only objects of this type")
    ] = None,
) -> None:
    """List stored objects as JSON.

    Examples:
        osync object list
        osync object list --type todo
    """

    async def _list() -> list[dict[str, Any]]:
        storage = await get_storage(get_config())
        return [obj.to_dict() for obj in await storage.find_objects(type=object_type)]

    output_result({"objects": run_async(_list())}, as_json=True)


@object_app.command("rm")
def rm_cmd(
    object_id: Annotated[str, typer.Argument(help="Object id")],
) -> None:
    """Delete an object. Deleting a missing id succeeds.

    Examples:
        osync object rm todo-1
    """

    async def _rm() -> None:
        storage = await get_storage(get_config())
        await storage.remove_object(object_id)

    run_async(_rm())
    output_result({"message": f"Removed {object_id}"})
