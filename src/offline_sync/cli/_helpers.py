"""Shared CLI helpers for configuration, storage, engine and output formatting."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from typing import Any, TypeVar

import typer

from offline_sync.errors import OfflineSyncError
from offline_sync.storage.base import SyncStorage
from offline_sync.storage.factory import create_storage
from offline_sync.sync.connectivity import ConnectivityMonitor
from offline_sync.sync.sync_engine import SyncEngine
from offline_sync.sync.transport import HttpTransport
from offline_sync.unified_config import UnifiedConfig
from offline_sync.unified_config import get_config as _get_unified_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Resources created during a CLI command, closed before the event loop shuts
# down so aiosqlite's worker thread and aiohttp's connector exit cleanly.
_active_storages: list[SyncStorage] = []
_active_transports: list[HttpTransport] = []


def get_config() -> UnifiedConfig:
    """Get the unified configuration."""
    return _get_unified_config()


def configure_logging(config: UnifiedConfig, verbose: bool = False) -> None:
    """Send log records to stderr at the configured level."""
    level = logging.DEBUG if verbose else getattr(logging, config.effective_log_level)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async CLI command with resource cleanup.

    ``OfflineSyncError`` is reported in red and exits with status 1.
    """

    async def _with_cleanup() -> T:
        try:
            return await coro
        finally:
            for transport in _active_transports:
                try:
                    await transport.close()
                except Exception:
                    logger.debug("Failed to close transport during cleanup", exc_info=True)
            _active_transports.clear()
            for storage in _active_storages:
                try:
                    await storage.close()
                except Exception:
                    logger.debug("Failed to close storage during cleanup", exc_info=True)
            _active_storages.clear()
            # Drain callbacks from aiosqlite worker threads before the loop closes
            await asyncio.sleep(0)

    try:
        return asyncio.run(_with_cleanup())
    except OfflineSyncError as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1) from e


async def get_storage(config: UnifiedConfig) -> SyncStorage:
    """Open the configured store; it is closed when the command finishes."""
    storage = await create_storage(config)
    _active_storages.append(storage)
    return storage


def get_monitor(config: UnifiedConfig) -> ConnectivityMonitor:
    return ConnectivityMonitor(config.connectivity.build_probe())


def get_engine(config: UnifiedConfig, storage: SyncStorage) -> SyncEngine:
    """Build an engine around the configured transport and probe.

    Background sync starts with the engine when ``[sync] background_enabled``
    is set.
    """
    transport = HttpTransport(config.remote.base_url, timeout=config.remote.timeout)
    _active_transports.append(transport)
    return SyncEngine(
        storage,
        transport,
        monitor=get_monitor(config),
        settings=config.sync.to_engine_settings(),
    )


def parse_json_argument(value: str, name: str) -> Any:
    """Decode a JSON command-line value or fail with a usage error."""
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"{name} is not valid JSON: {e.msg}") from e


def output_result(data: dict[str, Any], as_json: bool = False) -> None:
    """Output result in appropriate format."""
    if as_json:
        typer.echo(json.dumps(data, indent=2, default=str))
        return

    if "error" in data:
        typer.secho(f"Error: {data['error']}", fg=typer.colors.RED)
    elif "message" in data:
        typer.secho(data["message"], fg=typer.colors.GREEN)
        if data.get("details"):
            typer.secho(f"  [{data['details']}]", fg=typer.colors.BRIGHT_BLACK)
    else:
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                value = json.dumps(value, default=str)
            typer.echo(f"{key}: {value}")
