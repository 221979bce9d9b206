"""Unified configuration for offline-sync.

Configuration is stored in ~/.offlinesync/config.toml
The durable store lives in ~/.offlinesync/<db_name> (SQLite)
"""

from __future__ import annotations

import ipaddress
import logging
import os
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from offline_sync.sync.connectivity import (
    DEFAULT_PROBE_HOST,
    DEFAULT_PROBE_PORT,
    Probe,
    always_offline,
    make_route_probe,
)
from offline_sync.sync.sync_engine import SyncSettings

logger = logging.getLogger(__name__)

# Database file name: alphanumeric, hyphens, underscores, dots (no path separators)
_DB_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_\-\.]+$")

# Quotes, backslashes and control characters would break the hand-written TOML
_UNSAFE_STRING_PATTERN = re.compile(r'["\\\x00-\x1f\x7f]')

STORAGE_BACKENDS = ("sqlite", "memory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_offlinesync_dir() -> Path:
    """Get offline-sync data directory.

    Priority:
    1. OFFLINESYNC_DIR environment variable
    2. ~/.offlinesync/
    """
    env_dir = os.environ.get("OFFLINESYNC_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".offlinesync"


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


def _is_ip_literal(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _toml_bool(value: bool) -> str:
    return "true" if value else "false"


def _safe_string(value: str, name: str) -> str:
    if _UNSAFE_STRING_PATTERN.search(value):
        raise ValueError(f"Invalid {name} for config save")
    return value


@dataclass(frozen=True)
class StorageConfig:
    """Which storage backend to use and where it keeps its data."""

    backend: str = "sqlite"
    db_name: str = "sync.db"

    def to_dict(self) -> dict[str, Any]:
        return {"backend": self.backend, "db_name": self.db_name}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StorageConfig:
        backend = str(data.get("backend", "sqlite")).lower()
        if backend not in STORAGE_BACKENDS:
            logger.warning("Unknown storage backend %r, using sqlite", backend)
            backend = "sqlite"
        db_name = str(data.get("db_name", "sync.db"))
        if not _DB_NAME_PATTERN.match(db_name):
            logger.warning("Invalid db_name %r, using sync.db", db_name)
            db_name = "sync.db"
        return cls(backend=backend, db_name=db_name)


@dataclass(frozen=True)
class SyncConfig:
    """Engine timing and background sync."""

    debounce_ms: int = 200
    tick_interval_ms: int = 200
    background_enabled: bool = False
    background_interval_ms: int = 5000

    def to_dict(self) -> dict[str, Any]:
        return {
            "debounce_ms": self.debounce_ms,
            "tick_interval_ms": self.tick_interval_ms,
            "background_enabled": self.background_enabled,
            "background_interval_ms": self.background_interval_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncConfig:
        debounce = data.get("debounce_ms", 200)
        try:
            debounce_ms = max(0, int(debounce))
        except (TypeError, ValueError):
            debounce_ms = 200
        return cls(
            debounce_ms=debounce_ms,
            tick_interval_ms=_positive_int(data.get("tick_interval_ms"), 200),
            background_enabled=bool(data.get("background_enabled", False)),
            background_interval_ms=_positive_int(data.get("background_interval_ms"), 5000),
        )

    def to_engine_settings(self) -> SyncSettings:
        return SyncSettings(
            debounce_ms=self.debounce_ms,
            tick_interval_ms=self.tick_interval_ms,
            background_interval_ms=self.background_interval_ms,
            background_enabled=self.background_enabled,
        )


@dataclass(frozen=True)
class RemoteConfig:
    """Remote service that queued requests are replayed against."""

    base_url: str = ""
    timeout: float = 30.0

    def to_dict(self) -> dict[str, Any]:
        return {"base_url": self.base_url, "timeout": self.timeout}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteConfig:
        try:
            timeout = float(data.get("timeout", 30.0))
        except (TypeError, ValueError):
            timeout = 30.0
        if timeout <= 0:
            timeout = 30.0
        return cls(base_url=str(data.get("base_url", "")), timeout=timeout)


@dataclass(frozen=True)
class ConnectivityConfig:
    """Local reachability probe."""

    probe_host: str = DEFAULT_PROBE_HOST
    probe_port: int = DEFAULT_PROBE_PORT
    force_offline: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "probe_host": self.probe_host,
            "probe_port": self.probe_port,
            "force_offline": self.force_offline,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConnectivityConfig:
        host = str(data.get("probe_host", DEFAULT_PROBE_HOST))
        if not _is_ip_literal(host):
            logger.warning(
                "probe_host %r is not an IP address, using %s", host, DEFAULT_PROBE_HOST
            )
            host = DEFAULT_PROBE_HOST
        port = _positive_int(data.get("probe_port"), DEFAULT_PROBE_PORT)
        if port > 65535:
            port = DEFAULT_PROBE_PORT
        return cls(
            probe_host=host,
            probe_port=port,
            force_offline=bool(data.get("force_offline", False)),
        )

    def build_probe(self) -> Probe:
        """Probe for the connectivity monitor; forced offline mode never probes."""
        if self.force_offline:
            return always_offline
        return make_route_probe(self.probe_host, self.probe_port)


@dataclass
class UnifiedConfig:
    """Unified configuration for offline-sync.

    Shared by the ``osync`` CLI and embedding applications.

    Storage location: ~/.offlinesync/config.toml
    """

    # Base directory for all offline-sync data
    data_dir: Path = field(default_factory=get_offlinesync_dir)

    storage: StorageConfig = field(default_factory=StorageConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    connectivity: ConnectivityConfig = field(default_factory=ConnectivityConfig)

    log_level: str = "WARNING"

    # Metadata
    version: str = "1.0"

    @classmethod
    def load(cls, config_path: Path | None = None) -> UnifiedConfig:
        """Load configuration from file, or create default if doesn't exist."""
        if config_path is None:
            data_dir = get_offlinesync_dir()
            config_path = data_dir / "config.toml"
        else:
            data_dir = config_path.parent

        if not config_path.exists():
            config = cls(data_dir=data_dir)
            config.save()
            logger.info("Created default config at %s", config_path)
            return config

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        log_level = str(data.get("log_level", "WARNING")).upper()
        if log_level not in LOG_LEVELS:
            log_level = "WARNING"

        return cls(
            data_dir=data_dir,
            storage=StorageConfig.from_dict(data.get("storage", {})),
            sync=SyncConfig.from_dict(data.get("sync", {})),
            remote=RemoteConfig.from_dict(data.get("remote", {})),
            connectivity=ConnectivityConfig.from_dict(data.get("connectivity", {})),
            log_level=log_level,
            version=str(data.get("version", "1.0")),
        )

    def save(self) -> None:
        """Save configuration to TOML file (atomic write via temp+rename)."""
        import tempfile

        self.data_dir.mkdir(parents=True, exist_ok=True)
        config_path = self.config_path

        # Validate strings before writing to prevent TOML injection
        if not _DB_NAME_PATTERN.match(self.storage.db_name):
            raise ValueError("Invalid db_name for config save")
        if not _is_ip_literal(self.connectivity.probe_host):
            raise ValueError("probe_host must be an IP address")
        base_url = _safe_string(self.remote.base_url, "base_url")
        log_level = _safe_string(self.log_level, "log_level")

        # Build TOML content manually (no toml write dependency)
        lines = [
            "# offline-sync configuration",
            "",
            f'version = "{_safe_string(self.version, "version")}"',
            f'log_level = "{log_level}"',
            "",
            "# Durable store",
            "[storage]",
            f'backend = "{self.storage.backend}"',
            f'db_name = "{self.storage.db_name}"',
            "",
            "# Sync engine timing (milliseconds)",
            "[sync]",
            f"debounce_ms = {self.sync.debounce_ms}",
            f"tick_interval_ms = {self.sync.tick_interval_ms}",
            f"background_enabled = {_toml_bool(self.sync.background_enabled)}",
            f"background_interval_ms = {self.sync.background_interval_ms}",
            "",
            "# Remote service",
            "[remote]",
            f'base_url = "{base_url}"',
            f"timeout = {float(self.remote.timeout)}",
            "",
            "# Connectivity probe",
            "[connectivity]",
            f'probe_host = "{self.connectivity.probe_host}"',
            f"probe_port = {self.connectivity.probe_port}",
            f"force_offline = {_toml_bool(self.connectivity.force_offline)}",
        ]

        # Atomic write: write to temp file, then rename
        content = "\n".join(lines) + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), suffix=".toml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(config_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    @property
    def config_path(self) -> Path:
        """Get path to config file."""
        return self.data_dir / "config.toml"

    @property
    def db_path(self) -> Path:
        """Get path to the SQLite database."""
        return self.data_dir / self.storage.db_name

    @property
    def effective_log_level(self) -> str:
        """Configured log level, overridden by OFFLINESYNC_LOG_LEVEL when valid."""
        env_level = os.environ.get("OFFLINESYNC_LOG_LEVEL", "").upper()
        if env_level in LOG_LEVELS:
            return env_level
        return self.log_level

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_dir": str(self.data_dir),
            "version": self.version,
            "log_level": self.log_level,
            "storage": self.storage.to_dict(),
            "sync": self.sync.to_dict(),
            "remote": self.remote.to_dict(),
            "connectivity": self.connectivity.to_dict(),
        }


# Singleton instance for easy access
_config: UnifiedConfig | None = None


def get_config(reload: bool = False) -> UnifiedConfig:
    """Get the unified configuration (singleton).

    Args:
        reload: Force reload from disk

    Returns:
        UnifiedConfig instance
    """
    global _config
    if _config is None or reload:
        _config = UnifiedConfig.load()
    return _config


def reset_config() -> None:
    """Forget the cached configuration."""
    global _config
    _config = None
