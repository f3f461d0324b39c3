"""Configuration loading for notesync."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml


@dataclass
class StorageConfig:
    """Where local data lives."""

    root: str = "~/.note-app"
    notes_name: str = "notes.json"
    snapshot_name: str = "server.json"


@dataclass
class RemoteConfig:
    """The sync server. An empty URL syncs against the local snapshot blob."""

    url: str = "http://localhost:8080"
    timeout_seconds: float = 5.0

    @property
    def is_local(self) -> bool:
        return not self.url


@dataclass
class SyncConfig:
    enabled: bool = True
    refresh_interval_ms: int = 1000
    settle_delay_ms: int = 300


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass
class Config:
    storage: StorageConfig = field(default_factory=StorageConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with NOTESYNC_ prefix."""
    return os.environ.get(f"NOTESYNC_{key}", default)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    if root := _get_env("STORAGE_ROOT"):
        config.storage.root = root

    # An explicitly empty URL selects the local blob remote
    url = _get_env("REMOTE_URL")
    if url is not None:
        config.remote.url = url
    if timeout := _get_env("REMOTE_TIMEOUT"):
        config.remote.timeout_seconds = float(timeout)

    if sync_enabled := _get_env("SYNC_ENABLED"):
        config.sync.enabled = sync_enabled.lower() in ("true", "1", "yes")
    if interval := _get_env("SYNC_INTERVAL_MS"):
        config.sync.refresh_interval_ms = int(interval)
    if settle := _get_env("SYNC_SETTLE_MS"):
        config.sync.settle_delay_ms = int(settle)

    if host := _get_env("SERVER_HOST"):
        config.server.host = host
    if port := _get_env("SERVER_PORT"):
        config.server.port = int(port)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None or missing, defaults
            are used.

    Returns:
        Loaded Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            if "storage" in data:
                storage_data = data["storage"]
                config.storage = StorageConfig(
                    root=storage_data.get("root", config.storage.root),
                    notes_name=storage_data.get("notes_name", config.storage.notes_name),
                    snapshot_name=storage_data.get(
                        "snapshot_name", config.storage.snapshot_name
                    ),
                )

            if "remote" in data:
                remote_data = data["remote"]
                config.remote = RemoteConfig(
                    url=remote_data.get("url", config.remote.url) or "",
                    timeout_seconds=remote_data.get(
                        "timeout_seconds", config.remote.timeout_seconds
                    ),
                )

            if "sync" in data:
                sync_data = data["sync"]
                config.sync = SyncConfig(
                    enabled=sync_data.get("enabled", config.sync.enabled),
                    refresh_interval_ms=sync_data.get(
                        "refresh_interval_ms", config.sync.refresh_interval_ms
                    ),
                    settle_delay_ms=sync_data.get(
                        "settle_delay_ms", config.sync.settle_delay_ms
                    ),
                )

            if "server" in data:
                server_data = data["server"]
                config.server = ServerConfig(
                    host=server_data.get("host", config.server.host),
                    port=server_data.get("port", config.server.port),
                )

    return _apply_env_overrides(config)
