"""Configuration management for dockwarden.

Settings live in a YAML file (``~/.dockwarden/config.yaml`` by default, or the
path in ``DOCKWARDEN_CONFIG``). A few environment variables override single
values so containerized deployments need no config file at all.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


def default_config_dir() -> Path:
    """Default config location (~/.dockwarden)."""
    return Path.home() / ".dockwarden"


@dataclass(frozen=True)
class Settings:
    """Engine settings.

    Attributes:
        backup_dir: Where pre-fix backups are written.
        generated_dir: Where synthesized configs go when a finding has no target.
        restart_wait_seconds: Pause between restarting a container and verifying it.
        docker_socket: Engine socket path, flagged when mounted into containers.
        self_container_names: Name fragments of the auditor's own container.
        docker_binary: CLI used for container lifecycle operations.
        command_timeout: Timeout for lifecycle commands, in seconds.
    """

    backup_dir: Path = default_config_dir() / "backups"
    generated_dir: Path = default_config_dir() / "generated"
    restart_wait_seconds: float = 2.0
    docker_socket: str = "/var/run/docker.sock"
    self_container_names: tuple[str, ...] = ("dockwarden",)
    docker_binary: str = "docker"
    command_timeout: float = 30.0

    def is_self_container(self, container_name: str) -> bool:
        """True if the container is the auditor itself."""
        lowered = container_name.lower()
        return any(fragment.lower() in lowered for fragment in self.self_container_names if fragment)


def load_settings(path: str | Path | None = None) -> Settings:
    """Load settings from YAML, then apply environment overrides.

    A missing or unreadable file yields defaults; bad values are logged and
    ignored rather than aborting the audit.
    """
    if path is None:
        env_config = os.getenv("DOCKWARDEN_CONFIG")
        path = Path(env_config).expanduser() if env_config else default_config_dir() / "config.yaml"

    settings = Settings()
    config_file = Path(path).expanduser()
    if config_file.exists():
        try:
            raw = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable config %s: %s", config_file, e)
            raw = {}
        if isinstance(raw, dict):
            settings = _merge(settings, raw)
        else:
            logger.warning("Ignoring config %s: top level is not a mapping", config_file)

    return _apply_env(settings)


def _merge(settings: Settings, raw: dict[str, Any]) -> Settings:
    known = {f.name for f in fields(Settings)}
    updates: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in known:
            logger.debug("Unknown config key %r ignored", key)
            continue
        try:
            updates[key] = _coerce(key, value)
        except (TypeError, ValueError) as e:
            logger.warning("Invalid value for %s: %s", key, e)
    return replace(settings, **updates)


def _coerce(key: str, value: Any) -> Any:
    if key in ("backup_dir", "generated_dir"):
        return Path(str(value)).expanduser()
    if key in ("restart_wait_seconds", "command_timeout"):
        number = float(value)
        if number < 0:
            raise ValueError("must not be negative")
        return number
    if key == "self_container_names":
        if isinstance(value, str):
            return (value,)
        return tuple(str(v) for v in value)
    return str(value)


def _apply_env(settings: Settings) -> Settings:
    updates: dict[str, Any] = {}
    backup_dir = os.getenv("DOCKWARDEN_BACKUP_DIR")
    if backup_dir:
        updates["backup_dir"] = Path(backup_dir).expanduser()
    restart_wait = os.getenv("DOCKWARDEN_RESTART_WAIT")
    if restart_wait:
        try:
            updates["restart_wait_seconds"] = _coerce("restart_wait_seconds", restart_wait)
        except ValueError:
            logger.warning("Ignoring DOCKWARDEN_RESTART_WAIT=%r", restart_wait)
    docker_socket = os.getenv("DOCKER_SOCKET")
    if docker_socket:
        updates["docker_socket"] = docker_socket
    return replace(settings, **updates) if updates else settings
