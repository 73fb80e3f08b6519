"""Snapshot dataclasses - Read-only view of a host's container infrastructure.

The snapshot is built once by the inspection layer (or loaded from a file)
and handed to the rule engine. Nothing downstream mutates it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml


PUBLIC_BIND_ADDRESSES = ("0.0.0.0", "::")


@dataclass(frozen=True)
class PortMapping:
    """Container port and its host binding."""

    container_port: int
    host_port: int | None = None
    protocol: str = "tcp"
    host_ip: str = "0.0.0.0"

    @property
    def is_public(self) -> bool:
        """Published on every interface."""
        return self.host_port is not None and self.host_ip in PUBLIC_BIND_ADDRESSES


@dataclass(frozen=True)
class Mount:
    """Bind mount, named volume or tmpfs attached to a container."""

    source: str
    destination: str
    type: str = "bind"
    read_only: bool = False


@dataclass(frozen=True)
class Healthcheck:
    """Healthcheck definition (durations in nanoseconds, as reported by the engine)."""

    test: tuple[str, ...] = ()
    interval: int = 0
    timeout: int = 0
    retries: int = 0
    start_period: int = 0


@dataclass(frozen=True)
class Container:
    """A single container as seen at snapshot time."""

    name: str
    image: str
    state: str = "running"
    id: str = ""
    user: str = ""
    privileged: bool = False
    read_only_rootfs: bool = False
    capabilities: tuple[str, ...] = ()
    env: tuple[str, ...] = ()
    ports: tuple[PortMapping, ...] = ()
    mounts: tuple[Mount, ...] = ()
    memory_limit: int = 0  # bytes, 0 = unlimited
    cpu_limit: int = 0  # nano-CPUs, 0 = unlimited
    healthcheck: Healthcheck | None = None
    restart_policy: str = "no"
    network_mode: str = "bridge"
    networks: tuple[str, ...] = ()
    labels: tuple[tuple[str, str], ...] = ()

    @property
    def is_running(self) -> bool:
        return self.state == "running"

    def env_keys(self) -> list[str]:
        """Variable names from KEY=VALUE entries."""
        return [entry.split("=", 1)[0] for entry in self.env if entry]


@dataclass(frozen=True)
class NetworkInfo:
    """Container network."""

    name: str
    driver: str = "bridge"
    id: str = ""
    scope: str = "local"
    internal: bool = False
    enable_ipv6: bool = False
    containers: tuple[str, ...] = ()


@dataclass(frozen=True)
class VolumeInfo:
    """Named volume."""

    name: str
    driver: str = "local"
    mount_point: str = ""
    scope: str = "local"
    used_by: tuple[str, ...] = ()


@dataclass(frozen=True)
class ConfigFile:
    """Discovered configuration file (e.g. a compose file) and its service names."""

    path: str
    services: tuple[str, ...] = ()
    content: str = ""


@dataclass(frozen=True)
class FirewallStatus:
    """Host firewall posture relative to the container engine.

    Attributes:
        installed: Host firewall tooling (ufw) is present.
        active: Host firewall is enabled.
        engine_chain_present: The engine maintains its own forwarding chain.
        engine_defers_to_firewall: The engine is configured not to manage
            packet filtering itself ("iptables": false).
    """

    installed: bool = False
    active: bool = False
    engine_chain_present: bool = False
    engine_defers_to_firewall: bool = False

    @property
    def bypassed(self) -> bool:
        """Published ports skip the host firewall."""
        return (
            self.installed
            and self.active
            and self.engine_chain_present
            and not self.engine_defers_to_firewall
        )


@dataclass(frozen=True)
class Snapshot:
    """Complete infrastructure snapshot - the input of one audit run."""

    containers: tuple[Container, ...] = ()
    networks: tuple[NetworkInfo, ...] = ()
    volumes: tuple[VolumeInfo, ...] = ()
    config_files: tuple[ConfigFile, ...] = ()
    firewall: FirewallStatus | None = None
    engine_version: str = "unknown"
    os: str = "unknown"
    collected_at: str = ""

    def get_container(self, name: str) -> Container | None:
        """Find a container by name (leading slash tolerated)."""
        wanted = name.lstrip("/")
        for container in self.containers:
            if container.name == wanted:
                return container
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Snapshot":
        """Build a snapshot from collector output.

        Accepts the collector's camelCase keys as well as snake_case.
        """
        firewall_raw = _get(data, "firewall")
        return cls(
            containers=tuple(_container(c) for c in _get(data, "containers", default=[]) or []),
            networks=tuple(_network(n) for n in _get(data, "networks", default=[]) or []),
            volumes=tuple(_volume(v) for v in _get(data, "volumes", default=[]) or []),
            config_files=tuple(
                _config_file(f)
                for f in _get(data, "composeFiles", "config_files", "configFiles", default=[]) or []
            ),
            firewall=_firewall(firewall_raw) if isinstance(firewall_raw, dict) else None,
            engine_version=str(_get(data, "dockerVersion", "engine_version", default="unknown")),
            os=str(_get(data, "os", default="unknown")),
            collected_at=str(_get(data, "collectedAt", "collected_at", default="")),
        )


def load_snapshot(path: str | Path) -> Snapshot:
    """Load a snapshot from a JSON or YAML file."""
    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Snapshot file {path} is not valid JSON or YAML: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"Snapshot file {path} does not contain a mapping")
    return Snapshot.from_dict(raw)


def _get(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _container(data: dict[str, Any]) -> Container:
    health = _get(data, "healthcheck")
    return Container(
        id=str(_get(data, "id", default="")),
        name=str(_get(data, "name", default="")).lstrip("/"),
        image=str(_get(data, "image", default="")),
        state=str(_get(data, "status", "state", default="unknown")),
        user=str(_get(data, "user", default="")),
        privileged=bool(_get(data, "privileged", default=False)),
        read_only_rootfs=bool(_get(data, "readOnlyRootfs", "read_only_rootfs", default=False)),
        capabilities=tuple(_get(data, "capabilities", default=[])),
        env=tuple(_get(data, "env", default=[])),
        ports=tuple(
            PortMapping(
                container_port=int(_get(p, "containerPort", "container_port", default=0)),
                host_port=_optional_int(_get(p, "hostPort", "host_port")),
                protocol=str(_get(p, "protocol", "proto", default="tcp")),
                host_ip=str(_get(p, "hostIp", "host_ip", default="0.0.0.0")),
            )
            for p in _get(data, "ports", default=[])
        ),
        mounts=tuple(
            Mount(
                source=str(_get(m, "source", default="")),
                destination=str(_get(m, "destination", default="")),
                type=str(_get(m, "type", default="bind")),
                read_only=bool(_get(m, "readOnly", "read_only", default=False)),
            )
            for m in _get(data, "mounts", default=[])
        ),
        memory_limit=int(_get(data, "memoryLimit", "memory_limit", default=0)),
        cpu_limit=int(_get(data, "cpuLimit", "cpu_limit", default=0)),
        healthcheck=Healthcheck(
            test=tuple(_get(health, "test", default=[])),
            interval=int(_get(health, "interval", default=0)),
            timeout=int(_get(health, "timeout", default=0)),
            retries=int(_get(health, "retries", default=0)),
            start_period=int(_get(health, "startPeriod", "start_period", default=0)),
        ) if isinstance(health, dict) else None,
        restart_policy=str(_get(data, "restartPolicy", "restart_policy", default="no")),
        network_mode=str(_get(data, "networkMode", "network_mode", default="bridge")),
        networks=tuple(_get(data, "networks", default=[])),
        labels=tuple(
            (str(key), str(value)) for key, value in dict(_get(data, "labels", default={})).items()
        ),
    )


def _network(data: dict[str, Any]) -> NetworkInfo:
    return NetworkInfo(
        name=str(_get(data, "name", default="")),
        driver=str(_get(data, "driver", default="bridge")),
        id=str(_get(data, "id", default="")),
        scope=str(_get(data, "scope", default="local")),
        internal=bool(_get(data, "internal", default=False)),
        enable_ipv6=bool(_get(data, "enableIPv6", "enable_ipv6", default=False)),
        containers=tuple(_get(data, "containers", default=[])),
    )


def _volume(data: dict[str, Any]) -> VolumeInfo:
    return VolumeInfo(
        name=str(_get(data, "name", default="")),
        driver=str(_get(data, "driver", default="local")),
        mount_point=str(_get(data, "mountPoint", "mount_point", default="")),
        scope=str(_get(data, "scope", default="local")),
        used_by=tuple(_get(data, "usedBy", "used_by", default=[])),
    )


def _config_file(data: dict[str, Any]) -> ConfigFile:
    return ConfigFile(
        path=str(_get(data, "path", default="")),
        services=tuple(_get(data, "services", default=[])),
        content=str(_get(data, "content", default="")),
    )


def _firewall(data: dict[str, Any]) -> FirewallStatus:
    return FirewallStatus(
        installed=bool(_get(data, "installed", "ufwInstalled", default=False)),
        active=bool(_get(data, "active", "ufwEnabled", default=False)),
        engine_chain_present=bool(
            _get(data, "engine_chain_present", "dockerChainExists", default=False)
        ),
        engine_defers_to_firewall=bool(
            _get(data, "engine_defers_to_firewall", "dockerRespectsIptables", default=False)
        ),
    )


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
