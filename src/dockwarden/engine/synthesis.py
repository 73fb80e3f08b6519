"""Compose synthesis from live container data.

Used when a fix targets a config file that does not exist yet: the running
container's configuration is rendered as an equivalent compose document so
the fix has a baseline to diff against.
"""

from typing import Any, Protocol, runtime_checkable

import yaml

from dockwarden.errors import NotFoundError
from dockwarden.model.snapshot import Container, Snapshot

COMPOSE_VERSION = "3.8"

# Entries whose text contains any of these are left out of the rendered file.
_SENSITIVE_ENV_MARKERS = ("PASSWORD", "SECRET", "KEY")


@runtime_checkable
class ConfigSynthesizer(Protocol):
    """Produces replacement-equivalent config content for a container."""

    def synthesize(self, container_name: str) -> str:
        ...


class ComposeSynthesizer:
    """Renders snapshot containers as single-service compose documents."""

    def __init__(self, snapshot: Snapshot) -> None:
        self.snapshot = snapshot

    def synthesize(self, container_name: str) -> str:
        container = self.snapshot.get_container(container_name)
        if container is None:
            raise NotFoundError(f"Container {container_name!r} is not in the snapshot")
        return render_compose(container)


def compose_service(container: Container) -> dict[str, Any]:
    """Build the compose ``services`` entry for one container."""
    service: dict[str, Any] = {
        "image": container.image,
        "container_name": container.name,
    }

    if container.restart_policy and container.restart_policy != "no":
        service["restart"] = container.restart_policy

    ports = [
        f"{p.host_port}:{p.container_port}/{p.protocol}"
        for p in container.ports
        if p.host_port is not None
    ]
    if ports:
        service["ports"] = ports

    if container.mounts:
        service["volumes"] = [
            f"{m.source}:{m.destination}:ro" if m.read_only else f"{m.source}:{m.destination}"
            for m in container.mounts
        ]

    environment = [
        entry for entry in container.env
        if not any(marker in entry for marker in _SENSITIVE_ENV_MARKERS)
    ]
    if environment:
        service["environment"] = environment

    if container.networks:
        service["networks"] = list(container.networks)

    if container.user and container.user != "root":
        service["user"] = container.user

    if container.privileged:
        service["privileged"] = True
    if container.read_only_rootfs:
        service["read_only"] = True
    if container.capabilities:
        service["cap_add"] = list(container.capabilities)

    limits: dict[str, str] = {}
    if container.memory_limit > 0:
        limits["memory"] = f"{container.memory_limit // (1024 * 1024)}M"
    if container.cpu_limit > 0:
        limits["cpus"] = f"{container.cpu_limit / 1e9:g}"
    if limits:
        service["deploy"] = {"resources": {"limits": limits}}

    hc = container.healthcheck
    if hc is not None:
        service["healthcheck"] = {
            "test": list(hc.test),
            "interval": f"{hc.interval}ns",
            "timeout": f"{hc.timeout}ns",
            "retries": hc.retries,
            "start_period": f"{hc.start_period}ns",
        }

    if container.labels:
        service["labels"] = dict(container.labels)

    return service


def render_compose(container: Container) -> str:
    document = {
        "version": COMPOSE_VERSION,
        "services": {container.name: compose_service(container)},
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False, width=10**6)
