"""Pytest configuration and fixtures for dockwarden tests."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from dockwarden.config import Settings
from dockwarden.model.finding import Finding, FixKind, FixPayload, Severity
from dockwarden.model.snapshot import ConfigFile, Container, Healthcheck, Mount, PortMapping, Snapshot


def hardened(**overrides) -> Container:
    """A container no rule objects to; tests switch on one problem at a time."""
    base = Container(
        name="billing",
        image="acme/billing:1.4.2",
        state="running",
        user="1000:1000",
        memory_limit=512 * 1024 * 1024,
        cpu_limit=1_000_000_000,
        healthcheck=Healthcheck(test=("CMD", "true"), interval=30_000_000_000, retries=3),
        network_mode="acme_default",
        networks=("acme_default",),
    )
    return replace(base, **overrides)


@pytest.fixture
def make_container():
    return hardened


@pytest.fixture
def settings(tmp_path):
    """Settings writing backups under the test's tmp dir, with no restart wait."""
    return Settings(
        backup_dir=tmp_path / "backups",
        generated_dir=tmp_path / "generated",
        restart_wait_seconds=0.0,
    )


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 5, 1, 12, 30, 15, 123456, tzinfo=timezone.utc)


@pytest.fixture
def sample_compose():
    return (
        'version: "3.8"\n'
        "services:\n"
        "  db:\n"
        "    image: postgres:14\n"
        "    container_name: acme-db-1\n"
        "    privileged: true\n"
        "    ports:\n"
        '      - "0.0.0.0:5432:5432"\n'
        "    volumes:\n"
        "      - pgdata:/var/lib/postgresql/data\n"
        "volumes:\n"
        "  pgdata: {}\n"
    )


@pytest.fixture
def fixed_compose():
    return (
        'version: "3.8"\n'
        "services:\n"
        "  db:\n"
        "    image: postgres:14\n"
        "    container_name: acme-db-1\n"
        "    ports:\n"
        '      - "127.0.0.1:5432:5432"\n'
        "    volumes:\n"
        "      - pgdata:/var/lib/postgresql/data\n"
        "volumes:\n"
        "  pgdata: {}\n"
    )


@pytest.fixture
def db_snapshot(tmp_path, sample_compose):
    compose_path = tmp_path / "stack" / "docker-compose.yml"
    return Snapshot(
        containers=(
            hardened(
                name="acme-db-1",
                image="postgres:14",
                privileged=True,
                ports=(PortMapping(container_port=5432, host_port=5432),),
                mounts=(Mount(source="pgdata", destination="/var/lib/postgresql/data", type="volume"),),
            ),
        ),
        config_files=(ConfigFile(path=str(compose_path), services=("db",), content=sample_compose),),
    )


@pytest.fixture
def make_fix_finding():
    """Build a config_replace finding pointing at ``target``."""

    def _make(target, new_content, container="acme-db-1", requires_restart=True, **fix_overrides):
        fix = FixPayload(
            kind=FixKind.CONFIG_REPLACE,
            description="Bind PostgreSQL to localhost",
            target_path=str(target) if target is not None else None,
            new_content=new_content,
            side_effects="Database only reachable locally",
            requires_restart=requires_restart,
            restart_target=container if requires_restart else None,
        )
        if fix_overrides:
            fix = replace(fix, **fix_overrides)
        return Finding(
            severity=Severity.CRITICAL,
            category="exposed_ports",
            title="PostgreSQL exposed on all interfaces",
            description="Port 5432 bound to 0.0.0.0",
            risk="Anyone can connect",
            fix=fix,
            container=container,
        )

    return _make
