"""Tests for the per-run finding registry."""

import pytest

from dockwarden.engine.context import AuditRun
from dockwarden.errors import NotFoundError
from dockwarden.model.snapshot import Snapshot


def test_register_and_get(make_fix_finding, fixed_compose):
    finding = make_fix_finding("/srv/docker-compose.yml", fixed_compose)
    run = AuditRun(snapshot=Snapshot())

    run.register([finding])

    assert run.get(finding.id) is finding
    assert finding.id in run
    assert len(run) == 1


def test_duplicate_id_rejected(make_fix_finding, fixed_compose):
    finding = make_fix_finding("/srv/docker-compose.yml", fixed_compose)
    run = AuditRun(snapshot=Snapshot())
    run.register([finding])

    with pytest.raises(ValueError, match="Duplicate"):
        run.register([finding])


def test_unknown_id():
    with pytest.raises(NotFoundError):
        AuditRun(snapshot=Snapshot()).get("missing")


def test_runs_are_independent(make_fix_finding, fixed_compose):
    first = AuditRun(snapshot=Snapshot())
    second = AuditRun(snapshot=Snapshot())
    finding = make_fix_finding("/srv/docker-compose.yml", fixed_compose)

    first.register([finding])

    assert finding.id not in second
    assert first.run_id != second.run_id


def test_save_and_load(tmp_path, make_fix_finding, fixed_compose):
    findings = [
        make_fix_finding("/srv/docker-compose.yml", fixed_compose),
        make_fix_finding(None, None, container=None, requires_restart=False, commands=("ufw reload",)),
    ]
    run = AuditRun(snapshot=Snapshot())
    run.register(findings)

    path = run.save(tmp_path / "runs" / "last.json")
    loaded = AuditRun.load(path)

    assert loaded.run_id == run.run_id
    assert loaded.findings == findings
