"""Tests for the click commands.

Verifies:
1. audit saves a run file that later commands can fix from.
2. extract recovers a review, or falls back to rule findings.
3. preview shows a diff without touching the file.
4. apply --yes writes the fix and keeps a backup.
"""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dockwarden.cli import main
from dockwarden.engine.context import AuditRun
from dockwarden.model.snapshot import Snapshot

SNAPSHOT_YAML = """\
containers:
  - name: acme-db-1
    image: postgres:14
    status: running
    user: "999"
    privileged: true
    ports:
      - containerPort: 5432
        hostPort: 5432
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        f"backup_dir: {tmp_path / 'backups'}\nrestart_wait_seconds: 0\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def snapshot_file(tmp_path):
    path = tmp_path / "snapshot.yaml"
    path.write_text(SNAPSHOT_YAML, encoding="utf-8")
    return path


def test_audit_saves_run(tmp_path, config_file, snapshot_file):
    run_file = tmp_path / "run.json"

    result = CliRunner().invoke(
        main, ["--config", str(config_file), "audit", str(snapshot_file), "--save", str(run_file)]
    )

    assert result.exit_code == 0, result.output
    categories = {f.category for f in AuditRun.load(run_file).findings}
    assert {"privileged_mode", "exposed_ports"} <= categories


def test_audit_json(config_file, snapshot_file):
    result = CliRunner().invoke(main, ["--config", str(config_file), "audit", str(snapshot_file), "--format", "json"])

    assert result.exit_code == 0, result.output
    assert "privileged_mode" in result.output


def test_audit_bad_snapshot(tmp_path, config_file):
    bad = tmp_path / "bad.yaml"
    bad.write_text("- not\n- a mapping\n", encoding="utf-8")

    result = CliRunner().invoke(main, ["--config", str(config_file), "audit", str(bad)])

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_extract_review(tmp_path, config_file):
    response = tmp_path / "response.txt"
    response.write_text(
        'Here is the audit:\n```json\n{"overallScore": 91, "findings": [], "goodPractices": []}\n```\n',
        encoding="utf-8",
    )

    result = CliRunner().invoke(main, ["--config", str(config_file), "extract", str(response), "--format", "json"])

    assert result.exit_code == 0, result.output
    assert '"overall_score": 91' in result.output
    assert '"degraded": false' in result.output


def test_extract_degrades_to_rule_findings(tmp_path, config_file, snapshot_file):
    response = tmp_path / "response.txt"
    response.write_text("Sorry, I ran out of tokens before {", encoding="utf-8")

    result = CliRunner().invoke(
        main,
        ["--config", str(config_file), "extract", str(response), "--snapshot", str(snapshot_file), "--format", "json"],
    )

    assert result.exit_code == 0, result.output
    assert '"degraded": true' in result.output
    assert "privileged_mode" in result.output


def _saved_run(tmp_path, finding):
    run = AuditRun(snapshot=Snapshot())
    run.register([finding])
    return run.save(tmp_path / "run.json")


def test_preview_does_not_write(tmp_path, config_file, make_fix_finding, sample_compose, fixed_compose):
    target = tmp_path / "docker-compose.yml"
    target.write_text(sample_compose, encoding="utf-8")
    finding = make_fix_finding(target, fixed_compose)
    run_file = _saved_run(tmp_path, finding)

    result = CliRunner().invoke(main, ["--config", str(config_file), "preview", str(run_file), finding.id])

    assert result.exit_code == 0, result.output
    assert "127.0.0.1:5432:5432" in result.output
    assert target.read_text(encoding="utf-8") == sample_compose


def test_preview_unknown_finding(tmp_path, config_file, make_fix_finding, fixed_compose):
    run_file = _saved_run(tmp_path, make_fix_finding(tmp_path / "x.yml", fixed_compose))

    result = CliRunner().invoke(main, ["--config", str(config_file), "preview", str(run_file), "nope"])

    assert result.exit_code == 1
    assert "not found" in result.output


def test_apply_yes(tmp_path, config_file, make_fix_finding, sample_compose, fixed_compose):
    target = tmp_path / "docker-compose.yml"
    target.write_text(sample_compose, encoding="utf-8")
    finding = make_fix_finding(target, fixed_compose)
    run_file = _saved_run(tmp_path, finding)

    with patch("dockwarden.engine.fix_engine.DockerCLIRuntime") as MockRuntime:
        MockRuntime.return_value.is_running.return_value = True
        result = CliRunner().invoke(
            main, ["--config", str(config_file), "apply", str(run_file), finding.id, "--yes"]
        )

    assert result.exit_code == 0, result.output
    MockRuntime.return_value.restart_or_start.assert_called_once_with("acme-db-1")
    assert target.read_text(encoding="utf-8") == fixed_compose
    assert len(list((tmp_path / "backups").iterdir())) == 1


def test_apply_declined(tmp_path, config_file, make_fix_finding, sample_compose, fixed_compose):
    target = tmp_path / "docker-compose.yml"
    target.write_text(sample_compose, encoding="utf-8")
    finding = make_fix_finding(target, fixed_compose)
    run_file = _saved_run(tmp_path, finding)

    result = CliRunner().invoke(
        main, ["--config", str(config_file), "apply", str(run_file), finding.id], input="n\n"
    )

    assert result.exit_code == 0, result.output
    assert "Aborted" in result.output
    assert target.read_text(encoding="utf-8") == sample_compose


def test_synthesize_to_file(tmp_path, config_file, snapshot_file):
    output = tmp_path / "out" / "docker-compose.yml"

    result = CliRunner().invoke(
        main, ["--config", str(config_file), "synthesize", str(snapshot_file), "acme-db-1", "-o", str(output)]
    )

    assert result.exit_code == 0, result.output
    assert "container_name: acme-db-1" in output.read_text(encoding="utf-8")
