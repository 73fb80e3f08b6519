"""Tests for the docker CLI runtime and the local command runner."""

import sys

import pytest

from dockwarden.connector.docker_runtime import ContainerRuntime, DockerCLIRuntime
from dockwarden.connector.local import CommandResult, CommandRunner


class _ScriptedRunner:
    """Returns canned results keyed by the docker sub-command."""

    def __init__(self, running="true", action_exit=0):
        self.running = running
        self.action_exit = action_exit
        self.calls = []

    def run(self, argv, timeout=None):
        self.calls.append(list(argv))
        if argv[1] == "inspect":
            if self.running is None:
                return CommandResult(" ".join(argv), "", "No such object", 1)
            return CommandResult(" ".join(argv), f"{self.running}\n", "", 0)
        return CommandResult(" ".join(argv), "", "boom" if self.action_exit else "", self.action_exit)


def test_running_container_is_restarted():
    runner = _ScriptedRunner(running="true")
    DockerCLIRuntime(runner).restart_or_start("web")
    assert runner.calls[-1] == ["docker", "restart", "web"]


def test_stopped_container_is_started():
    runner = _ScriptedRunner(running="false")
    DockerCLIRuntime(runner, binary="podman").restart_or_start("web")
    assert runner.calls[-1] == ["podman", "start", "web"]


def test_failed_action_raises():
    runner = _ScriptedRunner(action_exit=1)
    with pytest.raises(RuntimeError, match="boom"):
        DockerCLIRuntime(runner).restart_or_start("web")


def test_is_running_missing_container():
    assert DockerCLIRuntime(_ScriptedRunner(running=None)).is_running("ghost") is False


def test_satisfies_protocol():
    assert isinstance(DockerCLIRuntime(_ScriptedRunner()), ContainerRuntime)


class TestCommandRunner:
    def test_runs_argument_list(self):
        result = CommandRunner().run([sys.executable, "-c", "print('hi')"])
        assert result.success
        assert result.stdout.strip() == "hi"

    def test_nonzero_exit(self):
        result = CommandRunner().run([sys.executable, "-c", "import sys; sys.exit(3)"])
        assert result.success is False
        assert result.exit_code == 3

    def test_missing_binary(self):
        result = CommandRunner().run("definitely-not-a-real-binary --version")
        assert result.success is False
        assert result.exit_code == 255
        assert "Execution Error" in result.stderr

    def test_read_file(self, tmp_path):
        path = tmp_path / "daemon.json"
        path.write_text("{}", encoding="utf-8")
        runner = CommandRunner()
        assert runner.read_file(str(path)) == "{}"
        assert runner.read_file(str(tmp_path / "missing.json")) is None
