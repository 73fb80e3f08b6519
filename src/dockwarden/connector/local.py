"""Local command runner - Executes lifecycle and probe commands on this host.

Commands run without a shell. Failures to launch (missing binary, timeout)
come back as a failed CommandResult rather than an exception, so probes can
degrade to "not detected".
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a command execution."""

    command: str
    stdout: str
    stderr: str
    exit_code: int
    success: bool = field(init=False)

    def __post_init__(self) -> None:
        self.success = self.exit_code == 0


class CommandRunner:
    """Runs commands on the local host.

    Example:
        >>> runner = CommandRunner(timeout=10)
        >>> result = runner.run("docker version --format {{.Server.Version}}")
        >>> print(result.stdout)
    """

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = timeout

    def run(self, command: str | list[str], timeout: float | None = None) -> CommandResult:
        """Execute a command.

        Args:
            command: Argument list, or a string split with shell quoting rules.
            timeout: Seconds before the command is killed. Defaults to the runner's.

        Returns:
            CommandResult with stdout, stderr, and exit_code.
        """
        argv = shlex.split(command) if isinstance(command, str) else list(command)
        display = command if isinstance(command, str) else shlex.join(argv)
        cmd_timeout = timeout if timeout is not None else self.timeout

        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=cmd_timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug("Command %r could not run: %s", display, e)
            return CommandResult(command=display, stdout="", stderr=f"Execution Error: {e}", exit_code=255)

        return CommandResult(
            command=display,
            stdout=completed.stdout,
            stderr=completed.stderr,
            exit_code=completed.returncode,
        )

    def read_file(self, path: str) -> str | None:
        """Read a local file, or None if it is missing or unreadable."""
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError:
            return None
