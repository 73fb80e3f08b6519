"""Container lifecycle collaborator used by the fix engine."""

import logging
from typing import Protocol, runtime_checkable

from dockwarden.connector.local import CommandRunner

logger = logging.getLogger(__name__)


@runtime_checkable
class ContainerRuntime(Protocol):
    """Restart and inspect containers by name."""

    def restart_or_start(self, name: str) -> None:
        """Restart a running container or start a stopped one.

        Raises:
            RuntimeError: If the engine rejected the request.
        """
        ...

    def is_running(self, name: str) -> bool:
        ...


class DockerCLIRuntime:
    """ContainerRuntime backed by the ``docker`` command line client."""

    def __init__(self, runner: CommandRunner | None = None, binary: str = "docker") -> None:
        self.runner = runner or CommandRunner()
        self.binary = binary

    def is_running(self, name: str) -> bool:
        result = self.runner.run([self.binary, "inspect", "-f", "{{.State.Running}}", name])
        if not result.success:
            logger.debug("inspect %s failed: %s", name, result.stderr.strip())
            return False
        return result.stdout.strip().lower() == "true"

    def restart_or_start(self, name: str) -> None:
        action = "restart" if self.is_running(name) else "start"
        logger.info("Container %s: docker %s", name, action)
        result = self.runner.run([self.binary, action, name])
        if not result.success:
            raise RuntimeError(
                f"docker {action} {name} failed: {result.stderr.strip() or result.exit_code}"
            )
