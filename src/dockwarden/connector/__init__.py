"""Host access: local commands and the container lifecycle collaborator."""

from dockwarden.connector.docker_runtime import ContainerRuntime, DockerCLIRuntime
from dockwarden.connector.local import CommandResult, CommandRunner

__all__ = ["CommandResult", "CommandRunner", "ContainerRuntime", "DockerCLIRuntime"]
