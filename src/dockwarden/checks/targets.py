"""Best-effort mapping from a container to the config file that defines it."""

from dockwarden.model.snapshot import Snapshot


def resolve_config_path(snapshot: Snapshot, container_name: str) -> str | None:
    """Find the config file whose service list matches ``container_name``.

    Compose names containers ``<project>_<service>_1`` or
    ``<project>-<service>-1``, so exact and suffix matches are tried across
    all files before falling back to a plain substring match.

    Returns:
        The config file path, or None when nothing matches.
    """
    if not container_name:
        return None

    for config_file in snapshot.config_files:
        for service in config_file.services:
            if not service:
                continue
            if (
                container_name == service
                or container_name.endswith(f"_{service}_1")
                or container_name.endswith(f"-{service}-1")
            ):
                return config_file.path

    for config_file in snapshot.config_files:
        for service in config_file.services:
            if service and service in container_name:
                return config_file.path

    return None


def find_service_key(services: dict, container_name: str) -> str | None:
    """Pick the entry of a parsed ``services:`` mapping describing the container.

    Matches an explicit ``container_name`` first, then the same name
    heuristics as ``resolve_config_path``.
    """
    if not isinstance(services, dict) or not container_name:
        return None

    for key, body in services.items():
        if isinstance(body, dict) and body.get("container_name") == container_name:
            return key

    for key in services:
        name = str(key)
        if (
            container_name == name
            or container_name.endswith(f"_{name}_1")
            or container_name.endswith(f"-{name}-1")
        ):
            return key

    for key in services:
        if str(key) and str(key) in container_name:
            return key

    return None
