"""Runtime rules - How each container process is confined on the host."""

import re

from dockwarden.checks.base import RuleContext, register_rule
from dockwarden.model.finding import Finding, FixKind, FixPayload, Severity
from dockwarden.checks.targets import resolve_config_path


ROOT_USERS = {"", "root", "0"}

SECRET_KEY_PATTERNS = (
    re.compile(r"PASSWORD", re.IGNORECASE),
    re.compile(r"SECRET", re.IGNORECASE),
    re.compile(r"API[_-]?KEY", re.IGNORECASE),
    re.compile(r"TOKEN", re.IGNORECASE),
    re.compile(r"PRIVATE[_-]?KEY", re.IGNORECASE),
    re.compile(r"CREDENTIAL", re.IGNORECASE),
    re.compile(r"AUTH", re.IGNORECASE),
)


def _dangerous_paths(socket_path: str) -> list[tuple[str, Severity, str]]:
    # (host path, severity, what it exposes)
    return [
        ("/", Severity.CRITICAL, "entire root filesystem"),
        ("/etc", Severity.CRITICAL, "system configuration"),
        (socket_path, Severity.CRITICAL, "container engine socket"),
        ("/proc", Severity.HIGH, "process information"),
        ("/sys", Severity.HIGH, "kernel/system information"),
        ("/boot", Severity.HIGH, "boot files"),
        ("/dev", Severity.HIGH, "device files"),
    ]


def _is_under(source: str, path: str) -> bool:
    if source == path:
        return True
    # Everything is "under /"; only the root itself counts for it.
    if path == "/":
        return False
    return source.startswith(path.rstrip("/") + "/")


@register_rule("root_user", order=10)
def check_root_user(ctx: RuleContext) -> list[Finding]:
    """Containers running as root."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        user = (container.user or "").strip().split(":", 1)[0]
        if user not in ROOT_USERS:
            continue
        findings.append(Finding(
            severity=Severity.HIGH,
            category="root_user",
            title=f"Container running as root: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" is running as root user. Any process that breaks '
                "out of the container would have root privileges on the host."
            ),
            risk=(
                "If an attacker exploits a vulnerability in this container, they would gain "
                "root-level access, potentially allowing them to escape the container and "
                "compromise the host system or other containers."
            ),
            fix=ctx.config_fix(
                container.name,
                "Configure the container to run as a non-root user",
                "Container may fail to start if it requires root privileges for initialization. "
                "Test thoroughly.",
            ),
        ))
    return findings


@register_rule("privileged_mode", order=20)
def check_privileged_mode(ctx: RuleContext) -> list[Finding]:
    """Containers with privileged mode enabled."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        if not container.privileged:
            continue
        findings.append(Finding(
            severity=Severity.CRITICAL,
            category="privileged_mode",
            title=f"Privileged mode enabled: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" is running in privileged mode, granting it full '
                "access to the host system including all devices and kernel capabilities."
            ),
            risk=(
                "This effectively removes all container isolation. An attacker gaining access to "
                "this container can control the entire host system and every other container."
            ),
            fix=ctx.config_fix(
                container.name,
                "Remove privileged flag and grant only specific capabilities needed",
                "Container may lose access to host resources. Identify required capabilities "
                "(e.g., NET_ADMIN, SYS_ADMIN) and grant only those.",
            ),
        ))
    return findings


@register_rule("env_secrets", order=30)
def check_env_secrets(ctx: RuleContext) -> list[Finding]:
    """Secret-looking environment variable names."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        suspicious = [
            key for key in container.env_keys()
            if any(p.search(key) for p in SECRET_KEY_PATTERNS)
        ]
        if not suspicious:
            continue
        findings.append(Finding(
            severity=Severity.HIGH,
            category="env_secrets",
            title=f"Potential secrets in environment: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" has environment variables that may contain '
                f"secrets: {', '.join(suspicious)}. Environment variables are visible in "
                "inspect output, logs, and process listings."
            ),
            risk=(
                "Secrets in environment variables can leak through container inspection, process "
                "listings, error messages, and logs, giving access to sensitive systems or data."
            ),
            fix=FixPayload(
                kind=FixKind.MANUAL,
                description="Use Docker secrets or mounted secret files instead",
                target_path=resolve_config_path(ctx.snapshot, container.name),
                side_effects=(
                    "Application must be updated to read secrets from files instead of "
                    "environment variables. Common paths: /run/secrets/<name>"
                ),
                requires_restart=True,
                restart_target=container.name,
            ),
        ))
    return findings


@register_rule("dangerous_mount", order=40)
def check_dangerous_mounts(ctx: RuleContext) -> list[Finding]:
    """Sensitive host paths mounted into containers."""
    findings: list[Finding] = []
    socket_path = ctx.settings.docker_socket
    for container in ctx.snapshot.containers:
        is_self = ctx.settings.is_self_container(container.name)
        for mount in container.mounts:
            for path, severity, what in _dangerous_paths(socket_path):
                if not _is_under(mount.source, path):
                    continue
                # The auditor needs the socket to inspect everything else.
                if is_self and path == socket_path:
                    continue
                access = " read-only" if mount.read_only else ""
                if path == socket_path:
                    consequence = (
                        "With engine socket access, the container can control the daemon, "
                        "create privileged containers, and fully compromise the host."
                    )
                else:
                    consequence = (
                        "An attacker could use this to escalate privileges, steal data, or "
                        "compromise the host system."
                    )
                exposure = (
                    "exposes sensitive host data" if mount.read_only
                    else "allows the container to modify critical host files"
                )
                findings.append(Finding(
                    severity=severity,
                    category="dangerous_mount",
                    title=f"Dangerous mount in {container.name}: {path}",
                    container=container.name,
                    description=(
                        f'Container "{container.name}" mounts {what} from host '
                        f"({mount.source} -> {mount.destination}). This grants the "
                        f"container{access} access to sensitive host resources."
                    ),
                    risk=f"This mount {exposure}. {consequence}",
                    fix=ctx.config_fix(
                        container.name,
                        f"Remove {path} mount or use a more specific, restricted path",
                        f"Container will lose access to {what}. Ensure this access is not "
                        "required for functionality.",
                    ),
                ))
    return findings


@register_rule("no_resource_limits", order=80)
def check_resource_limits(ctx: RuleContext) -> list[Finding]:
    """Running containers without memory or CPU limits."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        if not container.is_running:
            continue
        missing: list[str] = []
        if container.memory_limit == 0:
            missing.append("memory")
        if container.cpu_limit == 0:
            missing.append("CPU")
        if not missing:
            continue
        findings.append(Finding(
            severity=Severity.MEDIUM,
            category="no_resource_limits",
            title=f"Missing resource limits: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" has no {" or ".join(missing)} limits configured. '
                "It can consume unlimited host resources."
            ),
            risk=(
                "Without resource limits, a buggy or compromised container can consume all "
                f"available {' and '.join(missing)}, causing denial of service for other "
                "containers and the host."
            ),
            fix=ctx.config_fix(
                container.name,
                f"Set appropriate {' and '.join(missing)} limits",
                f"Container will be constrained to specified {' and '.join(missing)} limits. "
                "Monitor resource usage to set appropriate values.",
            ),
        ))
    return findings


@register_rule("no_healthcheck", order=100)
def check_healthcheck(ctx: RuleContext) -> list[Finding]:
    """Running containers without a healthcheck."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        if not container.is_running or container.healthcheck is not None:
            continue
        findings.append(Finding(
            severity=Severity.LOW,
            category="no_healthcheck",
            title=f"Missing healthcheck: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" has no healthcheck configured. The engine cannot '
                "detect whether the service inside is healthy or failing."
            ),
            risk=(
                "A container may appear running while the service inside has crashed or hangs, "
                "leading to silent failures."
            ),
            fix=ctx.config_fix(
                container.name,
                "Add healthcheck configuration",
                "Container will be monitored for health. Orchestrators can restart unhealthy "
                "containers.",
            ),
        ))
    return findings
