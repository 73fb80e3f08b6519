"""Network rules - What each container exposes and how traffic reaches it."""

from dockwarden.analyzer.service_identifier import fix_recommendation, risk_description
from dockwarden.checks.base import RuleContext, register_rule
from dockwarden.model.finding import Finding, FixKind, FixPayload, Severity


DEFAULT_BRIDGE = "bridge"

_CATEGORY_SEVERITY = {
    "database": Severity.CRITICAL,
    "management": Severity.CRITICAL,
    "api": Severity.HIGH,
}

UFW_BYPASS_COMMANDS = (
    "# Stop the container engine",
    "sudo systemctl stop docker",
    "",
    "# Option 1: stop the engine from managing iptables",
    "sudo sh -c 'echo \"{\\\"iptables\\\": false}\" > /etc/docker/daemon.json'",
    "sudo systemctl start docker",
    "",
    "# Option 2: filter published ports through the DOCKER-USER chain",
    "sudo iptables -I DOCKER-USER -j RETURN",
    "sudo iptables -I DOCKER-USER -i eth0 ! -s 192.168.0.0/16 -j DROP",
    "",
    "sudo ufw reload",
)


@register_rule("host_network", order=50)
def check_host_network(ctx: RuleContext) -> list[Finding]:
    """Containers sharing the host network stack."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        if container.network_mode != "host":
            continue
        findings.append(Finding(
            severity=Severity.HIGH,
            category="host_network",
            title=f"Host networking mode: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" uses host networking mode, sharing the host\'s '
                "network stack directly. This removes network isolation between container and host."
            ),
            risk=(
                "With host networking, the container can bind to any host port, intercept traffic, "
                "and reach every network service on the host."
            ),
            fix=ctx.config_fix(
                container.name,
                "Use bridge networking with explicit port mappings",
                "Container will use bridge networking. Update port mappings to expose only "
                "necessary ports.",
            ),
        ))
    return findings


@register_rule("exposed_ports", order=60)
def check_exposed_ports(ctx: RuleContext) -> list[Finding]:
    """Ports published on all interfaces, rated by the service behind them."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        for port in container.ports:
            if not port.is_public:
                continue
            service = ctx.identifier.identify(container, port.container_port)
            severity = _CATEGORY_SEVERITY.get(service.category, Severity.MEDIUM)

            if service.category == "database":
                emphasis = " Databases should NEVER be directly exposed."
            elif service.category == "management":
                emphasis = " Management interfaces are prime targets for attackers."
            else:
                emphasis = ""

            if service.category in ("database", "management"):
                side_effects = (
                    "Service will only be accessible from localhost. Use SSH tunneling (ssh -L) "
                    "or VPN for remote access."
                )
            else:
                side_effects = (
                    "Service will no longer be accessible from the public internet. Configure a "
                    "reverse proxy if internet access is needed."
                )

            findings.append(Finding(
                severity=severity,
                category="exposed_ports",
                title=f"{service.service_name} exposed on all interfaces: {container.name}",
                container=container.name,
                description=(
                    f'Container "{container.name}" is running {service.service_name} and has port '
                    f"{port.host_port} bound to {port.host_ip} (all network interfaces). The "
                    "service is reachable from any network, including the internet if no "
                    f"firewall is in place.{emphasis}"
                ),
                risk=risk_description(service),
                fix=ctx.config_fix(
                    container.name,
                    fix_recommendation(service, port.host_ip),
                    side_effects,
                    commands=(
                        "# Bind to localhost only",
                        "# ports:",
                        f'#   - "127.0.0.1:{port.host_port}:{port.container_port}"',
                    ),
                ),
            ))
    return findings


@register_rule("default_network", order=90)
def check_default_network(ctx: RuleContext) -> list[Finding]:
    """Containers attached only to the default bridge."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        if container.network_mode not in ("bridge", "default", ""):
            continue
        if list(container.networks) != [DEFAULT_BRIDGE]:
            continue
        findings.append(Finding(
            severity=Severity.LOW,
            category="default_network",
            title=f"Using default bridge network: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" uses the default bridge network, which lacks '
                "automatic DNS resolution and isolates unrelated containers poorly."
            ),
            risk=(
                "Containers on the default bridge must use IP addresses or legacy links to talk "
                "to each other, and every container on it can reach every other one."
            ),
            fix=ctx.config_fix(
                container.name,
                "Create and use a custom bridge network",
                "Container will join a custom network. Update other containers that need to "
                "communicate with it.",
            ),
        ))
    return findings


@register_rule("firewall", order=110)
def check_firewall_bypass(ctx: RuleContext) -> list[Finding]:
    """Engine forwarding rules bypassing an active host firewall."""
    status = ctx.snapshot.firewall
    if status is None or not status.bypassed:
        return []

    exposed = [
        f"{c.name}: {p.host_ip}:{p.host_port}/{p.protocol}"
        for c in ctx.snapshot.containers
        for p in c.ports
        if p.host_port is not None and p.host_ip
    ]
    ports_list = ", ".join(exposed) if exposed else "No ports currently exposed"

    return [Finding(
        severity=Severity.CRITICAL,
        category="firewall",
        title="Container engine is bypassing UFW firewall rules",
        container=None,
        description=(
            "The container engine manages iptables directly, so its forwarding rules take "
            "precedence over the active UFW configuration. Published container ports are "
            "reachable regardless of UFW rules."
        ),
        risk=(
            "The host firewall is not protecting containers. Any published port is reachable "
            f"from the network despite UFW rules blocking it. Exposed ports: {ports_list}"
        ),
        fix=FixPayload(
            kind=FixKind.MANUAL,
            description="Configure the engine to respect UFW using the DOCKER-USER chain",
            commands=UFW_BYPASS_COMMANDS,
            side_effects=(
                "Option 1: container networking may be affected. Option 2: more complex but "
                "preserves container networking. Test thoroughly after applying."
            ),
            requires_restart=True,
        ),
    )]
