"""Service Identifier - Guesses which service a published port belongs to.

Combines three weak signals into a score per known signature:

- image name pattern: +3
- known port: +2
- environment variable pattern: +1

A signature is accepted at a score of 3, so the image name alone is enough but
a port or env match alone is not. Port numbers are shared by many services and
must never outweigh an explicit image identity.
"""

import re
from dataclasses import dataclass

from dockwarden.model.snapshot import Container


IMAGE_WEIGHT = 3
PORT_WEIGHT = 2
ENV_WEIGHT = 1
ACCEPT_SCORE = 3


@dataclass(frozen=True)
class ServiceSignature:
    """Fingerprint of a known service."""

    name: str
    category: str
    risk_level: str
    should_be_public: bool
    image_patterns: tuple[re.Pattern, ...]
    ports: frozenset[int] = frozenset()
    env_patterns: tuple[re.Pattern, ...] = ()

    def score(self, image: str, port: int, env_text: str) -> int:
        total = 0
        if any(p.search(image) for p in self.image_patterns):
            total += IMAGE_WEIGHT
        if port in self.ports:
            total += PORT_WEIGHT
        if self.env_patterns and any(p.search(env_text) for p in self.env_patterns):
            total += ENV_WEIGHT
        return total


@dataclass(frozen=True)
class ServiceInfo:
    """Classification of one container port."""

    container_name: str
    port: int
    service_name: str
    category: str
    risk_level: str
    should_be_public: bool


def _sig(
    name: str,
    category: str,
    risk_level: str,
    should_be_public: bool,
    images: list[str],
    ports: list[int] | None = None,
    env: list[str] | None = None,
) -> ServiceSignature:
    return ServiceSignature(
        name=name,
        category=category,
        risk_level=risk_level,
        should_be_public=should_be_public,
        image_patterns=tuple(re.compile(p, re.IGNORECASE) for p in images),
        ports=frozenset(ports or ()),
        env_patterns=tuple(re.compile(p, re.IGNORECASE) for p in (env or ())),
    )


# Order matters: the first accepted signature wins.
SERVICE_SIGNATURES: tuple[ServiceSignature, ...] = (
    # Databases
    _sig("PostgreSQL", "database", "critical", False, [r"postgres", r"postgresql"], [5432], [r"POSTGRES_"]),
    _sig("MySQL", "database", "critical", False, [r"mysql"], [3306], [r"MYSQL_"]),
    _sig("MariaDB", "database", "critical", False, [r"mariadb"], [3306], [r"MYSQL_", r"MARIADB_"]),
    _sig("MongoDB", "database", "critical", False, [r"mongo"], [27017], [r"MONGO_"]),
    _sig("Redis", "database", "critical", False, [r"redis"], [6379], [r"REDIS_"]),
    _sig("Elasticsearch", "database", "critical", False, [r"elasticsearch", r"elastic"], [9200, 9300]),
    _sig("InfluxDB", "database", "critical", False, [r"influxdb"], [8086]),
    # Management UIs
    _sig("Portainer", "management", "critical", False, [r"portainer"], [9000, 9443]),
    _sig("phpMyAdmin", "management", "critical", False, [r"phpmyadmin"], [80, 443]),
    _sig("Adminer", "management", "critical", False, [r"adminer"], [8080]),
    _sig("pgAdmin", "management", "critical", False, [r"pgadmin"], [80, 5050]),
    _sig("Grafana", "management", "high", False, [r"grafana"], [3000]),
    # Web servers and reverse proxies
    _sig("Nginx", "web", "medium", True, [r"nginx"], [80, 443]),
    _sig("Apache", "web", "medium", True, [r"apache", r"httpd"], [80, 443]),
    _sig("Caddy", "web", "medium", True, [r"caddy"], [80, 443]),
    _sig("Traefik", "web", "medium", True, [r"traefik"], [80, 443, 8080]),
    # Media servers
    _sig("Plex", "web", "medium", False, [r"plex"], [32400]),
    _sig("Jellyfin", "web", "medium", False, [r"jellyfin"], [8096]),
    _sig("Emby", "web", "medium", False, [r"emby"], [8096]),
    # Home automation (before the generic runtimes: "node-red" also matches "node")
    _sig("Home Assistant", "web", "medium", False, [r"homeassistant", r"home-assistant"], [8123]),
    _sig("Node-RED", "web", "medium", False, [r"nodered", r"node-red"], [1880]),
    # File sharing and downloads
    _sig("Nextcloud", "web", "medium", False, [r"nextcloud"], [80, 443]),
    _sig("qBittorrent", "web", "medium", False, [r"qbittorrent"], [8080]),
    _sig("Transmission", "web", "medium", False, [r"transmission"], [9091]),
    _sig("Sonarr", "web", "medium", False, [r"sonarr"], [8989]),
    _sig("Radarr", "web", "medium", False, [r"radarr"], [7878]),
    # Application runtimes
    _sig("Node.js", "api", "high", False, [r"node"]),
    _sig("Python API", "api", "high", False, [r"python", r"django", r"flask", r"fastapi"]),
    _sig("Go API", "api", "high", False, [r"golang"]),
)


class ServiceIdentifier:
    """Classifies container ports against a signature table.

    Pure and stateless, safe to share between concurrent audits.
    """

    def __init__(self, signatures: tuple[ServiceSignature, ...] = SERVICE_SIGNATURES) -> None:
        self.signatures = signatures

    def identify(self, container: Container, port: int) -> ServiceInfo:
        """Identify the service behind ``port`` of ``container``. Never fails."""
        image = (container.image or "").lower()
        env_text = " ".join(container.env).lower()

        for signature in self.signatures:
            if signature.score(image, port, env_text) >= ACCEPT_SCORE:
                return ServiceInfo(
                    container_name=container.name,
                    port=port,
                    service_name=signature.name,
                    category=signature.category,
                    risk_level=signature.risk_level,
                    should_be_public=signature.should_be_public,
                )

        return ServiceInfo(
            container_name=container.name,
            port=port,
            service_name="Unknown Service",
            category="other",
            risk_level="medium",
            should_be_public=False,
        )


_default_identifier = ServiceIdentifier()


def identify(container: Container, port: int) -> ServiceInfo:
    """Identify a service with the built-in signature table."""
    return _default_identifier.identify(container, port)


def risk_description(service: ServiceInfo) -> str:
    """Category-specific explanation of why exposing the service is risky."""
    if service.category == "database":
        return (
            f"Databases should NEVER be exposed to the internet. Exposing {service.service_name} "
            "allows anyone to attempt connections, scan for vulnerabilities, and potentially "
            "exploit authentication weaknesses or known CVEs."
        )
    if service.category == "management":
        return (
            f"Management interfaces like {service.service_name} are high-value targets for attackers. "
            "If compromised, they provide administrative access to your infrastructure, allowing "
            "full control over containers, data, and configurations."
        )
    if service.category == "api":
        return (
            f"APIs should be behind a reverse proxy with proper authentication. Exposing "
            f"{service.service_name} directly allows attackers to probe endpoints, discover "
            "vulnerabilities, and exploit business logic flaws."
        )
    if service.category == "web":
        if not service.should_be_public:
            return (
                f"{service.service_name} is accessible from the network. Ensure it has proper "
                "authentication and is only accessible to trusted users. Consider using a VPN or "
                "reverse proxy with authentication."
            )
        return (
            f"{service.service_name} is exposed. Ensure it's properly configured with HTTPS, has "
            "strong authentication if needed, and follows security best practices."
        )
    return (
        "This service is exposed to the network. Without knowing the specific application, it's "
        "difficult to assess the full risk. Ensure proper authentication is in place and consider "
        "limiting exposure to trusted networks only."
    )


def fix_recommendation(service: ServiceInfo, current_bind_address: str) -> str:
    """Category-specific remediation text for an exposed port."""
    if service.category in ("database", "management"):
        return (
            f"Change port binding from {current_bind_address} to 127.0.0.1 (localhost only). "
            f"Access {service.service_name} through an SSH tunnel or VPN if remote access is needed."
        )
    if service.category == "api":
        return (
            f"Put {service.service_name} behind a reverse proxy (Nginx, Traefik, Caddy) with "
            f"authentication and change the port binding from {current_bind_address} to 127.0.0.1."
        )
    if service.category == "web" and service.should_be_public:
        return (
            "If this service needs internet access, ensure it's behind a reverse proxy (Nginx, "
            "Traefik, Caddy) with HTTPS and proper authentication. Otherwise, bind to 127.0.0.1 "
            "or a specific LAN IP (e.g., 192.168.1.10)."
        )
    return (
        f"Change port binding from {current_bind_address} to 127.0.0.1 for localhost-only access, "
        "or to a specific LAN IP (e.g., 192.168.1.10) for network access without internet exposure."
    )
