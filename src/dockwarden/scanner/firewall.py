"""Firewall Probe - Detects whether the container engine bypasses UFW.

The engine inserts its own forwarding rules ahead of UFW's, so published
ports stay reachable even when UFW denies them. The bypass holds when UFW
is active, the engine's DOCKER chain exists, and the daemon has not been told
to leave iptables alone.
"""

import json
import logging

from dockwarden.connector.local import CommandRunner
from dockwarden.model.snapshot import FirewallStatus

logger = logging.getLogger(__name__)

DAEMON_CONFIG = "/etc/docker/daemon.json"


class FirewallProbe:
    """Probe for the host firewall and the engine's iptables handling.

    Checks in order:
    1. which ufw
    2. ufw status
    3. daemon.json "iptables" setting
    4. iptables -L -n for a DOCKER chain
    """

    def __init__(self, runner: CommandRunner, daemon_config: str = DAEMON_CONFIG) -> None:
        self.runner = runner
        self.daemon_config = daemon_config

    def probe(self) -> FirewallStatus:
        """Collect the firewall status; command failures read as "not detected"."""
        if not self.runner.run("which ufw", timeout=2).success:
            return FirewallStatus(installed=False, active=False)

        res = self.runner.run("ufw status", timeout=3)
        active = res.success and "status: active" in res.stdout.lower()
        if not active:
            return FirewallStatus(installed=True, active=False)

        status = FirewallStatus(
            installed=True,
            active=True,
            engine_chain_present=self._docker_chain_exists(),
            engine_defers_to_firewall=self._daemon_disables_iptables(),
        )
        if status.bypassed:
            logger.info("Container engine is bypassing UFW")
        return status

    def _daemon_disables_iptables(self) -> bool:
        raw = self.runner.read_file(self.daemon_config)
        if not raw:
            return False
        try:
            config = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Could not parse %s", self.daemon_config)
            return False
        return isinstance(config, dict) and config.get("iptables") is False

    def _docker_chain_exists(self) -> bool:
        res = self.runner.run("iptables -L -n", timeout=3)
        return res.success and "Chain DOCKER" in res.stdout
