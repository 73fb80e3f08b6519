"""Scanner modules for host-level data the snapshot does not carry."""

from dockwarden.scanner.firewall import FirewallProbe

__all__ = ["FirewallProbe"]
