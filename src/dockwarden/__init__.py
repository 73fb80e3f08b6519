"""dockwarden - Container infrastructure security auditor."""

__version__ = "0.4.0"
