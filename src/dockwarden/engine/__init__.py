"""Remediation engine: previews, safe apply, config synthesis and run context."""

from dockwarden.engine.context import AuditRun
from dockwarden.engine.diffing import compute_diff
from dockwarden.engine.fix_engine import FixEngine, atomic_write, backup_name
from dockwarden.engine.side_effects import describe_side_effects
from dockwarden.engine.synthesis import ComposeSynthesizer, ConfigSynthesizer, render_compose

__all__ = [
    "AuditRun",
    "ComposeSynthesizer",
    "ConfigSynthesizer",
    "FixEngine",
    "atomic_write",
    "backup_name",
    "compute_diff",
    "describe_side_effects",
    "render_compose",
]
