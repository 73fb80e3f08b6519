"""Model package - Core data structures for dockwarden."""

from dockwarden.model.finding import (
    Finding,
    FindingSource,
    FixKind,
    FixPayload,
    Severity,
    new_finding_id,
)
from dockwarden.model.results import (
    AuditResult,
    DiffLine,
    DiffPreview,
    DiffTag,
    FixResult,
    Practice,
    Recommendation,
    replay_diff,
)
from dockwarden.model.snapshot import (
    ConfigFile,
    Container,
    FirewallStatus,
    Healthcheck,
    Mount,
    NetworkInfo,
    PortMapping,
    Snapshot,
    VolumeInfo,
    load_snapshot,
)

__all__ = [
    "AuditResult",
    "ConfigFile",
    "Container",
    "DiffLine",
    "DiffPreview",
    "DiffTag",
    "Finding",
    "FindingSource",
    "FirewallStatus",
    "FixKind",
    "FixPayload",
    "FixResult",
    "Healthcheck",
    "Mount",
    "NetworkInfo",
    "PortMapping",
    "Practice",
    "Recommendation",
    "Severity",
    "Snapshot",
    "VolumeInfo",
    "load_snapshot",
    "new_finding_id",
    "replay_diff",
]
