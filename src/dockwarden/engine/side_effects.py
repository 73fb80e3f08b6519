"""Side-effect notes for a proposed config replacement.

Both versions are parsed as compose YAML and the affected service entry is
compared field by field. Only structural changes produce notes; otherwise
the fix payload's own side-effects text is used.
"""

import logging
from typing import Any

import yaml

from dockwarden.checks.targets import find_service_key
from dockwarden.model.finding import Finding

logger = logging.getLogger(__name__)

NO_SIDE_EFFECTS = "No significant side effects detected"
UNPARSEABLE = "Unable to parse configuration files for side effect analysis"

_LIST_FIELDS = (
    ("ports", "Port mappings will change - may affect external access"),
    ("volumes", "Volume mounts will change - ensure data is backed up"),
    ("networks", "Network configuration will change - may affect connectivity"),
)


def _service_entry(document: Any, container: str | None) -> dict[str, Any]:
    if not isinstance(document, dict) or not container:
        return {}
    services = document.get("services")
    key = find_service_key(services, container)
    if key is None:
        return {}
    entry = services[key]
    return entry if isinstance(entry, dict) else {}


def structural_changes(before: dict[str, Any], after: dict[str, Any]) -> list[str]:
    """Notes for every security-relevant field that differs."""
    notes: list[str] = []
    for field_name, note in _LIST_FIELDS:
        if (before.get(field_name) or []) != (after.get(field_name) or []):
            notes.append(note)

    if before.get("privileged") and not after.get("privileged"):
        notes.append("Privileged mode will be disabled - container may lose access to host resources")

    if before.get("user") != after.get("user"):
        notes.append("Container user will change - may affect file permissions and access")

    return notes


def describe_side_effects(original: str, proposed: str, finding: Finding) -> str:
    """Human-readable side effects of replacing ``original`` with ``proposed``."""
    try:
        before_doc = yaml.safe_load(original)
        after_doc = yaml.safe_load(proposed)
    except (yaml.YAMLError, ValueError) as e:
        logger.debug("Side effect analysis skipped: %s", e)
        return UNPARSEABLE

    container = finding.container or finding.fix.restart_target
    notes = structural_changes(
        _service_entry(before_doc, container),
        _service_entry(after_doc, container),
    )
    text = "; ".join(notes) if notes else (finding.fix.side_effects or NO_SIDE_EFFECTS)

    restart_target = finding.fix.restart_target or finding.container
    if finding.fix.requires_restart and restart_target:
        text = f"{text}; Container '{restart_target}' will be restarted"
    return text
