"""Finding dataclass - One identified security issue with its remediation."""

import secrets
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dockwarden.errors import ValidationError


class Severity(Enum):
    """Severity levels for findings."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class FindingSource(Enum):
    """Where a finding came from."""

    RULE_ENGINE = "rule_engine"
    MODEL = "model"


class FixKind(Enum):
    """Closed set of remediation kinds.

    Only CONFIG_REPLACE can be applied automatically. The other kinds are
    advisory and must be carried out by a human.
    """

    CONFIG_REPLACE = "config_replace"
    HOST_COMMAND = "host_command"
    MANUAL = "manual"

    @classmethod
    def parse(cls, value: "str | FixKind") -> "FixKind":
        """Parse a kind, accepting the legacy names emitted by older prompts."""
        if isinstance(value, FixKind):
            return value
        normalized = str(value).strip().lower()
        normalized = _LEGACY_KINDS.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            raise ValidationError(f"Unsupported fix kind: {value!r}") from None


_LEGACY_KINDS = {
    "compose_replace": "config_replace",
    "docker_command": "host_command",
}


def new_finding_id() -> str:
    """Fresh opaque finding id (never reused across runs)."""
    return secrets.token_hex(8)


@dataclass(frozen=True)
class FixPayload:
    """Remediation instructions attached to a finding.

    Attributes:
        kind: What kind of remediation this is.
        description: Human-readable summary of the fix.
        target_path: File to replace (config_replace only). None means the
            target could not be resolved and the fix cannot be auto-applied.
        new_content: Complete replacement file content, never a patch.
        commands: Ordered shell commands or snippets. Advisory only.
        side_effects: What the user should expect after applying.
        requires_restart: Container must be restarted for the fix to take effect.
        restart_target: Container to restart, defaults to the finding's container.
    """

    kind: FixKind
    description: str = ""
    target_path: str | None = None
    new_content: str | None = None
    commands: tuple[str, ...] = ()
    side_effects: str = ""
    requires_restart: bool = False
    restart_target: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "description": self.description,
            "target_path": self.target_path,
            "new_content": self.new_content,
            "commands": list(self.commands),
            "side_effects": self.side_effects,
            "requires_restart": self.requires_restart,
            "restart_target": self.restart_target,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FixPayload":
        return cls(
            kind=FixKind.parse(data.get("kind") or data.get("type") or "manual"),
            description=str(data.get("description") or ""),
            target_path=data.get("target_path") or data.get("composePath"),
            new_content=data.get("new_content", data.get("newFileContent")),
            commands=tuple(data.get("commands") or ()),
            side_effects=str(data.get("side_effects") or data.get("sideEffects") or ""),
            requires_restart=bool(data.get("requires_restart", data.get("requiresRestart", False))),
            restart_target=data.get("restart_target"),
        )


@dataclass(frozen=True)
class Finding:
    """A security finding.

    Findings are created per audit run and never mutated afterwards. The id is
    unique within a run and consumers key caches by it.
    """

    severity: Severity
    category: str
    title: str
    description: str
    risk: str
    fix: FixPayload
    container: str | None = None
    source: FindingSource = FindingSource.RULE_ENGINE
    id: str = field(default_factory=new_finding_id)

    @property
    def is_infrastructure_wide(self) -> bool:
        return self.container is None

    @property
    def auto_fixable(self) -> bool:
        """Payload is complete enough for the fix engine to apply."""
        return (
            self.fix.kind is FixKind.CONFIG_REPLACE
            and self.fix.target_path is not None
            and self.fix.new_content is not None
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "category": self.category,
            "title": self.title,
            "container": self.container,
            "description": self.description,
            "risk": self.risk,
            "fix": self.fix.to_dict(),
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Finding":
        """Rebuild a finding previously produced by ``to_dict``."""
        return cls(
            id=str(data.get("id") or new_finding_id()),
            severity=Severity(str(data.get("severity", "medium")).lower()),
            category=str(data.get("category", "")),
            title=str(data.get("title", "")),
            container=data.get("container"),
            description=str(data.get("description", "")),
            risk=str(data.get("risk", "")),
            fix=FixPayload.from_dict(data.get("fix") or {}),
            source=FindingSource(data.get("source", FindingSource.RULE_ENGINE.value)),
        )
