"""Result dataclasses - Deep-review output, diff previews and fix outcomes."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dockwarden.model.finding import Finding


@dataclass(frozen=True)
class Practice:
    """Something the infrastructure already does right."""

    id: str
    category: str
    title: str
    description: str
    applies_to: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "category": self.category,
            "title": self.title,
            "description": self.description,
            "applies_to": list(self.applies_to),
        }


@dataclass(frozen=True)
class Recommendation:
    """High-level architectural recommendation."""

    id: str
    title: str
    description: str
    impact: str = ""
    complexity: str = "medium"  # low, medium, high

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "impact": self.impact,
            "complexity": self.complexity,
        }


@dataclass(frozen=True)
class AuditResult:
    """Aggregate of a deep review.

    ``overall_score`` is None when the review could not be completed, and
    ``degraded`` marks results assembled from the rule engine alone.
    """

    overall_score: int | None
    score_explanation: str
    findings: tuple[Finding, ...] = ()
    practices: tuple[Practice, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    audited_at: str = ""
    degraded: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_score": self.overall_score,
            "score_explanation": self.score_explanation,
            "findings": [f.to_dict() for f in self.findings],
            "practices": [p.to_dict() for p in self.practices],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "audited_at": self.audited_at,
            "degraded": self.degraded,
        }


class DiffTag(Enum):
    """Role of a line in a diff preview."""

    HEADER = "header"
    ADDED = "added"
    REMOVED = "removed"
    CONTEXT = "context"


@dataclass(frozen=True)
class DiffLine:
    """One diff line. ``value`` keeps the original line ending."""

    tag: DiffTag
    value: str

    def to_dict(self) -> dict[str, Any]:
        return {"tag": self.tag.value, "value": self.value}


def replay_diff(original: str, diff: list[DiffLine]) -> str:
    """Rebuild the proposed text from the original and its diff lines.

    Removed and context lines are checked against ``original`` so a diff
    computed for a different file is rejected instead of silently replayed.
    """
    body = [line for line in diff if line.tag is not DiffTag.HEADER]
    if not body:
        return original

    expected_original = "".join(
        line.value for line in body if line.tag in (DiffTag.CONTEXT, DiffTag.REMOVED)
    )
    if expected_original != original:
        raise ValueError("Diff does not apply to the given original text")

    return "".join(line.value for line in body if line.tag in (DiffTag.CONTEXT, DiffTag.ADDED))


@dataclass(frozen=True)
class DiffPreview:
    """Before/after comparison for a proposed fix."""

    original: str
    proposed: str
    diff: list[DiffLine]
    side_effects: str
    target_path: str
    synthesized: bool = False

    @property
    def has_changes(self) -> bool:
        return self.original != self.proposed

    def to_dict(self) -> dict[str, Any]:
        return {
            "original": self.original,
            "proposed": self.proposed,
            "diff": [line.to_dict() for line in self.diff],
            "side_effects": self.side_effects,
            "target_path": self.target_path,
            "synthesized": self.synthesized,
        }


@dataclass
class FixResult:
    """Outcome of applying a fix."""

    success: bool
    backup_path: str = ""
    container_restarted: str | None = None
    applied_at: str | None = None
    error: str | None = None
    error_code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "backup_path": self.backup_path,
            "container_restarted": self.container_restarted,
            "applied_at": self.applied_at,
            "error": self.error,
            "error_code": self.error_code,
        }
