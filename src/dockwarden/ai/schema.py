"""Pydantic schemas for the deep-review JSON document.

The model answers in camelCase; entries are validated one at a time so a
single malformed finding does not throw away the rest of the review.
"""

import logging
import math
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from dockwarden.errors import ValidationError as FixValidationError
from dockwarden.model.finding import Finding, FindingSource, FixKind, FixPayload, Severity
from dockwarden.model.results import Practice, Recommendation

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("overallScore", "findings", "goodPractices")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # Explicit nulls fall back to the field defaults.
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class FixSchema(_CamelModel):
    """Remediation block of a model finding."""

    kind: FixKind = Field(FixKind.MANUAL, alias="type")
    description: str = ""
    target_path: Optional[str] = Field(None, alias="composePath")
    new_content: Optional[str] = Field(None, alias="newFileContent")
    commands: Optional[list[str]] = None
    side_effects: str = Field("", alias="sideEffects")
    requires_restart: bool = Field(False, alias="requiresRestart")

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> FixKind:
        try:
            return FixKind.parse(value or FixKind.MANUAL)
        except FixValidationError as e:
            raise ValueError(str(e)) from None

    def to_payload(self, container: str | None) -> FixPayload:
        return FixPayload(
            kind=self.kind,
            description=self.description,
            target_path=self.target_path,
            new_content=self.new_content,
            commands=tuple(self.commands or ()),
            side_effects=self.side_effects,
            requires_restart=self.requires_restart,
            restart_target=container if self.requires_restart else None,
        )


class FindingSchema(_CamelModel):
    severity: Severity
    category: str = ""
    title: str
    container: Optional[str] = None
    description: str = ""
    risk: str = ""
    fix: FixSchema = Field(default_factory=FixSchema)

    @field_validator("severity", mode="before")
    @classmethod
    def _lower_severity(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    def to_finding(self, finding_id: str) -> Finding:
        """Build a domain finding; ids from the model are never trusted."""
        return Finding(
            id=finding_id,
            severity=self.severity,
            category=self.category,
            title=self.title,
            container=self.container or None,
            description=self.description,
            risk=self.risk,
            fix=self.fix.to_payload(self.container or None),
            source=FindingSource.MODEL,
        )


class PracticeSchema(_CamelModel):
    id: Optional[str] = None
    category: str = ""
    title: str
    description: str = ""
    applies_to: list[str] = Field(default_factory=list, alias="appliesTo")

    def to_practice(self, fallback_id: str) -> Practice:
        return Practice(
            id=self.id or fallback_id,
            category=self.category,
            title=self.title,
            description=self.description,
            applies_to=tuple(self.applies_to),
        )


class RecommendationSchema(_CamelModel):
    id: Optional[str] = None
    title: str
    description: str = ""
    impact: str = ""
    complexity: str = "medium"

    def to_recommendation(self, fallback_id: str) -> Recommendation:
        return Recommendation(
            id=self.id or fallback_id,
            title=self.title,
            description=self.description,
            impact=self.impact,
            complexity=self.complexity,
        )


class AuditDocumentSchema(_CamelModel):
    """Top-level document. Entry lists are validated separately."""

    overall_score: Optional[float] = Field(None, alias="overallScore")
    score_explanation: str = Field("", alias="scoreExplanation")
    findings: list[Any] = Field(default_factory=list)
    good_practices: list[Any] = Field(default_factory=list, alias="goodPractices")
    recommendations: list[Any] = Field(default_factory=list, alias="architecturalRecommendations")

    @property
    def score(self) -> int | None:
        if self.overall_score is None or not math.isfinite(self.overall_score):
            return None
        return max(0, min(100, int(round(self.overall_score))))


def looks_like_audit_document(data: Any) -> bool:
    """Required top-level keys are present with the right shapes."""
    return (
        isinstance(data, dict)
        and all(key in data for key in REQUIRED_KEYS)
        and isinstance(data["findings"], list)
        and isinstance(data["goodPractices"], list)
    )


def validate_entries(
    entries: list[Any],
    schema: type[_CamelModel],
    label: str,
) -> list[Any]:
    """Validate each entry, dropping (and logging) the malformed ones."""
    valid = []
    for index, entry in enumerate(entries):
        try:
            valid.append(schema.model_validate(entry))
        except ValidationError as e:
            logger.warning("Dropping malformed %s #%d: %s", label, index, e.error_count())
    return valid


def build_findings(entries: list[Any], id_factory: Callable[[], str]) -> list[Finding]:
    return [
        entry.to_finding(id_factory())
        for entry in validate_entries(entries, FindingSchema, "finding")
    ]


def build_practices(entries: list[Any], id_factory: Callable[[], str]) -> list[Practice]:
    return [
        entry.to_practice(id_factory())
        for entry in validate_entries(entries, PracticeSchema, "good practice")
    ]


def build_recommendations(entries: list[Any], id_factory: Callable[[], str]) -> list[Recommendation]:
    return [
        entry.to_recommendation(id_factory())
        for entry in validate_entries(entries, RecommendationSchema, "recommendation")
    ]
