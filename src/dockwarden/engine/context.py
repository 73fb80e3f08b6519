"""Per-run audit context.

An AuditRun holds one audit's snapshot and its findings keyed by id. It is
created by whoever runs the audit and passed explicitly to the fix engine;
there is no process-wide "last findings" cache.
"""

import json
import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from dockwarden.errors import NotFoundError
from dockwarden.model.finding import Finding
from dockwarden.model.snapshot import Snapshot

logger = logging.getLogger(__name__)


@dataclass
class AuditRun:
    """Findings of one audit, addressable by id."""

    snapshot: Snapshot
    run_id: str = field(default_factory=lambda: secrets.token_hex(6))
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    _findings: dict[str, Finding] = field(default_factory=dict, repr=False)

    def register(self, findings: Iterable[Finding]) -> None:
        """Add findings; a duplicate id is a programming error."""
        for finding in findings:
            if finding.id in self._findings:
                raise ValueError(f"Duplicate finding id {finding.id!r} in run {self.run_id}")
            self._findings[finding.id] = finding

    def get(self, finding_id: str) -> Finding:
        try:
            return self._findings[finding_id]
        except KeyError:
            raise NotFoundError(f"Finding {finding_id!r} not found in run {self.run_id}") from None

    @property
    def findings(self) -> list[Finding]:
        return list(self._findings.values())

    def __len__(self) -> int:
        return len(self._findings)

    def __contains__(self, finding_id: object) -> bool:
        return finding_id in self._findings

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "findings": [f.to_dict() for f in self._findings.values()],
        }

    def save(self, path: str | Path) -> Path:
        """Write the run's findings as JSON so a later command can fix them."""
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        logger.debug("Saved %d findings to %s", len(self), target)
        return target

    @classmethod
    def load(cls, path: str | Path, snapshot: Snapshot | None = None) -> "AuditRun":
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        run = cls(
            snapshot=snapshot or Snapshot(),
            run_id=str(data.get("run_id") or secrets.token_hex(6)),
            started_at=str(data.get("started_at") or ""),
        )
        run.register(Finding.from_dict(item) for item in data.get("findings", []))
        return run
