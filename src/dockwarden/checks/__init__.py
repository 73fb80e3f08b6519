"""Rule plugin system for dockwarden.

Rules live in ``runtime``, ``network`` and ``image`` and register themselves
through ``register_rule``. ``RuleEngine.evaluate`` runs every rule in its
registered order and concatenates the results; it never sorts by severity.
"""

import logging

from dockwarden.analyzer.service_identifier import ServiceIdentifier
from dockwarden.checks.base import RegisteredRule, RuleContext, get_all_rules, register_rule
from dockwarden.config import Settings
from dockwarden.model.finding import Finding
from dockwarden.model.snapshot import Snapshot

# Importing the rule modules registers their rules.
from dockwarden.checks import image, network, runtime  # noqa: F401,E402

logger = logging.getLogger(__name__)


class RuleEngine:
    """Evaluates the rule battery against a snapshot.

    Stateless between calls, so one engine may serve concurrent audits.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        identifier: ServiceIdentifier | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.identifier = identifier or ServiceIdentifier()

    @property
    def rules(self) -> list[RegisteredRule]:
        return get_all_rules()

    def evaluate(self, snapshot: Snapshot) -> list[Finding]:
        """Run all rules and return their findings in rule order."""
        context = RuleContext(snapshot=snapshot, settings=self.settings, identifier=self.identifier)
        findings: list[Finding] = []

        for rule in self.rules:
            try:
                findings.extend(rule.func(context))
            except Exception as e:
                # Log error but don't fail the entire audit
                logger.warning("Rule %s failed: %s", rule.name, e)

        logger.debug("Rule engine produced %d findings", len(findings))
        return findings


def evaluate(snapshot: Snapshot, settings: Settings | None = None) -> list[Finding]:
    """Evaluate a snapshot with a default engine."""
    return RuleEngine(settings=settings).evaluate(snapshot)


__all__ = [
    "RegisteredRule",
    "RuleContext",
    "RuleEngine",
    "evaluate",
    "get_all_rules",
    "register_rule",
]
