"""Rule plugin infrastructure.

Each rule is a plain function taking a read-only RuleContext and returning a
list of findings. Rules are registered with an explicit position so the
engine's output order is fixed no matter which module registers first.
"""

from dataclasses import dataclass, field
from typing import Callable

from dockwarden.analyzer.service_identifier import ServiceIdentifier
from dockwarden.checks.targets import resolve_config_path
from dockwarden.config import Settings
from dockwarden.model.finding import FixKind, FixPayload
from dockwarden.model.snapshot import Snapshot


@dataclass(frozen=True)
class RuleContext:
    """Context passed to every rule.

    Provides read-only access to the snapshot plus the settings and
    classifier rules need. Holds no per-run mutable state.
    """

    snapshot: Snapshot
    settings: Settings = field(default_factory=Settings)
    identifier: ServiceIdentifier = field(default_factory=ServiceIdentifier)

    def config_fix(
        self,
        container_name: str,
        description: str,
        side_effects: str,
        commands: tuple[str, ...] = (),
    ) -> FixPayload:
        """Build a config_replace payload targeting the container's config file.

        The replacement content is left empty; it is supplied later by the
        deep review. A None target path means the fix cannot be auto-applied.
        """
        return FixPayload(
            kind=FixKind.CONFIG_REPLACE,
            description=description,
            target_path=resolve_config_path(self.snapshot, container_name),
            new_content=None,
            commands=commands,
            side_effects=side_effects,
            requires_restart=True,
            restart_target=container_name,
        )


Rule = Callable[[RuleContext], list]


@dataclass(frozen=True)
class RegisteredRule:
    """A rule function and its fixed position in the battery."""

    order: int
    category: str
    func: Rule

    @property
    def name(self) -> str:
        return self.func.__name__


# Registry of all available rules
_rule_registry: list[RegisteredRule] = []


def register_rule(category: str, order: int) -> Callable[[Rule], Rule]:
    """Decorator to register a rule function at a fixed position."""

    def decorator(func: Rule) -> Rule:
        _rule_registry.append(RegisteredRule(order=order, category=category, func=func))
        return func

    return decorator


def get_all_rules() -> list[RegisteredRule]:
    """Registered rules in evaluation order."""
    return sorted(_rule_registry, key=lambda r: r.order)
