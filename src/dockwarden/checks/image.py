"""Image rules - How container images are referenced."""

from dockwarden.checks.base import RuleContext, register_rule
from dockwarden.model.finding import Finding, Severity


def is_floating_reference(image: str) -> bool:
    """True for ``:latest`` or untagged references.

    Digest-pinned references are immutable. A registry port
    (``registry:5000/app``) is not a tag.
    """
    if not image:
        return False
    if "@" in image:
        return False
    last_component = image.rsplit("/", 1)[-1]
    if ":" not in last_component:
        return True
    return last_component.rsplit(":", 1)[1] == "latest"


@register_rule("latest_tag", order=70)
def check_latest_tag(ctx: RuleContext) -> list[Finding]:
    """Images with a floating tag."""
    findings: list[Finding] = []
    for container in ctx.snapshot.containers:
        if not is_floating_reference(container.image):
            continue
        findings.append(Finding(
            severity=Severity.LOW,
            category="latest_tag",
            title=f"Using :latest tag: {container.name}",
            container=container.name,
            description=(
                f'Container "{container.name}" uses image "{container.image}" with :latest tag '
                "or no tag (defaults to latest). This makes deployments unpredictable."
            ),
            risk=(
                "The :latest tag can point to different image versions over time, making "
                "deployments impossible to reproduce, complicating rollbacks, and pulling in "
                "unexpected breaking changes."
            ),
            fix=ctx.config_fix(
                container.name,
                "Pin image to a specific version tag",
                "Image version will be locked. You must manually update the tag to get newer "
                "versions.",
            ),
        ))
    return findings
