"""
Click-based CLI for dockwarden.

This module only ORCHESTRATES: it loads snapshots and saved runs, invokes
the rule engine, extractor and fix engine, and formats their output.
"""

import dataclasses
import logging
import sys
from pathlib import Path
from typing import Iterator

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from dockwarden import __version__
from dockwarden.actions.report import ReportAction
from dockwarden.ai.extractor import extract_results
from dockwarden.checks import RuleEngine
from dockwarden.config import Settings, load_settings
from dockwarden.connector.local import CommandRunner
from dockwarden.engine.context import AuditRun
from dockwarden.engine.fix_engine import FixEngine
from dockwarden.engine.synthesis import ComposeSynthesizer
from dockwarden.errors import FixError
from dockwarden.model.results import AuditResult
from dockwarden.model.snapshot import Snapshot, load_snapshot
from dockwarden.scanner.firewall import FirewallProbe

console = Console()

# Replayed responses are fed in model-sized pieces.
REPLAY_CHUNK = 64


@click.group()
@click.version_option(version=__version__, prog_name="dockwarden")
@click.option("--config", "-c", type=click.Path(), help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """dockwarden: container infrastructure security audit and safe remediation."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["settings"] = load_settings(config)


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _load_snapshot(path: str | None) -> Snapshot | None:
    return load_snapshot(path) if path else None


def _chunks(text: str, size: int = REPLAY_CHUNK) -> Iterator[str]:
    for start in range(0, len(text), size):
        yield text[start:start + size]


@main.command()
@click.argument("snapshot", type=click.Path(exists=True))
@click.option("--format", "fmt", type=click.Choice(["rich", "json"]), default="rich", help="Output format")
@click.option("--probe-firewall", is_flag=True, help="Probe this host's UFW/iptables state")
@click.option("--save", type=click.Path(), help="Save findings for later preview/apply")
@click.pass_context
def audit(ctx: click.Context, snapshot: str, fmt: str, probe_firewall: bool, save: str | None) -> None:
    """Run the rule engine against a SNAPSHOT file."""
    settings = _settings(ctx)
    reporter = ReportAction(console)
    try:
        snap = load_snapshot(snapshot)
        if probe_firewall:
            with console.status("[bold blue]Probing firewall...[/]"):
                status = FirewallProbe(CommandRunner(timeout=settings.command_timeout)).probe()
            snap = dataclasses.replace(snap, firewall=status)

        run = AuditRun(snapshot=snap)
        run.register(RuleEngine(settings=settings).evaluate(snap))

        if fmt == "json":
            reporter.export_json(run.to_dict())
        else:
            reporter.report_findings(run.findings)

        if save:
            run.save(save)
            if fmt != "json":
                console.print(f"\n[green]✓ Findings saved to:[/] {save}")
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)


@main.command()
@click.argument("response", type=click.Path(exists=True))
@click.option("--snapshot", type=click.Path(exists=True), help="Snapshot to seed the fallback findings")
@click.option("--format", "fmt", type=click.Choice(["rich", "json"]), default="rich", help="Output format")
@click.option("--save", type=click.Path(), help="Save rule and model findings for later preview/apply")
@click.pass_context
def extract(ctx: click.Context, response: str, snapshot: str | None, fmt: str, save: str | None) -> None:
    """Recover a deep review from a saved model RESPONSE."""
    settings = _settings(ctx)
    reporter = ReportAction(console)
    try:
        snap = _load_snapshot(snapshot)
        quick = RuleEngine(settings=settings).evaluate(snap) if snap else []
        text = Path(response).read_text(encoding="utf-8")

        result: AuditResult | None = None
        for item in extract_results(_chunks(text), fallback_findings=quick):
            if isinstance(item, AuditResult):
                result = item

        if fmt == "json":
            reporter.export_json(result.to_dict())
        else:
            reporter.report_audit_result(result)

        if save:
            run = AuditRun(snapshot=snap or Snapshot())
            run.register(quick)
            if not result.degraded:
                run.register(result.findings)
            run.save(save)
            if fmt != "json":
                console.print(f"\n[green]✓ Findings saved to:[/] {save}")
    except (OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)


@main.command()
@click.argument("snapshot", type=click.Path(exists=True))
@click.argument("container")
@click.option("--output", "-o", type=click.Path(), help="Output file path")
@click.option("--save", is_flag=True, help="Write into the generated-configs directory")
@click.pass_context
def synthesize(ctx: click.Context, snapshot: str, container: str, output: str | None, save: bool) -> None:
    """Render CONTAINER's live configuration as a compose file."""
    settings = _settings(ctx)
    try:
        content = ComposeSynthesizer(load_snapshot(snapshot)).synthesize(container)
        if save and not output:
            output = str(Path(settings.generated_dir) / container / "docker-compose.yml")
        if output:
            Path(output).parent.mkdir(parents=True, exist_ok=True)
            Path(output).write_text(content, encoding="utf-8")
            console.print(f"[green]✓ Config written to:[/] {output}")
        else:
            console.print(Panel(content, title=f"Synthesized compose: {container}", style="cyan"))
    except (FixError, OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)


def _fix_engine(settings: Settings, snap: Snapshot | None) -> FixEngine:
    synthesizer = ComposeSynthesizer(snap) if snap else None
    return FixEngine(settings=settings, synthesizer=synthesizer)


@main.command()
@click.argument("run_file", type=click.Path(exists=True))
@click.argument("finding_id")
@click.option("--snapshot", type=click.Path(exists=True), help="Snapshot used to synthesize a missing config")
@click.pass_context
def preview(ctx: click.Context, run_file: str, finding_id: str, snapshot: str | None) -> None:
    """Show the diff and side effects of fixing FINDING_ID from a saved run."""
    settings = _settings(ctx)
    try:
        snap = _load_snapshot(snapshot)
        run = AuditRun.load(run_file, snapshot=snap)
        result = _fix_engine(settings, snap).preview(run.get(finding_id))
        ReportAction(console).report_preview(result)
    except (FixError, OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)


@main.command()
@click.argument("run_file", type=click.Path(exists=True))
@click.argument("finding_id")
@click.option("--snapshot", type=click.Path(exists=True), help="Snapshot used to synthesize a missing config")
@click.option("--yes", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def apply(ctx: click.Context, run_file: str, finding_id: str, snapshot: str | None, yes: bool) -> None:
    """Apply the fix for FINDING_ID with backup and rollback."""
    settings = _settings(ctx)
    reporter = ReportAction(console)
    try:
        snap = _load_snapshot(snapshot)
        run = AuditRun.load(run_file, snapshot=snap)
        finding = run.get(finding_id)
        engine = _fix_engine(settings, snap)

        reporter.report_preview(engine.preview(finding))
        if not yes and not click.confirm("\nApply this fix?", default=False):
            console.print("[dim]Aborted.[/]")
            return

        result = engine.apply(finding)
        reporter.report_fix_result(result)
        if not result.success:
            sys.exit(1)
    except (FixError, OSError, ValueError) as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
