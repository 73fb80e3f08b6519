"""Report Action - Terminal output for audits, previews and fix results.

CONTRACT:
- read_only: True
- requires_backup: False
- rollback_support: N/A
"""

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from dockwarden.engine.diffing import count_changes
from dockwarden.model.finding import Finding, Severity
from dockwarden.model.results import AuditResult, DiffPreview, DiffTag, FixResult

SEVERITY_COLORS = {
    Severity.CRITICAL: "bold red",
    Severity.HIGH: "red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
    Severity.INFO: "dim",
}

_DIFF_STYLES = {
    DiffTag.HEADER: "bold cyan",
    DiffTag.ADDED: "green",
    DiffTag.REMOVED: "red",
    DiffTag.CONTEXT: "",
}
_DIFF_PREFIX = {
    DiffTag.HEADER: "",
    DiffTag.ADDED: "+",
    DiffTag.REMOVED: "-",
    DiffTag.CONTEXT: " ",
}


class ReportAction:
    """Formats engine output for the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def report_findings(self, findings: list[Finding]) -> None:
        """Print findings as a table, in the order the engine produced them."""
        if not findings:
            self.console.print("   [green][bold]PASS:[/] No issues found.[/]")
            return

        counts: dict[Severity, int] = {}
        for f in findings:
            counts[f.severity] = counts.get(f.severity, 0) + 1
        summary = ", ".join(
            f"[{SEVERITY_COLORS[sev]}]{counts[sev]} {sev.value}[/]"
            for sev in Severity
            if counts.get(sev)
        )
        self.console.print("\n[bold]Audit Results[/]")
        self.console.print(f"   Summary: {summary}\n")

        table = Table(show_header=True, header_style="bold")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Severity")
        table.add_column("Category")
        table.add_column("Container")
        table.add_column("Title")
        table.add_column("Fix")
        for f in findings:
            table.add_row(
                f.id,
                Text(f.severity.value, style=SEVERITY_COLORS[f.severity]),
                f.category,
                f.container or "[dim]host[/]",
                f.title,
                f.fix.kind.value + (" [green](auto)[/]" if f.auto_fixable else ""),
            )
        self.console.print(table)

    def report_audit_result(self, result: AuditResult) -> None:
        if result.degraded:
            self.console.print(Panel(result.score_explanation, title="Deep review unavailable", style="yellow"))
        else:
            self.console.print(
                Panel(result.score_explanation or "-", title=f"Security score: {result.overall_score}/100", style="cyan")
            )
        self.report_findings(list(result.findings))

        if result.practices:
            self.console.print("\n[bold green]Good practices[/]")
            for practice in result.practices:
                applies = f" [dim]({', '.join(practice.applies_to)})[/]" if practice.applies_to else ""
                self.console.print(f"   ✓ {practice.title}{applies}")

        if result.recommendations:
            self.console.print(Panel.fit("Recommendations", style="bold yellow"))
            for rec in result.recommendations:
                self.console.print(f"   • [bold]{rec.title}[/] [dim](complexity: {rec.complexity})[/]")
                if rec.impact:
                    self.console.print(f"     {rec.impact}")

    def report_preview(self, preview: DiffPreview) -> None:
        added, removed = count_changes(preview.diff)
        origin = " [yellow](baseline synthesized from live container)[/]" if preview.synthesized else ""
        self.console.print(f"[bold]Target:[/] {preview.target_path}{origin}")
        if not preview.has_changes:
            self.console.print("[dim]No changes.[/]")
        else:
            self.console.print(f"[green]+{added}[/] [red]-{removed}[/]")
            body = Text()
            for line in preview.diff:
                value = line.value if line.value.endswith("\n") else line.value + "\n"
                body.append(_DIFF_PREFIX[line.tag] + value, style=_DIFF_STYLES[line.tag])
            self.console.print(body, end="")
        self.console.print(f"\n[dim]Side effects:[/] {preview.side_effects}")

    def report_fix_result(self, result: FixResult) -> None:
        if result.success:
            self.console.print("[bold green]✓ Fix applied[/]")
            self.console.print(f"   [dim]Backup:[/] {result.backup_path}")
            if result.container_restarted:
                self.console.print(f"   [dim]Restarted:[/] {result.container_restarted}")
            return
        self.console.print(f"[bold red]✗ Fix failed[/] [dim]({result.error_code})[/]: {result.error}")
        if result.backup_path:
            self.console.print(f"   [dim]Backup kept at:[/] {result.backup_path}")

    def export_json(self, payload: object) -> None:
        """Print plain JSON (no markup) for scripting."""
        self.console.print_json(json.dumps(payload))
