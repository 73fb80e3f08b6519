"""Actions invoked by the CLI."""

from dockwarden.actions.report import ReportAction

__all__ = ["ReportAction"]
