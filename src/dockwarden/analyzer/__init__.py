"""Analyzer package - Classification helpers that reason about snapshot data.

IMPORTANT: Analyzers NEVER run shell commands.
They only reason about data already collected by the inspection layer.
"""

from dockwarden.analyzer.service_identifier import (
    SERVICE_SIGNATURES,
    ServiceIdentifier,
    ServiceInfo,
    ServiceSignature,
    fix_recommendation,
    identify,
    risk_description,
)

__all__ = [
    "SERVICE_SIGNATURES",
    "ServiceIdentifier",
    "ServiceInfo",
    "ServiceSignature",
    "fix_recommendation",
    "identify",
    "risk_description",
]
