"""Deep-review support: recovering structured results from a model stream."""

from dockwarden.ai.boundary import DocumentBoundary, JsonBoundaryScanner
from dockwarden.ai.extractor import (
    DEGRADED_EXPLANATION,
    ExtractedItem,
    StreamingResultExtractor,
    aextract_results,
    extract_results,
)

__all__ = [
    "DEGRADED_EXPLANATION",
    "DocumentBoundary",
    "ExtractedItem",
    "JsonBoundaryScanner",
    "StreamingResultExtractor",
    "aextract_results",
    "extract_results",
]
