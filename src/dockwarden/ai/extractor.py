"""Streaming result extractor.

Recovers the single JSON document of a deep review from a model's token
stream and yields its parts as soon as the document is complete:

    extractor = StreamingResultExtractor(fallback_findings=quick_findings)
    for fragment in stream:
        for item in extractor.feed(fragment):
            handle(item)
    for item in extractor.close():
        handle(item)

Items are Finding, Practice and Recommendation objects followed by exactly
one AuditResult. Parse failures only mean "not complete yet"; when the
stream ends without a usable document the extractor falls back to fenced
code blocks, then to the whole buffer, then to a degraded result.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import AsyncIterable, AsyncIterator, Callable, Iterable, Iterator, Sequence, Union

from pydantic import ValidationError

from dockwarden.ai.boundary import JsonBoundaryScanner
from dockwarden.ai.schema import (
    AuditDocumentSchema,
    build_findings,
    build_practices,
    build_recommendations,
    looks_like_audit_document,
)
from dockwarden.model.finding import Finding, new_finding_id
from dockwarden.model.results import AuditResult, Practice, Recommendation

logger = logging.getLogger(__name__)

ExtractedItem = Union[Finding, Practice, Recommendation, AuditResult]

DEGRADED_EXPLANATION = (
    "The deep review response could not be parsed. Showing rule engine findings only."
)

_FENCED_JSON = re.compile(r"```json\s*(.*?)```", re.DOTALL)
_FENCED_ANY = re.compile(r"```\s*(.*?)```", re.DOTALL)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class StreamingResultExtractor:
    """Incrementally reconstructs one AuditResult from text fragments.

    Single-threaded per stream: fragments must be fed in arrival order.

    Args:
        fallback_findings: Findings carried by the degraded result when no
            document can be recovered (usually the rule engine's).
        id_factory: Source of fresh ids for model findings.
        clock: Returns the ``audited_at`` timestamp.
    """

    def __init__(
        self,
        fallback_findings: Sequence[Finding] = (),
        id_factory: Callable[[], str] = new_finding_id,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self.fallback_findings = tuple(fallback_findings)
        self.id_factory = id_factory
        self.clock = clock
        self._buffer: list[str] = []
        self._scanner = JsonBoundaryScanner()
        self._candidate_starts: list[int] = []
        self._result: AuditResult | None = None
        self._closed = False

    @property
    def resolved(self) -> bool:
        return self._result is not None

    @property
    def result(self) -> AuditResult | None:
        return self._result

    @property
    def text(self) -> str:
        return "".join(self._buffer)

    def feed(self, fragment: str) -> list[ExtractedItem]:
        """Consume one fragment; returns items once the document is complete."""
        if self._closed:
            raise RuntimeError("Extractor already closed")
        if self._result is not None or not fragment:
            return []

        self._buffer.append(fragment)
        boundaries = self._scanner.feed(fragment)
        if not boundaries:
            return []

        text = self.text
        for boundary in boundaries:
            self._candidate_starts.append(boundary.start)
            # Earlier starts first: a brace that closed too soon may still
            # open the real document.
            for start in self._candidate_starts:
                data = _try_load(text[start:boundary.end])
                if data is None:
                    continue
                items = self._resolve(data)
                if items:
                    logger.debug("Deep review document resolved at offset %d", boundary.end)
                    return items
        return []

    def close(self) -> list[ExtractedItem]:
        """Signal end of stream and run the fallback strategies if needed."""
        if self._closed:
            return []
        self._closed = True
        if self._result is not None:
            return []

        text = self.text
        for strategy, candidate in _end_of_stream_candidates(text):
            data = _try_load(candidate)
            if data is None:
                continue
            items = self._resolve(data)
            if items:
                logger.info("Deep review recovered from %s", strategy)
                return items

        logger.warning("Deep review response unparseable (%d chars); degrading", len(text))
        self._result = AuditResult(
            overall_score=None,
            score_explanation=DEGRADED_EXPLANATION,
            findings=self.fallback_findings,
            audited_at=self.clock(),
            degraded=True,
        )
        return [self._result]

    def _resolve(self, data: object) -> list[ExtractedItem]:
        if not looks_like_audit_document(data):
            return []
        try:
            document = AuditDocumentSchema.model_validate(data)
        except ValidationError as e:
            logger.debug("Document rejected: %s", e)
            return []

        findings = build_findings(document.findings, self.id_factory)
        practices = build_practices(document.good_practices, self.id_factory)
        recommendations = build_recommendations(document.recommendations, self.id_factory)

        self._result = AuditResult(
            overall_score=document.score,
            score_explanation=document.score_explanation,
            findings=tuple(findings),
            practices=tuple(practices),
            recommendations=tuple(recommendations),
            audited_at=self.clock(),
        )
        return [*findings, *practices, *recommendations, self._result]


def _try_load(candidate: str) -> object | None:
    candidate = candidate.strip()
    if not candidate:
        return None
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return None


def _end_of_stream_candidates(text: str) -> Iterator[tuple[str, str]]:
    match = _FENCED_JSON.search(text) or _FENCED_ANY.search(text)
    if match:
        yield "fenced code block", match.group(1)
    yield "full response", text.strip()


def extract_results(
    fragments: Iterable[str],
    fallback_findings: Sequence[Finding] = (),
    id_factory: Callable[[], str] = new_finding_id,
    clock: Callable[[], str] = utc_timestamp,
) -> Iterator[ExtractedItem]:
    """Yield extracted items lazily from a fragment iterable.

    Stops pulling fragments once the document resolves.
    """
    extractor = StreamingResultExtractor(fallback_findings, id_factory=id_factory, clock=clock)
    for fragment in fragments:
        yield from extractor.feed(fragment)
        if extractor.resolved:
            break
    yield from extractor.close()


async def aextract_results(
    fragments: AsyncIterable[str],
    fallback_findings: Sequence[Finding] = (),
    id_factory: Callable[[], str] = new_finding_id,
    clock: Callable[[], str] = utc_timestamp,
) -> AsyncIterator[ExtractedItem]:
    """Async counterpart of ``extract_results`` for streaming model clients."""
    extractor = StreamingResultExtractor(fallback_findings, id_factory=id_factory, clock=clock)
    async for fragment in fragments:
        for item in extractor.feed(fragment):
            yield item
        if extractor.resolved:
            break
    for item in extractor.close():
        yield item
