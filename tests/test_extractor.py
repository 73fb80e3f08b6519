import asyncio
import itertools
import json

import pytest

from dockwarden.ai import DEGRADED_EXPLANATION, StreamingResultExtractor, aextract_results, extract_results
from dockwarden.model.finding import Finding, FindingSource, FixKind, FixPayload, Severity
from dockwarden.model.results import AuditResult, Practice, Recommendation

DOCUMENT = {
    "overallScore": 62,
    "scoreExplanation": 'Mostly fine; "db" is exposed {see below}',
    "findings": [
        {
            "id": "model-chosen-id",
            "severity": "critical",
            "category": "exposed ports",
            "title": "PostgreSQL on 0.0.0.0",
            "container": "acme-db-1",
            "description": "Port 5432 is public. Path C:\\data\\}",
            "risk": "Remote login attempts",
            "fix": {
                "description": "Bind to localhost",
                "type": "compose_replace",
                "composePath": "/srv/acme/docker-compose.yml",
                "newFileContent": "services:\n  db:\n    ports:\n      - \"127.0.0.1:5432:5432\"\n",
                "commands": None,
                "sideEffects": "Only local clients",
                "requiresRestart": True,
            },
        },
        {
            "severity": "low",
            "category": "logging",
            "title": "No log rotation",
            "container": None,
            "description": "",
            "risk": "",
            "fix": {"description": "Configure json-file max-size", "type": "docker_command",
                    "commands": ["docker update --log-opt max-size=10m web"], "sideEffects": "",
                    "requiresRestart": False},
        },
    ],
    "goodPractices": [
        {"id": "gp-1", "category": "images", "title": "Pinned tags", "description": "All tags pinned",
         "appliesTo": ["acme-db-1"]},
    ],
    "architecturalRecommendations": [
        {"id": "rec-1", "title": "Use secrets", "description": "Move credentials", "impact": "Less leakage",
         "complexity": "low"},
    ],
}
PAYLOAD = json.dumps(DOCUMENT)


def _ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def _clock():
    return "2024-05-01T12:00:00+00:00"


def _run(fragments, **kwargs):
    return list(extract_results(fragments, id_factory=_ids(), clock=_clock, **kwargs))


def _aggregate(items):
    aggregates = [item for item in items if isinstance(item, AuditResult)]
    assert len(aggregates) == 1
    assert items[-1] is aggregates[0]
    return aggregates[0]


def test_one_shot_parse():
    items = _run([PAYLOAD])
    result = _aggregate(items)

    assert result.overall_score == 62
    assert result.degraded is False
    assert result.audited_at == _clock()
    assert [type(i) for i in items] == [Finding, Finding, Practice, Recommendation, AuditResult]

    first = result.findings[0]
    assert first.id == "id-1"
    assert first.source is FindingSource.MODEL
    assert first.severity is Severity.CRITICAL
    assert first.fix.kind is FixKind.CONFIG_REPLACE
    assert first.fix.target_path == "/srv/acme/docker-compose.yml"
    assert first.fix.restart_target == "acme-db-1"
    assert first.auto_fixable

    second = result.findings[1]
    assert second.container is None
    assert second.fix.kind is FixKind.HOST_COMMAND
    assert second.fix.commands == ("docker update --log-opt max-size=10m web",)

    assert result.practices[0].applies_to == ("acme-db-1",)
    assert result.recommendations[0].complexity == "low"


def test_every_two_way_split_matches_one_shot():
    expected = _aggregate(_run([PAYLOAD])).to_dict()
    for cut in range(len(PAYLOAD) + 1):
        result = _aggregate(_run([PAYLOAD[:cut], PAYLOAD[cut:]]))
        assert result.to_dict() == expected, f"split at {cut}"


def test_char_by_char_matches_one_shot():
    expected = _aggregate(_run([PAYLOAD])).to_dict()
    assert _aggregate(_run(list(PAYLOAD))).to_dict() == expected


def test_fenced_block_between_prose():
    text = "Here is my analysis.\n\n```json\n" + PAYLOAD + "\n```\n\nLet me know if you need more."
    result = _aggregate(_run([text[i:i + 7] for i in range(0, len(text), 7)]))
    assert result.to_dict() == _aggregate(_run([PAYLOAD])).to_dict()


def test_fenced_block_recovered_at_end_of_stream():
    # An unbalanced brace in the prose keeps the inline scanner from ever
    # returning to depth zero, so only the fence fallback can find the JSON.
    text = "Result { (draft)\n```json\n" + PAYLOAD + "\n```\ndone"
    result = _aggregate(_run([text]))
    assert not result.degraded
    assert result.overall_score == 62


def test_prose_braces_before_document():
    text = "Checked {3} hosts, found {issues}. " + PAYLOAD
    result = _aggregate(_run([text]))
    assert result.overall_score == 62


def test_whole_buffer_fallback_with_extra_closer():
    # The document is balanced only if the prose brace is counted, which the
    # scanner refuses to do; the whole buffer still fails, so this degrades.
    items = _run(["not json at all }"])
    assert _aggregate(items).degraded


def test_resolution_ignores_trailing_fragments():
    extractor = StreamingResultExtractor(id_factory=_ids(), clock=_clock)
    items = extractor.feed(PAYLOAD)
    assert extractor.resolved
    assert extractor.feed('{"overallScore": 1, "findings": [], "goodPractices": []}') == []
    assert extractor.close() == []
    assert _aggregate(items).overall_score == 62


def test_generator_stops_pulling_after_resolution():
    pulled = []

    def fragments():
        for fragment in (PAYLOAD, " trailing", " more"):
            pulled.append(fragment)
            yield fragment

    _run(fragments())
    assert pulled == [PAYLOAD]


def test_object_without_required_keys_is_not_a_result():
    text = '{"thinking": "draft"} ' + PAYLOAD
    result = _aggregate(_run([text]))
    assert result.overall_score == 62


def test_degraded_result_carries_fallback_findings():
    quick = Finding(
        severity=Severity.HIGH,
        category="root_user",
        title="Container running as root: web",
        description="",
        risk="",
        fix=FixPayload(kind=FixKind.CONFIG_REPLACE),
        container="web",
    )
    items = _run(["I could not finish the review", " {\"overallScore\": "], fallback_findings=[quick])
    assert len(items) == 1
    result = items[0]
    assert result.degraded
    assert result.overall_score is None
    assert result.score_explanation == DEGRADED_EXPLANATION
    assert result.findings == (quick,)
    assert result.practices == ()
    assert result.recommendations == ()


def test_empty_stream_degrades():
    result = _aggregate(_run([]))
    assert result.degraded
    assert result.findings == ()


def test_malformed_entries_are_dropped():
    document = dict(DOCUMENT)
    document["findings"] = [
        {"severity": "catastrophic", "category": "x", "title": "bad severity"},
        {"severity": "high", "category": "x", "title": "bad kind", "fix": {"type": "rm_rf"}},
        {"severity": "HIGH", "category": "ok", "title": "kept"},
    ]
    result = _aggregate(_run([json.dumps(document)]))
    assert [f.title for f in result.findings] == ["kept"]
    assert result.findings[0].severity is Severity.HIGH
    assert result.findings[0].fix.kind is FixKind.MANUAL


def test_null_score_is_accepted():
    document = dict(DOCUMENT, overallScore=None)
    result = _aggregate(_run([json.dumps(document)]))
    assert result.overall_score is None
    assert not result.degraded


@pytest.mark.parametrize("score", ["NaN", "Infinity", "-Infinity"])
def test_non_finite_score_is_treated_as_missing(score):
    payload = '{"overallScore": %s, "findings": [], "goodPractices": []}' % score
    result = _aggregate(_run([payload]))
    assert result.overall_score is None
    assert not result.degraded


def test_null_optional_fields_fall_back_to_defaults():
    document = dict(DOCUMENT, scoreExplanation=None, architecturalRecommendations=None)
    document["findings"] = [
        {"severity": "high", "category": None, "title": "kept", "description": None,
         "fix": {"type": None, "description": None, "sideEffects": None, "commands": None}},
        {"severity": "low", "category": "x", "title": "no fix block", "fix": None},
    ]
    document["goodPractices"] = [{"id": None, "category": None, "title": "Pinned tags", "appliesTo": None}]

    result = _aggregate(_run([json.dumps(document)]))

    assert not result.degraded
    assert result.overall_score == 62
    assert result.score_explanation == ""
    assert result.recommendations == ()
    assert [f.title for f in result.findings] == ["kept", "no fix block"]
    assert result.findings[0].category == ""
    assert result.findings[0].fix.kind is FixKind.MANUAL
    assert result.findings[1].fix.description == ""
    assert result.practices[0].applies_to == ()
    assert result.practices[0].id


def test_feed_after_close_raises():
    extractor = StreamingResultExtractor()
    extractor.close()
    with pytest.raises(RuntimeError):
        extractor.feed("{}")


def test_fresh_ids_by_default():
    first = _aggregate(list(extract_results([PAYLOAD])))
    second = _aggregate(list(extract_results([PAYLOAD])))
    first_ids = {f.id for f in first.findings}
    assert len(first_ids) == 2
    assert first_ids.isdisjoint({f.id for f in second.findings})
    assert "model-chosen-id" not in first_ids


def test_async_extraction():
    async def fragments():
        for i in range(0, len(PAYLOAD), 5):
            yield PAYLOAD[i:i + 5]

    async def collect():
        return [item async for item in aextract_results(fragments(), id_factory=_ids(), clock=_clock)]

    items = asyncio.run(collect())
    assert _aggregate(items).to_dict() == _aggregate(_run([PAYLOAD])).to_dict()
