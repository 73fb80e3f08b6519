"""Line diffs for fix previews."""

import difflib

from dockwarden.model.results import DiffLine, DiffTag

_PREFIX_TAGS = {
    "+": DiffTag.ADDED,
    "-": DiffTag.REMOVED,
    " ": DiffTag.CONTEXT,
}


def compute_diff(original: str, proposed: str, path: str = "") -> list[DiffLine]:
    """Unified diff of two texts as tagged lines.

    The diff is a single hunk with full context, so the body lines alone
    reconstruct both texts (see ``replay_diff``). The ``---``/``+++`` file
    header and the ``@@`` hunk header are tagged HEADER; body values keep
    their line endings.
    """
    if original == proposed:
        return []

    a = original.splitlines(keepends=True)
    b = proposed.splitlines(keepends=True)

    diff: list[DiffLine] = []
    raw_lines = difflib.unified_diff(
        a,
        b,
        fromfile=f"a/{path}" if path else "original",
        tofile=f"b/{path}" if path else "proposed",
        n=max(len(a), len(b)),
    )
    for index, raw in enumerate(raw_lines):
        # Body lines always start with "+", "-" or " ", never "@".
        if index < 2 or raw.startswith("@@"):
            diff.append(DiffLine(DiffTag.HEADER, raw))
            continue
        diff.append(DiffLine(_PREFIX_TAGS[raw[:1]], raw[1:]))
    return diff


def count_changes(diff: list[DiffLine]) -> tuple[int, int]:
    """(added, removed) line counts."""
    added = sum(1 for line in diff if line.tag is DiffTag.ADDED)
    removed = sum(1 for line in diff if line.tag is DiffTag.REMOVED)
    return added, removed
