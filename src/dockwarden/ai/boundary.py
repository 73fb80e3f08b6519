"""Incremental JSON object boundary detection.

The scanner tracks brace depth outside string literals and reports where a
top-level object closes. String literals are only recognised inside an open
object. It does not validate JSON; it only tells the caller
when a parse is worth attempting.
"""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class DocumentBoundary:
    """A balanced ``{...}`` span in the scanned text.

    ``start`` is the offset of the opening brace that took depth from zero
    to one; ``end`` is one past the matching closing brace.
    """

    start: int
    end: int


@dataclass
class JsonBoundaryScanner:
    """Character-by-character brace tracker that survives arbitrary splits.

    State carries across ``feed`` calls, so splitting the input anywhere
    (including between a backslash and the character it escapes) yields the
    same boundaries as scanning it in one piece.
    """

    depth: int = 0
    in_string: bool = False
    escape_pending: bool = False
    offset: int = 0
    _open_at: int | None = field(default=None, repr=False)

    def feed(self, text: str) -> list[DocumentBoundary]:
        """Scan ``text`` and return every top-level object closed within it."""
        boundaries: list[DocumentBoundary] = []
        for ch in text:
            position = self.offset
            self.offset += 1

            if self.escape_pending:
                self.escape_pending = False
                continue

            if self.in_string:
                if ch == "\\":
                    self.escape_pending = True
                elif ch == '"':
                    self.in_string = False
                continue

            # Quotes in prose before an object opens are not string literals.
            if ch == '"':
                if self.depth > 0:
                    self.in_string = True
            elif ch == "{":
                if self.depth == 0:
                    self._open_at = position
                self.depth += 1
            elif ch == "}":
                # Stray closer in prose; nothing is open.
                if self.depth == 0:
                    continue
                self.depth -= 1
                if self.depth == 0 and self._open_at is not None:
                    boundaries.append(DocumentBoundary(start=self._open_at, end=self.offset))
                    self._open_at = None
        return boundaries

    @property
    def balanced(self) -> bool:
        return self.depth == 0 and not self.in_string
