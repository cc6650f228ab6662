"""Boundary Locator: find the structured value embedded in surrounding text.

The default anchor is the first opening character that is eventually followed
by a double quote, skipping only whitespace and further openers on the way
(``[ {"``, ``{"``). This is a heuristic that skips most structural characters
appearing in leading prose, such as ``[1]`` footnotes; it is not a guarantee.
The lax anchor accepts any opening character and is used when resegmenting.
"""

from collections.abc import Iterator
import logging
import re

from gemini_structured.core.exceptions import BoundaryNotFound
from gemini_structured.core.types import (
    CandidateSpan,
    Failure,
    Result,
    Shape,
    Success,
)

from .scanning import structural_chars

log = logging.getLogger(__name__)

_STRICT_ANCHORS: dict[Shape, re.Pattern[str]] = {
    Shape.OBJECT: re.compile(r'\{[\s{\[]*"'),
    Shape.ARRAY: re.compile(r'\[[\s{\[]*"'),
}


def anchor_positions(
    text: str, shape: Shape, *, lax: bool = False, start: int = 0
) -> Iterator[int]:
    """Yield candidate start offsets in increasing order."""
    if lax:
        idx = text.find(shape.opener, start)
        while idx != -1:
            yield idx
            idx = text.find(shape.opener, idx + 1)
        return
    for match in _STRICT_ANCHORS[shape].finditer(text, start):
        yield match.start()


def span_from(text: str, start: int, shape: Shape) -> Result[CandidateSpan, BoundaryNotFound]:
    """Match the structure opened at ``start`` to its closing character."""
    depth = 0
    for i, ch in structural_chars(text, start):
        if ch == shape.opener:
            depth += 1
        elif ch == shape.closer:
            depth -= 1
            if depth == 0:
                return Success(CandidateSpan(start=start, end=i + 1, shape=shape))
    return Failure(
        BoundaryNotFound(
            f"{shape.value} opened at offset {start} never closes "
            f"(depth {depth} at end of text)",
            shape=shape,
            start=start,
            depth=depth,
        )
    )


def locate_boundary(
    text: str, shape: Shape | str, *, lax: bool = False
) -> Result[CandidateSpan, BoundaryNotFound]:
    """Return the span of the first top-level structure of ``shape``.

    Structural characters inside string literals, including strings with
    escaped quotes, are ignored. When the anchored structure never closes the
    failure carries the open depth, which is how callers recognize truncation.
    """
    shape = Shape.coerce(shape)
    start = next(anchor_positions(text, shape, lax=lax), None)
    if start is None:
        kind = "any" if lax else "an anchored"
        return Failure(
            BoundaryNotFound(
                f"no {kind} '{shape.opener}' found in text of length {len(text)}",
                shape=shape,
            )
        )
    result = span_from(text, start, shape)
    if isinstance(result, Failure):
        log.debug("Boundary scan failed: %s", result.error)
    return result
