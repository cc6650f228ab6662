"""Truncation Salvager: keep the complete elements of a cut-off array.

Generators that exhaust their output budget stop mid-element. For an
array-of-objects document everything up to the last fully closed top-level
element is still usable. Only object elements are recovered; an element is
kept only if its closing brace was actually seen.
"""

import logging

from gemini_structured.core.exceptions import SalvageEmpty
from gemini_structured.core.types import Failure, Result, SalvageResult, Success

from .scanning import structural_chars

log = logging.getLogger(__name__)

_SEPARATORS = " \t\r\n,"


def salvage_truncated_array(
    text: str, start: int | None = None
) -> Result[SalvageResult, SalvageEmpty]:
    """Recover the complete top-level elements of a truncated array.

    Args:
        text: Text containing the array.
        start: Offset of the array's opening bracket. Defaults to the first
            ``[`` in ``text``.

    Returns:
        ``Success`` with the element texts and discard counts, or
        ``Failure(SalvageEmpty)`` if no element was complete.
    """
    if start is None:
        start = text.find("[")
    if start < 0 or start >= len(text) or text[start] != "[":
        return Failure(
            SalvageEmpty("no opening '[' to salvage from", start=max(start, 0), scanned=0)
        )

    elements: list[str] = []
    depth = 0
    element_start = -1
    last_end = start
    closed = False
    for i, ch in structural_chars(text, start):
        if ch in "[{":
            depth += 1
            if depth == 2 and ch == "{":
                element_start = i
        elif ch in "]}":
            if depth == 2 and ch == "}" and element_start != -1:
                elements.append(text[element_start : i + 1])
                element_start = -1
                last_end = i
            depth -= 1
            if depth == 0:
                # The array closed after all; nothing was truncated.
                closed = True
                break

    if not elements:
        return Failure(
            SalvageEmpty(
                "truncated array holds no complete element",
                start=start,
                scanned=len(text) - start,
            )
        )

    tail = "" if closed else text[last_end + 1 :].lstrip(_SEPARATORS)
    result = SalvageResult(
        elements=tuple(elements),
        start=start,
        discarded_chars=len(tail),
        discarded_elements=1 if element_start != -1 else 0,
    )
    log.warning(
        "Salvaged %d complete elements from truncated array; discarded %d trailing chars",
        len(elements),
        result.discarded_chars,
    )
    return Success(result)
