"""String-aware character scanning shared by the recovery stages.

A double quote toggles string state only when it is preceded by an even
number of consecutive backslashes. Escape validity is not checked here.
"""

from collections.abc import Iterator


def is_escaped(text: str, index: int) -> bool:
    """Whether the character at ``index`` is preceded by an odd backslash run."""
    run = 0
    j = index - 1
    while j >= 0 and text[j] == "\\":
        run += 1
        j -= 1
    return run % 2 == 1


def structural_chars(text: str, start: int = 0) -> Iterator[tuple[int, str]]:
    """Yield ``(index, char)`` for every character outside string literals.

    String delimiters themselves are not yielded.
    """
    in_string = False
    run = 0
    for i in range(start, len(text)):
        ch = text[i]
        if ch == '"' and run % 2 == 0:
            in_string = not in_string
        elif not in_string:
            yield i, ch
        run = run + 1 if ch == "\\" else 0
