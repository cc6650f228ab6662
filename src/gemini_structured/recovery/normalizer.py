"""Syntax Normalizer and related text-level cleanups.

These are best-effort heuristics: they never fail, they only potentially
no-op. Every cleanup here leaves the contents of string literals untouched.
"""

import re

from gemini_structured.core.types import Shape

from .scanning import is_escaped

_CLOSERS = frozenset("}]")
# Characters that can only follow a closer after a missing separator.
_NEEDS_SEPARATOR = frozenset("{[\"")

_LEADING_FENCE = re.compile(r"^\s*```[A-Za-z0-9_-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?[ \t]*```\s*$")

# Non-printable controls except tab, newline and carriage return.
_STRAY_CONTROLS = frozenset(
    chr(c) for c in (*range(0x00, 0x09), 0x0B, 0x0C, *range(0x0E, 0x20), 0x7F)
)


def normalize_syntax(text: str) -> str:
    """Remove trailing commas and insert missing ones between structures.

    A comma is dropped when the next non-whitespace character closes a
    structure. One is inserted after a closing bracket or brace that is
    directly followed by an opener or a quoted value.
    """
    out: list[str] = []
    in_string = False
    for i, ch in enumerate(text):
        if in_string:
            if ch == '"' and not is_escaped(text, i):
                in_string = False
            out.append(ch)
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            continue
        if ch == "," and _next_significant(text, i + 1) in _CLOSERS:
            continue
        out.append(ch)
        if ch in _CLOSERS and _next_significant(text, i + 1) in _NEEDS_SEPARATOR:
            out.append(",")
    return "".join(out)


def _next_significant(text: str, start: int) -> str:
    for i in range(start, len(text)):
        if not text[i].isspace():
            return text[i]
    return ""


def strip_comments_and_controls(text: str) -> str:
    """Drop ``//`` and ``/* */`` comments and stray control characters.

    Only text outside string literals is affected, so URLs inside strings
    survive.
    """
    out: list[str] = []
    in_string = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if in_string:
            if ch == '"' and not is_escaped(text, i):
                in_string = False
            out.append(ch)
            i += 1
            continue
        if ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            if ch not in _STRAY_CONTROLS:
                out.append(ch)
            i += 1
    return "".join(out)


def strip_code_fences(text: str) -> str:
    """Remove a leading ```` ```json ```` fence and a trailing ```` ``` ````."""
    stripped = _LEADING_FENCE.sub("", text, count=1)
    return _TRAILING_FENCE.sub("", stripped, count=1).strip()


def ends_cleanly(text: str, shape: Shape) -> bool:
    """Whether the text ends with the closing character of ``shape``.

    Whitespace and a trailing code fence are ignored.
    """
    return strip_code_fences(text).endswith(shape.closer)
