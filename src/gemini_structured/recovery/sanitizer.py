"""Escape Sanitizer: make every backslash inside string literals valid.

A single left-to-right pass with the same quote-toggling rule as the boundary
locator. Text outside string literals passes through unchanged. The pass never
raises; an unrecoverable escape is kept literally by doubling its backslash.
"""

import re

from .scanning import is_escaped

_SIMPLE_ESCAPES = frozenset('"\\/bfnrt')
_HEX = frozenset("0123456789abcdefABCDEF")

# Raw control characters that have a short JSON escape; others are dropped.
_CONTROL_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

# LaTeX commands whose first letter collides with a JSON escape (\b \f \n \r \t).
LATEX_COMMANDS = frozenset(
    {
        "bar", "beta", "begin", "bigcap", "bigcup", "bigoplus", "binom",
        "bmod", "boldsymbol", "bot", "bullet",
        "flat", "forall", "frac",
        "nabla", "ne", "neg", "neq", "newline", "nexists", "ni", "not",
        "notin", "nu",
        "rangle", "rbrace", "rceil", "rfloor", "rho", "right",
        "rightarrow", "rightleftharpoons",
        "tan", "tanh", "tau", "text", "textbf", "textit", "textrm", "tfrac",
        "theta", "tilde", "times", "to", "top", "triangle",
    }
)

_LATEX_WORD = re.compile(r"[A-Za-z]+")


def _valid_unicode_escape(text: str, i: int) -> bool:
    digits = text[i + 2 : i + 6]
    return len(digits) == 4 and all(c in _HEX for c in digits)


def sanitize_escapes(text: str) -> str:
    """Repair invalid backslash escapes and raw control characters in strings.

    Idempotent: ``sanitize_escapes(sanitize_escapes(x)) == sanitize_escapes(x)``.
    """
    out: list[str] = []
    in_string = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if not in_string:
            if ch == '"' and not is_escaped(text, i):
                in_string = True
            out.append(ch)
            i += 1
            continue

        if ch == "\\":
            nxt = text[i + 1] if i + 1 < n else ""
            if nxt and nxt in _SIMPLE_ESCAPES:
                out.append(ch + nxt)
                i += 2
            elif nxt == "u" and _valid_unicode_escape(text, i):
                out.append(text[i : i + 6])
                i += 6
            else:
                # Keep the backslash literally; the next character is handled
                # on its own in the following iteration.
                out.append("\\\\")
                i += 1
            continue

        if ch == '"':
            in_string = False
            out.append(ch)
        elif ch in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[ch])
        elif ord(ch) >= 0x20:
            out.append(ch)
        i += 1
    return "".join(out)


def repair_latex_escapes(text: str, commands: frozenset[str] = LATEX_COMMANDS) -> str:
    """Double the backslash of LaTeX commands that would parse as JSON escapes.

    ``"\\frac{1}{2}"`` written by a generator as ``"\frac{1}{2}"`` would
    otherwise decode to a form feed followed by ``rac``. Only whole command
    names found in ``commands`` are touched, and only inside string literals.
    """
    out: list[str] = []
    in_string = False
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if not in_string:
            if ch == '"' and not is_escaped(text, i):
                in_string = True
            out.append(ch)
            i += 1
            continue
        if ch == "\\" and i + 1 < n:
            word = _LATEX_WORD.match(text, i + 1)
            if word and word.group(0) in commands:
                out.append("\\\\" + word.group(0))
                i = word.end()
                continue
            out.append(text[i : i + 2])
            i += 2
            continue
        if ch == '"':
            in_string = False
        out.append(ch)
        i += 1
    return "".join(out)
