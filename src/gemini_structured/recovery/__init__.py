"""Recovery of structured documents from free-form generator output."""

from .boundary import anchor_positions, locate_boundary
from .normalizer import (
    ends_cleanly,
    normalize_syntax,
    strip_code_fences,
    strip_comments_and_controls,
)
from .parser import ParserOptions, ProgressiveParser, recover_document
from .salvager import salvage_truncated_array
from .sanitizer import repair_latex_escapes, sanitize_escapes

__all__ = [  # noqa: RUF022
    "locate_boundary",
    "anchor_positions",
    "sanitize_escapes",
    "repair_latex_escapes",
    "normalize_syntax",
    "strip_comments_and_controls",
    "strip_code_fences",
    "ends_cleanly",
    "salvage_truncated_array",
    "ProgressiveParser",
    "ParserOptions",
    "recover_document",
]
