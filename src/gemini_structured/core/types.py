"""Core data types that flow through generation and recovery.

All types are immutable. Each recovery stage produces a new value derived from
its input rather than editing a previous stage's output, which keeps a
complete audit trail of what was attempted.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
import typing

# --- Minimal guard helpers ---


def _require(
    *,
    condition: bool,
    message: str,
    exc: type[Exception] = ValueError,
    field_name: str | None = None,
) -> None:
    """Centralized validation with optional field context for clearer errors."""
    if not condition:
        if field_name:
            raise exc(f"{field_name}: {message}")
        raise exc(message)


# --- Result Monad ---
# Stages return a Result instead of raising, so the progressive parser can
# decide deterministically whether to escalate.

TSuccess = typing.TypeVar("TSuccess")
TFailure = typing.TypeVar("TFailure")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[TSuccess]:
    """A successful stage result."""

    value: TSuccess


@dataclasses.dataclass(frozen=True, slots=True)
class Failure[TFailure]:
    """A failed stage result, containing the error."""

    error: TFailure


Result = Success[TSuccess] | Failure[TFailure]


# --- Enumerations ---


class Shape(str, Enum):
    """Expected top-level shape of a structured document."""

    OBJECT = "object"
    ARRAY = "array"

    @property
    def opener(self) -> str:
        return "{" if self is Shape.OBJECT else "["

    @property
    def closer(self) -> str:
        return "}" if self is Shape.OBJECT else "]"

    def matches(self, value: typing.Any) -> bool:
        """Whether a parsed value has this shape."""
        if self is Shape.OBJECT:
            return isinstance(value, dict)
        return isinstance(value, list)

    @classmethod
    def coerce(cls, value: Shape | str) -> Shape:
        if isinstance(value, Shape):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Invalid shape: {value!r}. Must be one of: object, array"
            ) from None


class ErrorClass(str, Enum):
    """Classification of one failed upstream call."""

    QUOTA = "quota"
    OVERLOAD = "overload"
    FATAL = "fatal"

    @property
    def retryable(self) -> bool:
        return self is not ErrorClass.FATAL


class Strategy(str, Enum):
    """Parse strategies, in escalation order."""

    DIRECT = "direct"
    EXTRACTED = "extracted"
    SANITIZED = "sanitized"
    AGGRESSIVELY_CLEANED = "aggressively-cleaned"
    RESEGMENTED = "resegmented"
    SALVAGED = "salvaged"


# --- Generation data ---


@dataclasses.dataclass(frozen=True, slots=True)
class RawResponse:
    """Complete text returned by one successful upstream call."""

    text: str
    request_id: str = ""
    finish_reason: str | None = None
    output_budget: int | None = None
    truncated_suspected: bool = False

    def __post_init__(self) -> None:
        _require(
            condition=isinstance(self.text, str),
            message="must be str",
            field_name="text",
            exc=TypeError,
        )

    @property
    def length(self) -> int:
        return len(self.text)

    def __repr__(self) -> str:
        return (
            f"RawResponse(request_id={self.request_id!r}, length={self.length}, "
            f"finish_reason={self.finish_reason!r}, "
            f"truncated_suspected={self.truncated_suspected!r})"
        )


@dataclasses.dataclass(frozen=True, slots=True)
class RequestAttempt:
    """One call to the upstream service, recorded for diagnostics."""

    slot_index: int
    attempt: int
    elapsed: float
    outcome: typing.Literal["success", "truncated"] | ErrorClass
    output_budget: int
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome == "success"


# --- Recovery data ---


@dataclasses.dataclass(frozen=True, slots=True)
class CandidateSpan:
    """Half-open ``[start, end)`` range believed to hold the structured value.

    ``end - 1`` is always the offset of the structural character that closes
    the structure opened at ``start``.
    """

    start: int
    end: int
    shape: Shape

    def __post_init__(self) -> None:
        _require(
            condition=0 <= self.start < self.end,
            message=f"invalid span [{self.start}, {self.end})",
            field_name="span",
        )

    @property
    def close(self) -> int:
        return self.end - 1

    def slice(self, text: str) -> str:
        return text[self.start : self.end]


@dataclasses.dataclass(frozen=True, slots=True)
class ParseDiagnostic:
    """Why one strategy failed, chained to the previous stage's diagnostic."""

    message: str
    offset: int | None = None
    excerpt: str = ""
    skipped: bool = False
    previous: ParseDiagnostic | None = None

    def describe(self) -> str:
        where = f" at offset {self.offset}" if self.offset is not None else ""
        near = f" near {self.excerpt!r}" if self.excerpt else ""
        return f"{self.message}{where}{near}"

    def chain(self) -> tuple[ParseDiagnostic, ...]:
        """This diagnostic followed by every earlier one, newest first."""
        out: list[ParseDiagnostic] = []
        node: ParseDiagnostic | None = self
        while node is not None:
            out.append(node)
            node = node.previous
        return tuple(out)


@dataclasses.dataclass(frozen=True, slots=True)
class ParseAttempt:
    """One strategy, the text it tried to parse, and what happened."""

    strategy: Strategy
    text: str
    outcome: Result[typing.Any, ParseDiagnostic]

    @property
    def succeeded(self) -> bool:
        return isinstance(self.outcome, Success)

    @property
    def diagnostic(self) -> ParseDiagnostic | None:
        if isinstance(self.outcome, Failure):
            return self.outcome.error
        return None


@dataclasses.dataclass(frozen=True, slots=True)
class SalvageResult:
    """Complete elements recovered from a truncated array."""

    elements: tuple[str, ...]
    start: int
    discarded_chars: int
    discarded_elements: int

    def to_text(self) -> str:
        return "[" + ",".join(self.elements) + "]"


@dataclasses.dataclass(frozen=True, slots=True)
class RecoveredDocument:
    """A successfully recovered structured value."""

    value: typing.Any
    strategy: Strategy
    salvaged: bool = False
    discarded_chars: int = 0
    discarded_elements: int = 0
    attempts: tuple[ParseAttempt, ...] = ()
    request_id: str = ""

    def __post_init__(self) -> None:
        _require(
            condition=self.salvaged or (
                self.discarded_chars == 0 and self.discarded_elements == 0
            ),
            message="discard counts are only meaningful for salvaged documents",
            field_name="salvaged",
        )
