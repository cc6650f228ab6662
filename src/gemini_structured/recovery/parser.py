"""Progressive Parser: escalate through repair strategies until one parses.

Strategies run in a fixed order and stop at the first success:

1. ``direct``: the raw text, unmodified.
2. ``extracted``: the span found by the boundary locator, unmodified.
3. ``sanitized``: the span after escape sanitizing.
4. ``aggressively-cleaned``: comments and stray controls removed, sanitized,
   then syntax normalized.
5. ``resegmented``: the boundary re-anchored on the cleaned text with the lax
   anchor, trying each top-level opener in turn.
6. ``salvaged``: for truncated arrays only, the complete elements rebuilt into
   a new array.

Every strategy is recorded as a ``ParseAttempt`` (inapplicable ones are marked
as skipped) and each failure links to the diagnostic before it. Stages never
raise into each other; only exhaustion is raised, as ``RecoveryExhausted``.
"""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import TYPE_CHECKING, Any, cast

from gemini_structured import constants
from gemini_structured.core.exceptions import BoundaryNotFound, RecoveryExhausted
from gemini_structured.core.types import (
    Failure,
    ParseAttempt,
    ParseDiagnostic,
    RawResponse,
    RecoveredDocument,
    Result,
    Shape,
    Strategy,
    Success,
)
from gemini_structured.telemetry import TelemetryContext

from .boundary import locate_boundary, span_from
from .normalizer import normalize_syntax, strip_comments_and_controls
from .salvager import salvage_truncated_array
from .sanitizer import repair_latex_escapes, sanitize_escapes
from .scanning import structural_chars

if TYPE_CHECKING:
    from gemini_structured.telemetry import TelemetryContextProtocol

log = logging.getLogger(__name__)

T_RECOVERY_PARSE = "recovery.parse"


@dataclasses.dataclass(frozen=True, slots=True)
class ParserOptions:
    """Tunables for the progressive parser."""

    latex_aware: bool = False
    max_resegment_candidates: int = constants.MAX_RESEGMENT_CANDIDATES
    excerpt_radius: int = constants.EXCERPT_RADIUS

    def __post_init__(self) -> None:
        if self.max_resegment_candidates < 1:
            raise ValueError("max_resegment_candidates: must be >= 1")
        if self.excerpt_radius < 0:
            raise ValueError("excerpt_radius: must be >= 0")


@dataclasses.dataclass(slots=True)
class _Trail:
    """Mutable bookkeeping for one recovery run."""

    attempts: list[ParseAttempt] = dataclasses.field(default_factory=list)
    last: ParseDiagnostic | None = None

    def record(self, attempt: ParseAttempt) -> ParseAttempt:
        self.attempts.append(attempt)
        if attempt.diagnostic is not None:
            self.last = attempt.diagnostic
        return attempt

    def tried(self, text: str) -> bool:
        return any(a.text == text and not _is_skip(a) for a in self.attempts)


def _is_skip(attempt: ParseAttempt) -> bool:
    diag = attempt.diagnostic
    return diag is not None and diag.skipped


class ProgressiveParser:
    """Recovers a structured value from generator output."""

    def __init__(
        self,
        options: ParserOptions | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self.options = options or ParserOptions()
        self._telemetry: TelemetryContextProtocol = telemetry or TelemetryContext()

    # --- Public API ---

    def recover(self, raw: RawResponse | str, shape: Shape | str) -> RecoveredDocument:
        """Return the recovered document or raise ``RecoveryExhausted``."""
        result = self.attempt_recovery(raw, shape)
        if isinstance(result, Failure):
            raise result.error
        return result.value

    def attempt_recovery(
        self, raw: RawResponse | str, shape: Shape | str
    ) -> Result[RecoveredDocument, RecoveryExhausted]:
        """Run the escalation chain and return a ``Result`` instead of raising."""
        if isinstance(raw, str):
            raw = RawResponse(text=raw)
        shape = Shape.coerce(shape)

        with self._telemetry(T_RECOVERY_PARSE, shape=shape.value) as tele:
            trail = _Trail()
            document = self._run(raw, shape, trail)
            if document is not None:
                tele.count(f"recovery.strategy.{document.strategy.value}")
                if document.salvaged:
                    tele.gauge("recovery.salvaged_discarded_chars", document.discarded_chars)
                return Success(document)

        error = RecoveryExhausted(tuple(trail.attempts), request_id=raw.request_id)
        log.error("Recovery exhausted for request %s: %s", raw.request_id or "-", error)
        return Failure(error)

    # --- Escalation chain ---

    def _run(self, raw: RawResponse, shape: Shape, trail: _Trail) -> RecoveredDocument | None:
        base = repair_latex_escapes(raw.text) if self.options.latex_aware else raw.text

        # 1. direct
        attempt = trail.record(self._attempt(Strategy.DIRECT, base, shape, trail.last))
        if attempt.succeeded:
            return self._document(attempt, raw, trail)

        # 2. extracted
        located = locate_boundary(base, shape)
        truncation: tuple[str, BoundaryNotFound] | None = None
        span_text: str | None = None
        if isinstance(located, Success):
            span_text = located.value.slice(base)
            attempt = trail.record(self._attempt(Strategy.EXTRACTED, span_text, shape, trail.last))
            if attempt.succeeded:
                return self._document(attempt, raw, trail)
        else:
            if located.error.truncated:
                truncation = (base, located.error)
            trail.record(self._skip(Strategy.EXTRACTED, located.error, trail.last))

        # 3. sanitized
        if span_text is not None:
            sanitized = sanitize_escapes(span_text)
            attempt = trail.record(self._attempt(Strategy.SANITIZED, sanitized, shape, trail.last))
            if attempt.succeeded:
                return self._document(attempt, raw, trail)
        else:
            trail.record(self._skip(Strategy.SANITIZED, "no candidate span", trail.last))

        # 4. aggressively-cleaned
        if span_text is not None:
            cleaned = normalize_syntax(sanitize_escapes(strip_comments_and_controls(span_text)))
            attempt = trail.record(
                self._attempt(Strategy.AGGRESSIVELY_CLEANED, cleaned, shape, trail.last)
            )
            if attempt.succeeded:
                return self._document(attempt, raw, trail)
        else:
            trail.record(
                self._skip(Strategy.AGGRESSIVELY_CLEANED, "no candidate span", trail.last)
            )

        # 5. resegmented
        cleaned_full = strip_comments_and_controls(base)
        attempt, lax_truncation = self._resegment(cleaned_full, shape, trail)
        trail.record(attempt)
        if attempt.succeeded:
            return self._document(attempt, raw, trail)
        if truncation is None and lax_truncation is not None:
            truncation = (cleaned_full, lax_truncation)

        # 6. salvaged
        if shape is not Shape.ARRAY or truncation is None:
            reason = (
                "salvage applies to arrays only"
                if shape is not Shape.ARRAY
                else "array was not truncated"
            )
            trail.record(self._skip(Strategy.SALVAGED, reason, trail.last))
            return None
        source, boundary_error = truncation
        salvage = salvage_truncated_array(source, boundary_error.start)
        if isinstance(salvage, Failure):
            trail.record(self._skip(Strategy.SALVAGED, salvage.error, trail.last))
            return None
        rebuilt = sanitize_escapes(salvage.value.to_text())
        attempt = trail.record(self._attempt(Strategy.SALVAGED, rebuilt, shape, trail.last))
        if not attempt.succeeded:
            return None
        return self._document(
            attempt,
            raw,
            trail,
            salvaged=True,
            discarded_chars=salvage.value.discarded_chars,
            discarded_elements=salvage.value.discarded_elements,
        )

    def _resegment(
        self, cleaned: str, shape: Shape, trail: _Trail
    ) -> tuple[ParseAttempt, BoundaryNotFound | None]:
        """Try each top-level opener of ``shape`` as a fresh anchor.

        Returns the first successful attempt, or the last failed one, together
        with the first truncated candidate seen (if any).
        """
        truncation: BoundaryNotFound | None = None
        last_attempt: ParseAttempt | None = None
        tried = 0
        for start in _top_level_openers(cleaned, shape):
            if tried >= self.options.max_resegment_candidates:
                break
            located = span_from(cleaned, start, shape)
            if isinstance(located, Failure):
                if truncation is None:
                    truncation = located.error
                continue
            candidate = normalize_syntax(sanitize_escapes(located.value.slice(cleaned)))
            if trail.tried(candidate):
                continue
            tried += 1
            previous = last_attempt.diagnostic if last_attempt else trail.last
            last_attempt = self._attempt(Strategy.RESEGMENTED, candidate, shape, previous)
            if last_attempt.succeeded:
                log.debug("Resegmented anchor at offset %d parsed", start)
                return last_attempt, truncation

        if last_attempt is not None:
            return last_attempt, truncation
        reason: BoundaryNotFound | str = truncation or "no further candidate spans"
        return self._skip(Strategy.RESEGMENTED, reason, trail.last), truncation

    # --- Helpers ---

    def _attempt(
        self,
        strategy: Strategy,
        text: str,
        shape: Shape,
        previous: ParseDiagnostic | None,
    ) -> ParseAttempt:
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            diag = ParseDiagnostic(
                message=e.msg,
                offset=e.pos,
                excerpt=self._excerpt(text, e.pos),
                previous=previous,
            )
            log.debug("Strategy %s failed: %s", strategy.value, diag.describe())
            return ParseAttempt(strategy, text, Failure(diag))
        except (ValueError, RecursionError) as e:
            diag = ParseDiagnostic(message=str(e) or type(e).__name__, previous=previous)
            return ParseAttempt(strategy, text, Failure(diag))

        if not shape.matches(value):
            diag = ParseDiagnostic(
                message=f"expected {shape.value}, got {type(value).__name__}",
                offset=0,
                excerpt=self._excerpt(text, 0),
                previous=previous,
            )
            return ParseAttempt(strategy, text, Failure(diag))
        return ParseAttempt(strategy, text, Success(value))

    def _skip(
        self,
        strategy: Strategy,
        reason: BoundaryNotFound | Exception | str,
        previous: ParseDiagnostic | None,
    ) -> ParseAttempt:
        offset = getattr(reason, "start", None)
        diag = ParseDiagnostic(
            message=f"{strategy.value} not applicable: {reason}",
            offset=offset,
            skipped=True,
            previous=previous,
        )
        return ParseAttempt(strategy, "", Failure(diag))

    def _excerpt(self, text: str, pos: int) -> str:
        radius = self.options.excerpt_radius
        return text[max(0, pos - radius) : pos + radius]

    def _document(
        self,
        attempt: ParseAttempt,
        raw: RawResponse,
        trail: _Trail,
        **salvage: Any,
    ) -> RecoveredDocument:
        if attempt.strategy is not Strategy.DIRECT:
            log.info(
                "Recovered %s document via '%s' after %d attempts",
                "salvaged" if salvage.get("salvaged") else "complete",
                attempt.strategy.value,
                len(trail.attempts),
            )
        return RecoveredDocument(
            value=cast("Success[Any]", attempt.outcome).value,
            strategy=attempt.strategy,
            attempts=tuple(trail.attempts),
            request_id=raw.request_id,
            **salvage,
        )


def _top_level_openers(text: str, shape: Shape) -> list[int]:
    """Offsets of ``shape`` openers that are not nested in another structure."""
    positions: list[int] = []
    depth = 0
    for i, ch in structural_chars(text):
        if ch in "[{":
            if depth == 0 and ch == shape.opener:
                positions.append(i)
            depth += 1
        elif ch in "]}":
            depth = max(0, depth - 1)
    return positions


def recover_document(
    raw: RawResponse | str,
    expected_shape: Shape | str,
    *,
    options: ParserOptions | None = None,
) -> RecoveredDocument:
    """Recover a structured document from raw generator output.

    Raises:
        RecoveryExhausted: if every strategy failed. The exception carries the
            full list of attempts for logging.
    """
    return ProgressiveParser(options).recover(raw, expected_shape)
