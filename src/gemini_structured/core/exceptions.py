"""Exception hierarchy for structured generation.

Recovery errors describe what could not be salvaged from upstream text;
orchestrator errors describe why no text was obtained in the first place.
Callers typically only catch the two families below the base class.
"""

from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from gemini_structured.core.types import (
        ErrorClass,
        ParseAttempt,
        ParseDiagnostic,
        RequestAttempt,
        Shape,
    )


class GeminiStructuredError(Exception):
    """Base exception for all library errors."""


class ConfigurationError(GeminiStructuredError):
    """Raised when configuration is missing or invalid."""


# --- Transport ---


class TransportError(GeminiStructuredError):
    """Raised by a transport when one upstream call fails.

    The ``error_class`` is the transport's own verdict; the orchestrator uses
    it directly instead of inspecting the message.
    """

    def __init__(
        self,
        message: str,
        *,
        error_class: ErrorClass,
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_class = error_class
        self.status_code = status_code
        self.retry_after = retry_after


# --- Recovery ---


class RecoveryError(GeminiStructuredError):
    """Base class for failures while recovering a structured document."""


class BoundaryNotFound(RecoveryError):
    """No structural anchor was found, or the anchored structure never closed.

    ``depth`` is the nesting depth still open at end of text (0 when no anchor
    was found at all). A positive depth on an array means the text was most
    likely truncated and may be salvaged.
    """

    def __init__(
        self,
        message: str,
        *,
        shape: Shape,
        start: int | None = None,
        depth: int = 0,
    ) -> None:
        super().__init__(message)
        self.shape = shape
        self.start = start
        self.depth = depth

    @property
    def truncated(self) -> bool:
        return self.start is not None and self.depth > 0


class SalvageEmpty(RecoveryError):
    """A truncated array did not contain a single complete element."""

    def __init__(self, message: str, *, start: int, scanned: int) -> None:
        super().__init__(message)
        self.start = start
        self.scanned = scanned


class RecoveryExhausted(RecoveryError):
    """Every parse strategy failed.

    Carries the full attempt trail so callers can log exactly what was tried.
    """

    def __init__(self, attempts: tuple[ParseAttempt, ...], *, request_id: str = "") -> None:
        self.attempts = attempts
        self.request_id = request_id
        diagnostic = self.diagnostic
        detail = f": {diagnostic.describe()}" if diagnostic else ""
        super().__init__(
            f"Could not recover a structured document after {len(attempts)} "
            f"strategies{detail}"
        )

    @property
    def diagnostic(self) -> ParseDiagnostic | None:
        """Most specific diagnostic available (the last one with an offset)."""
        diagnostics = [a.diagnostic for a in self.attempts if a.diagnostic]
        for diag in reversed(diagnostics):
            if diag.offset is not None:
                return diag
        return diagnostics[-1] if diagnostics else None


# --- Orchestration ---


class OrchestratorError(GeminiStructuredError):
    """Base class for a generation request that produced no usable response."""

    def __init__(
        self,
        message: str,
        *,
        attempts: tuple[RequestAttempt, ...] = (),
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error

    @property
    def retryable(self) -> bool:
        """Whether trying again later is a sensible reaction."""
        return False


class QuotaExhausted(OrchestratorError):
    """Every credential hit its quota within the attempt budget."""

    def __init__(
        self,
        *args: typing.Any,
        retry_after: float | None = None,
        quota_limit: int | None = None,
        **kwargs: typing.Any,
    ) -> None:
        super().__init__(*args, **kwargs)
        self.retry_after = retry_after
        self.quota_limit = quota_limit

    @property
    def retryable(self) -> bool:
        return True


class OverloadExhausted(OrchestratorError):
    """The upstream service stayed overloaded across every retry."""

    @property
    def retryable(self) -> bool:
        return True


class FatalRequestError(OrchestratorError):
    """A non-retryable upstream failure (bad request, invalid key, blocked)."""
