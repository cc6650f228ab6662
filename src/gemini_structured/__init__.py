"""Structured document generation over the Gemini API.

Two halves:

- ``GenerationOrchestrator`` obtains a complete response from a quota-limited
  service, rotating across credentials and retrying on overload or truncation.
- ``ProgressiveParser`` recovers a JSON object or array from free-form model
  output that may be wrapped in prose, truncated or badly escaped.

``generate_document`` combines both.
"""

import importlib.metadata
import logging

from gemini_structured.config import FrozenConfig, resolve_config
from gemini_structured.core.exceptions import (
    BoundaryNotFound,
    ConfigurationError,
    FatalRequestError,
    GeminiStructuredError,
    OrchestratorError,
    OverloadExhausted,
    QuotaExhausted,
    RecoveryError,
    RecoveryExhausted,
    SalvageEmpty,
    TransportError,
)
from gemini_structured.core.types import (
    ErrorClass,
    Failure,
    ParseAttempt,
    ParseDiagnostic,
    RawResponse,
    RecoveredDocument,
    RequestAttempt,
    Result,
    Shape,
    Strategy,
    Success,
)
from gemini_structured.frontdoor import create_orchestrator, generate_document
from gemini_structured.orchestrator import (
    CredentialPool,
    CredentialSlot,
    GenerationOrchestrator,
    describe_failure,
    orchestrate_generation,
)
from gemini_structured.recovery import (
    ParserOptions,
    ProgressiveParser,
    locate_boundary,
    normalize_syntax,
    recover_document,
    salvage_truncated_array,
    sanitize_escapes,
)
from gemini_structured.telemetry import TelemetryContext, TelemetryReporter

try:
    __version__ = importlib.metadata.version("gemini-structured")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [  # noqa: RUF022
    # Entry points
    "generate_document",
    "create_orchestrator",
    "orchestrate_generation",
    "recover_document",
    "resolve_config",
    "describe_failure",
    # Orchestration
    "GenerationOrchestrator",
    "CredentialPool",
    "CredentialSlot",
    "FrozenConfig",
    # Recovery
    "ProgressiveParser",
    "ParserOptions",
    "locate_boundary",
    "sanitize_escapes",
    "normalize_syntax",
    "salvage_truncated_array",
    # Types
    "Shape",
    "Strategy",
    "ErrorClass",
    "RawResponse",
    "RequestAttempt",
    "ParseAttempt",
    "ParseDiagnostic",
    "RecoveredDocument",
    "Result",
    "Success",
    "Failure",
    # Exceptions
    "GeminiStructuredError",
    "ConfigurationError",
    "TransportError",
    "RecoveryError",
    "BoundaryNotFound",
    "SalvageEmpty",
    "RecoveryExhausted",
    "OrchestratorError",
    "QuotaExhausted",
    "OverloadExhausted",
    "FatalRequestError",
    # Telemetry
    "TelemetryContext",
    "TelemetryReporter",
]
