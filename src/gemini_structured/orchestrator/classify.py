"""Classification of upstream failures.

Every failure is reduced to one of three classes: quota (rotate to another
credential), overload (back off and retry) or fatal (give up immediately).
Structured signals win over message text: a transport's own verdict first,
then the HTTP status code, then the RPC status name, and only then keyword
heuristics on the message.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

from gemini_structured import constants
from gemini_structured.core.exceptions import (
    FatalRequestError,
    OrchestratorError,
    OverloadExhausted,
    QuotaExhausted,
    RecoveryError,
    TransportError,
)
from gemini_structured.core.types import ErrorClass

log = logging.getLogger(__name__)

_FATAL_STATUS_CODES = frozenset({400, 401, 403, 404})

_QUOTA_STATUSES = frozenset({"RESOURCE_EXHAUSTED"})
_OVERLOAD_STATUSES = frozenset({"UNAVAILABLE", "DEADLINE_EXCEEDED", "INTERNAL"})

_QUOTA_TERMS = ("quota", "rate limit", "rate-limit", "too many requests", "429")
_OVERLOAD_TERMS = (
    "overloaded",
    "unavailable",
    "503",
    "timeout",
    "timed out",
    "temporarily",
    "try again later",
    "connection reset",
)

_RETRY_IN = re.compile(r"retry in\s+(\d+(?:\.\d+)?)\s*s", re.IGNORECASE)
_RETRY_DELAY = re.compile(r"retryDelay['\"]?\s*[:=]\s*['\"]?(\d+(?:\.\d+)?)s", re.IGNORECASE)
_QUOTA_LIMIT = re.compile(r"limit:\s*(\d+)", re.IGNORECASE)


def _status_code(err: BaseException) -> int | None:
    for attr in ("code", "status_code"):
        value = getattr(err, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _status_name(err: BaseException) -> str | None:
    value = getattr(err, "status", None)
    return value.upper() if isinstance(value, str) else None


def classify_error(err: BaseException) -> ErrorClass:
    """Return the ``ErrorClass`` for a failed upstream call."""
    if isinstance(err, TransportError):
        return err.error_class

    code = _status_code(err)
    if code is not None:
        if code in constants.QUOTA_STATUS_CODES:
            return ErrorClass.QUOTA
        if code in constants.OVERLOAD_STATUS_CODES:
            return ErrorClass.OVERLOAD
        if code in _FATAL_STATUS_CODES:
            return ErrorClass.FATAL

    status = _status_name(err)
    if status in _QUOTA_STATUSES:
        return ErrorClass.QUOTA
    if status in _OVERLOAD_STATUSES:
        return ErrorClass.OVERLOAD

    if isinstance(err, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return ErrorClass.OVERLOAD

    text = str(err).lower()
    if any(term in text for term in _QUOTA_TERMS):
        return ErrorClass.QUOTA
    if any(term in text for term in _OVERLOAD_TERMS):
        return ErrorClass.OVERLOAD
    return ErrorClass.FATAL


def _details_retry_delay(details: Any) -> float | None:
    """Extract ``retryDelay`` from a google.rpc.RetryInfo entry, if present."""
    if isinstance(details, dict):
        inner = details.get("error", details)
        details = inner.get("details") if isinstance(inner, dict) else None
    if not isinstance(details, list):
        return None
    for entry in details:
        if not isinstance(entry, dict):
            continue
        if not str(entry.get("@type", "")).endswith("RetryInfo"):
            continue
        delay = entry.get("retryDelay")
        if isinstance(delay, str) and delay.endswith("s"):
            try:
                return float(delay[:-1])
            except ValueError:
                log.debug("Unparseable retryDelay %r", delay)
    return None


def retry_after_hint(err: BaseException) -> float | None:
    """Seconds the upstream asked us to wait before retrying, if it said so."""
    if isinstance(err, TransportError):
        return err.retry_after
    delay = _details_retry_delay(getattr(err, "details", None))
    if delay is not None:
        return delay
    text = str(err)
    match = _RETRY_IN.search(text) or _RETRY_DELAY.search(text)
    return float(match.group(1)) if match else None


def quota_limit_hint(err: BaseException) -> int | None:
    """Quota limit reported in a quota error message, if any."""
    match = _QUOTA_LIMIT.search(str(err))
    return int(match.group(1)) if match else None


def _fatal_detail(err: BaseException | None) -> str:
    text = str(err).lower() if err is not None else ""
    if "api key" in text or "api_key" in text or "permission" in text:
        return "The configured API key was rejected. Check your credentials."
    if "safety" in text or "blocked" in text:
        return "The request was blocked by the provider's safety filters. Rephrase the prompt."
    if "not found" in text or ("model" in text and "404" in text):
        return "The requested model is not available. Check the configured model name."
    return "The request was rejected by the provider and was not retried."


def describe_failure(error: BaseException) -> str:
    """Short, user-facing explanation of a generation failure.

    Internal details (credential indices, raw upstream text) are never
    included; they belong in logs.
    """
    if isinstance(error, QuotaExhausted):
        wait = f" in about {int(error.retry_after)} seconds" if error.retry_after else " later"
        limit = f" (limit: {error.quota_limit} requests)" if error.quota_limit else ""
        return f"The service is rate-limited right now{limit}. Please try again{wait}."
    if isinstance(error, OverloadExhausted):
        return "The service is temporarily overloaded. Please try again in a few moments."
    if isinstance(error, FatalRequestError):
        return _fatal_detail(error.last_error or error)
    if isinstance(error, OrchestratorError):
        return "The request could not be completed. Please try again."
    if isinstance(error, RecoveryError):
        return (
            "The model returned output that could not be read as structured data. "
            "Try rephrasing the request."
        )
    if isinstance(error, TransportError):
        if error.error_class is ErrorClass.FATAL:
            return _fatal_detail(error)
        return "The service is temporarily unavailable. Please try again."
    return "An unexpected error occurred while generating content."
