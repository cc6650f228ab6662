import pytest

from gemini_structured.core.exceptions import (
    FatalRequestError,
    OverloadExhausted,
    QuotaExhausted,
    RecoveryExhausted,
    TransportError,
)
from gemini_structured.core.types import ErrorClass
from gemini_structured.orchestrator.classify import (
    classify_error,
    describe_failure,
    quota_limit_hint,
    retry_after_hint,
)

pytestmark = pytest.mark.unit


class FakeAPIError(Exception):
    """Shaped like google.genai.errors.APIError."""

    def __init__(self, code=None, status=None, details=None, message=""):
        super().__init__(message or f"{code} {status}")
        self.code = code
        self.status = status
        self.details = details


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (TransportError("whatever", error_class=ErrorClass.OVERLOAD), ErrorClass.OVERLOAD),
        (FakeAPIError(429, "RESOURCE_EXHAUSTED"), ErrorClass.QUOTA),
        (FakeAPIError(503, "UNAVAILABLE"), ErrorClass.OVERLOAD),
        (FakeAPIError(500, "INTERNAL"), ErrorClass.OVERLOAD),
        (FakeAPIError(504, "DEADLINE_EXCEEDED"), ErrorClass.OVERLOAD),
        (FakeAPIError(400, "INVALID_ARGUMENT", message="quota words do not matter"), ErrorClass.FATAL),
        (FakeAPIError(403, "PERMISSION_DENIED"), ErrorClass.FATAL),
        (FakeAPIError(None, "RESOURCE_EXHAUSTED"), ErrorClass.QUOTA),
        (FakeAPIError(None, "unavailable"), ErrorClass.OVERLOAD),
        (TimeoutError(), ErrorClass.OVERLOAD),
        (ConnectionResetError(), ErrorClass.OVERLOAD),
        (RuntimeError("You exceeded your current quota"), ErrorClass.QUOTA),
        (RuntimeError("Rate limit reached for requests"), ErrorClass.QUOTA),
        (RuntimeError("The model is overloaded. Please try again later."), ErrorClass.OVERLOAD),
        (ValueError("Invalid prompt"), ErrorClass.FATAL),
    ],
)
def test_classify_error(error, expected):
    assert classify_error(error) is expected


def test_status_code_wins_over_message_text():
    error = FakeAPIError(401, message="unavailable, try again later")

    assert classify_error(error) is ErrorClass.FATAL


def test_retry_after_from_retry_info_details():
    error = FakeAPIError(
        429,
        "RESOURCE_EXHAUSTED",
        details={
            "error": {
                "code": 429,
                "details": [
                    {"@type": "type.googleapis.com/google.rpc.QuotaFailure"},
                    {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "37s"},
                ],
            }
        },
    )

    assert retry_after_hint(error) == 37.0


def test_retry_after_from_message_and_transport_error():
    assert retry_after_hint(RuntimeError("Quota exceeded. Please retry in 12.5s.")) == 12.5
    assert retry_after_hint(TransportError("x", error_class=ErrorClass.QUOTA, retry_after=3.0)) == 3.0
    assert retry_after_hint(RuntimeError("no hint")) is None


def test_quota_limit_hint():
    assert quota_limit_hint(RuntimeError("Quota exceeded for metric, limit: 250")) == 250
    assert quota_limit_hint(RuntimeError("nothing")) is None


def test_describe_failure_distinguishes_transient_from_malformed():
    quota = describe_failure(QuotaExhausted("q", retry_after=30.0))
    overload = describe_failure(OverloadExhausted("o"))
    malformed = describe_failure(RecoveryExhausted(()))

    assert "try again" in quota and "30" in quota
    assert "try again" in overload
    assert "structured data" in malformed
    assert "try again" not in malformed.lower()


def test_describe_failure_reports_the_quota_limit():
    message = describe_failure(QuotaExhausted("q", retry_after=12.0, quota_limit=250))

    assert "limit: 250" in message
    assert "12 seconds" in message
    assert "limit" not in describe_failure(QuotaExhausted("q"))


def test_describe_failure_for_fatal_errors_is_actionable():
    rejected_key = FatalRequestError(
        "rejected", last_error=RuntimeError("400 INVALID_ARGUMENT: API key not valid")
    )
    blocked = FatalRequestError(
        "rejected", last_error=RuntimeError("Prompt blocked by safety filters (SAFETY)")
    )

    assert "API key" in describe_failure(rejected_key)
    assert "safety" in describe_failure(blocked)
    assert "unexpected" in describe_failure(KeyError("x"))
