import pytest

from gemini_structured.core.exceptions import RecoveryExhausted
from gemini_structured.core.types import Failure, RawResponse, Shape, Strategy, Success
from gemini_structured.recovery.parser import (
    ParserOptions,
    ProgressiveParser,
    recover_document,
)
from gemini_structured.telemetry import SimpleReporter, TelemetryContext

pytestmark = pytest.mark.unit


def _strategies(doc_or_error):
    return [a.strategy for a in doc_or_error.attempts]


def test_clean_document_parses_directly():
    doc = recover_document('[{"a": 1}]', Shape.ARRAY)

    assert doc.strategy is Strategy.DIRECT
    assert doc.value == [{"a": 1}]
    assert doc.salvaged is False
    assert len(doc.attempts) == 1


def test_prose_wrapped_array_is_extracted():
    doc = recover_document('Here is the data: [ {"a":1}, {"a":2} ] Thanks!', "array")

    assert doc.strategy is Strategy.EXTRACTED
    assert doc.value == [{"a": 1}, {"a": 2}]
    assert _strategies(doc) == [Strategy.DIRECT, Strategy.EXTRACTED]


def test_invalid_escape_is_fixed_by_sanitizing():
    text = r'Result: {"title": "Files", "path": "path\dir"} done'

    doc = recover_document(text, Shape.OBJECT)

    assert doc.strategy is Strategy.SANITIZED
    assert doc.value["path"] == "path\\dir"
    assert _strategies(doc) == [Strategy.DIRECT, Strategy.EXTRACTED, Strategy.SANITIZED]
    assert all(not a.succeeded for a in doc.attempts[:2])


def test_comments_and_trailing_commas_need_aggressive_cleaning():
    text = '{"a": 1, // the first\n "b": [1, 2,],}'

    doc = recover_document(text, Shape.OBJECT)

    assert doc.strategy is Strategy.AGGRESSIVELY_CLEANED
    assert doc.value == {"a": 1, "b": [1, 2]}


def test_false_anchor_is_recovered_by_resegmenting():
    text = 'Options ["x" or "y"] then: [{"a": 1}]'

    doc = recover_document(text, Shape.ARRAY)

    assert doc.strategy is Strategy.RESEGMENTED
    assert doc.value == [{"a": 1}]


def test_aggressive_cleaning_keeps_brackets_inside_strings():
    text = '{"f": "$\\\\frac{1}{2}$", "g": "[a] [b]", // note\n "h": [1,],}'

    doc = recover_document(text, Shape.OBJECT)

    assert doc.strategy is Strategy.AGGRESSIVELY_CLEANED
    assert doc.value == {"f": "$\\frac{1}{2}$", "g": "[a] [b]", "h": [1]}


def test_resegmenting_keeps_brackets_inside_strings():
    text = r'Options ["x" or "y"] then: [{"f": "$\\frac{1}{2}$", "g": "[a] [b]"}]'

    doc = recover_document(text, Shape.ARRAY)

    assert doc.strategy is Strategy.RESEGMENTED
    assert doc.value == [{"f": "$\\frac{1}{2}$", "g": "[a] [b]"}]


def test_salvaged_elements_keep_latex_intact():
    text = r'[{"f": "$\\frac{1}{2}$", "g": "[a] [b]"}, {"f": "$x^2$"}, {"f": "$\\sqrt{'

    doc = recover_document(text, Shape.ARRAY)

    assert doc.strategy is Strategy.SALVAGED
    assert doc.value == [{"f": "$\\frac{1}{2}$", "g": "[a] [b]"}, {"f": "$x^2$"}]


def test_truncated_array_is_salvaged():
    fragment = '{"q": "What is th'
    raw = RawResponse(
        text='```json\n[{"q": "One"}, {"q": "Two"}, ' + fragment,
        request_id="req-1",
        truncated_suspected=True,
    )

    doc = recover_document(raw, Shape.ARRAY)

    assert doc.strategy is Strategy.SALVAGED
    assert doc.salvaged is True
    assert doc.value == [{"q": "One"}, {"q": "Two"}]
    assert doc.discarded_chars == len(fragment)
    assert doc.discarded_elements == 1
    assert doc.request_id == "req-1"


def test_truncated_object_is_not_salvaged():
    with pytest.raises(RecoveryExhausted) as exc_info:
        recover_document('{"a": [1, 2', Shape.OBJECT)

    last = exc_info.value.attempts[-1]
    assert last.strategy is Strategy.SALVAGED
    assert last.diagnostic is not None
    assert last.diagnostic.skipped is True


def test_shape_mismatch_exhausts_all_strategies_with_chained_diagnostics():
    with pytest.raises(RecoveryExhausted) as exc_info:
        recover_document('{"a": [1]}', Shape.ARRAY)

    error = exc_info.value
    assert _strategies(error) == list(Strategy)
    assert "expected array" in error.diagnostic.message
    chain = error.attempts[-1].diagnostic.chain()
    assert len(chain) == len(Strategy)
    assert chain[-1] is error.attempts[0].diagnostic


def test_json_errors_carry_offset_and_excerpt():
    with pytest.raises(RecoveryExhausted) as exc_info:
        recover_document('{"a": 1 "b" 2}', Shape.OBJECT)

    diagnostic = exc_info.value.diagnostic
    assert diagnostic is not None
    assert diagnostic.offset is not None
    assert diagnostic.excerpt
    assert "offset" in str(exc_info.value)


def test_attempt_recovery_returns_result_instead_of_raising():
    parser = ProgressiveParser()

    ok = parser.attempt_recovery('{"a": 1}', Shape.OBJECT)
    bad = parser.attempt_recovery("nothing structured", Shape.OBJECT)

    assert isinstance(ok, Success)
    assert isinstance(bad, Failure)
    assert isinstance(bad.error, RecoveryExhausted)


def test_latex_awareness_is_opt_in():
    text = r'{"formula": "\frac{1}{2}"}'

    plain = recover_document(text, Shape.OBJECT)
    latex = ProgressiveParser(ParserOptions(latex_aware=True)).recover(text, Shape.OBJECT)

    assert plain.value["formula"] == "\frac{1}{2}"
    assert latex.value["formula"] == "\\frac{1}{2}"


def test_parser_options_are_validated():
    with pytest.raises(ValueError, match="max_resegment_candidates"):
        ParserOptions(max_resegment_candidates=0)


def test_strategy_counter_is_reported_when_telemetry_enabled(monkeypatch):
    monkeypatch.setenv("GEMINI_STRUCTURED_TELEMETRY", "1")
    reporter = SimpleReporter()
    parser = ProgressiveParser(telemetry=TelemetryContext(reporter))

    parser.recover('Here: {"a": 1}', Shape.OBJECT)

    assert reporter.total("recovery.parse.recovery.strategy.extracted") == 1
    assert "recovery.parse" in reporter.timings
