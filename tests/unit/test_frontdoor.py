import pytest

from gemini_structured import generate_document
from gemini_structured.core.exceptions import OverloadExhausted, RecoveryExhausted
from gemini_structured.core.types import Shape, Strategy
from gemini_structured.frontdoor import parser_options
from gemini_structured.recovery.parser import ParserOptions
from tests.fixtures.transports import overload_error

pytestmark = pytest.mark.unit


@pytest.mark.asyncio
async def test_fenced_response_is_generated_and_recovered(make_orchestrator):
    orchestrator, transport, _ = make_orchestrator(['```json\n[{"q": "A"}]\n```'])

    doc = await generate_document("Write one question", 1, "array", orchestrator=orchestrator)

    assert doc.value == [{"q": "A"}]
    assert doc.strategy is Strategy.EXTRACTED
    assert doc.request_id
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_truncated_response_is_salvaged_end_to_end(make_orchestrator):
    orchestrator, transport, _ = make_orchestrator(['[{"q": "A"}, {"q": "B'])

    doc = await generate_document("Write questions", 2, Shape.ARRAY, orchestrator=orchestrator)

    assert len(transport.calls) == 3
    assert doc.salvaged is True
    assert doc.value == [{"q": "A"}]
    assert doc.discarded_chars == len('{"q": "B')


@pytest.mark.asyncio
async def test_unrecoverable_output_raises_recovery_error(make_orchestrator):
    orchestrator, _, _ = make_orchestrator(["no json at all]"])

    with pytest.raises(RecoveryExhausted) as exc_info:
        await generate_document("prompt", 1, Shape.ARRAY, orchestrator=orchestrator)

    assert exc_info.value.request_id


@pytest.mark.asyncio
async def test_orchestrator_errors_propagate(make_orchestrator):
    orchestrator, _, _ = make_orchestrator([overload_error()])

    with pytest.raises(OverloadExhausted):
        await generate_document("prompt", 1, Shape.ARRAY, orchestrator=orchestrator)


def test_parser_options_follow_config(fast_config):
    options = parser_options(fast_config)

    assert options.latex_aware is fast_config.latex_aware
    assert options.max_resegment_candidates == fast_config.max_resegment_candidates


@pytest.mark.asyncio
async def test_explicit_parser_options_are_used(make_orchestrator):
    orchestrator, _, _ = make_orchestrator([r'{"f": "\frac{1}{2}"}'])

    doc = await generate_document(
        "prompt", 1, "object", orchestrator=orchestrator, options=ParserOptions(latex_aware=True)
    )

    assert doc.value == {"f": "\\frac{1}{2}"}
