import json

import pytest

from gemini_structured.core.exceptions import SalvageEmpty
from gemini_structured.core.types import Failure, Success
from gemini_structured.recovery.salvager import salvage_truncated_array

pytestmark = pytest.mark.unit


def test_partial_trailing_fragment_is_discarded_and_counted():
    fragment = '{"q": "What is th'
    assert len(fragment) == 17
    text = '[{"a": 1}, {"a": 2}, ' + fragment

    result = salvage_truncated_array(text)

    assert isinstance(result, Success)
    salvage = result.value
    assert salvage.elements == ('{"a": 1}', '{"a": 2}')
    assert salvage.discarded_chars == 17
    assert salvage.discarded_elements == 1
    assert json.loads(salvage.to_text()) == [{"a": 1}, {"a": 2}]


def test_every_kept_element_was_closed_in_the_source():
    text = '[{"a": {"b": [1, 2]}}, {"s": "}{"}, {"c": [3, {"d": '

    result = salvage_truncated_array(text)

    assert isinstance(result, Success)
    for element in result.value.elements:
        assert element.endswith("}")
        assert element in text
        json.loads(element)
    assert len(result.value.elements) == 2


def test_array_that_closed_discards_nothing():
    result = salvage_truncated_array('[{"a": 1}, {"b": 2}] trailing prose')

    assert isinstance(result, Success)
    assert result.value.discarded_chars == 0
    assert result.value.discarded_elements == 0
    assert len(result.value.elements) == 2


def test_explicit_start_offset_is_honoured():
    text = 'see [1] then [{"a": 1}, {"b"'

    result = salvage_truncated_array(text, text.index("[{"))

    assert isinstance(result, Success)
    assert result.value.elements == ('{"a": 1}',)
    assert result.value.start == text.index("[{")


@pytest.mark.parametrize(
    "text",
    [
        '[{"a": 1',
        "[1, 2, 3",
        "no array here",
        "[",
    ],
)
def test_no_complete_element_is_salvage_empty(text):
    result = salvage_truncated_array(text)

    assert isinstance(result, Failure)
    assert isinstance(result.error, SalvageEmpty)
