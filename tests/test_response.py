"""Tests for decoding structured model output into invocation trees."""

import json

import pytest

from action_chain import ActionInvocation, ChainShapeError, ResponseParseError


def _document() -> dict:
    return {
        "execution": {
            "action": "stringToNumber",
            "params": {"text": {"action": "numberToString", "params": {"num": 4}}},
        }
    }


def test_plain_json_response(executor, calls) -> None:
    tree = executor.parse_response(json.dumps(_document()))

    assert tree.action == "stringToNumber"
    assert isinstance(tree.params["text"], ActionInvocation)
    assert executor.execute_sync(tree) == 4.0
    assert calls == ["numberToString", "stringToNumber"]


def test_fenced_response_is_unwrapped(executor) -> None:
    content = "```json\n" + json.dumps(_document(), indent=2) + "\n```"

    tree = executor.parse_response(content)

    assert tree.params["text"].params == {"num": 4.0}


def test_minor_json_damage_is_repaired(executor) -> None:
    content = '{"execution": {"action": "numberToString", "params": {"num": 7,},},}'

    tree = executor.parse_response(content)

    assert tree == ActionInvocation.of("numberToString", num=7.0)


@pytest.mark.parametrize("content", ["[1, 2]", "", "   "])
def test_non_object_responses_are_rejected(executor, content: str) -> None:
    with pytest.raises(ResponseParseError):
        executor.parse_response(content)


def test_mismatched_document_is_a_shape_error(executor) -> None:
    content = json.dumps({"execution": {"action": "numberToString", "params": {"text": "x"}}})

    with pytest.raises(ChainShapeError):
        executor.parse_response(content)


def test_missing_execution_key(executor) -> None:
    with pytest.raises(ChainShapeError):
        executor.parse_response('{"action": "numberToString", "params": {"num": 1}}')
