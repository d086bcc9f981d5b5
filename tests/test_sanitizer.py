import json

import pytest

from errors import EmptyOutputError, MalformedJsonError, TruncatedOutputError
from sanitizer import escape_non_ascii, sanitize, strip_code_fence


def test_fenced_checklist_becomes_canonical_json() -> None:
    raw = '```json\n{"checklist":[{"description":"a","estimatedTime":5,"isCompleted":false}]}\n```'

    assert sanitize(raw) == b'{"checklist":[{"description":"a","estimatedTime":5,"isCompleted":false}]}'


def test_unfenced_text_passes_through() -> None:
    raw = '{"checklist": [{"description": "a", "estimatedTime": 5, "isCompleted": false}]}'
    assert strip_code_fence(raw) == raw
    assert json.loads(sanitize(raw)) == json.loads(raw)


def test_leading_fence_without_trailing_marker_is_still_stripped() -> None:
    assert strip_code_fence('```json\n{"checklist": []}') == '{"checklist": []}'


@pytest.mark.parametrize("raw", ["", "   ", "```json\n```"])
def test_empty_output(raw) -> None:
    with pytest.raises(EmptyOutputError):
        sanitize(raw)


def test_truncated_output_carries_text() -> None:
    with pytest.raises(TruncatedOutputError) as excinfo:
        sanitize("abcde")
    assert excinfo.value.raw_output == "abcde"


def test_malformed_json_carries_text() -> None:
    with pytest.raises(MalformedJsonError) as excinfo:
        sanitize("{not valid json")
    assert excinfo.value.raw_output == "{not valid json"


@pytest.mark.parametrize(
    "raw",
    [
        '{"items": [{"description": "a", "estimatedTime": 5}]}',
        '{"checklist": [{"description": "a", "estimatedTime": "soon"}]}',
        '[{"description": "a", "estimatedTime": 5, "isCompleted": false}]',
        '{"checklist": [{"description": "a", "estimatedTime": "5"}]}',
        '{"checklist": [{"description": "a", "estimatedTime": true}]}',
        '{"checklist": [{"description": "a", "estimatedTime": 5.5}]}',
    ],
)
def test_wrong_shape_is_malformed(raw) -> None:
    with pytest.raises(MalformedJsonError):
        sanitize(raw)


def test_completed_flag_is_reset_and_extra_keys_dropped() -> None:
    raw = '{"checklist": [{"description": "a", "estimatedTime": 5, "isCompleted": true, "note": "x"}]}'
    assert json.loads(sanitize(raw)) == {
        "checklist": [{"description": "a", "estimatedTime": 5, "isCompleted": False}]
    }


def test_non_ascii_is_escaped_to_four_hex_digits() -> None:
    raw = '{"checklist": [{"description": "Übersicht 報告", "estimatedTime": 10, "isCompleted": false}]}'
    body = sanitize(raw)

    body.decode("ascii")
    assert b"\\u00dcbersicht \\u5831\\u544a" in body
    assert json.loads(body)["checklist"][0]["description"] == "Übersicht 報告"


def test_escape_non_ascii_uses_surrogate_pairs_above_bmp() -> None:
    assert escape_non_ascii("ok 😀") == "ok \\ud83d\\ude00"
    assert escape_non_ascii("plain ascii") == "plain ascii"
