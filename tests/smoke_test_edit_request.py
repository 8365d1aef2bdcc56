# tests/smoke_test_edit_request.py
"""테마 편집 요청 빌더 smoke test (LLM 미호출, chat 주입)"""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from models.theme import ResultMarker, Theme
from services.edit_request import (
    DEFAULT_EDIT_INSTRUCTIONS,
    build_edit_messages,
    parse_edit_response,
    request_theme_edits,
    validate_selection,
)
from services.errors import EditRequestError, InputError, ResultParseError


DF = pd.DataFrame({
    "respid": ["11", "12", "13"],
    "Q5": ["Shipping was slow", "Support never answered", "N/A"],
})

THEMES = [
    Theme(label="Delivery delays", definition="Late orders", participant_ids=["11"]),
    Theme(label="Support issues", participant_ids=["12"]),
]


def _expect(exc_type, fn, *args):
    try:
        fn(*args)
    except exc_type as e:
        return e
    raise AssertionError(f"Expected {exc_type.__name__}")


def test_validate_selection():
    assert validate_selection(THEMES, [1, 0, 1]) == [0, 1]
    assert "Select at least one" in str(_expect(EditRequestError, validate_selection, THEMES, []))
    assert "[5]" in str(_expect(EditRequestError, validate_selection, THEMES, [0, 5]))
    _expect(EditRequestError, validate_selection, ResultMarker(error="boom"), [0])
    # 입력 오류 계열
    assert issubclass(EditRequestError, InputError)
    print("  [PASS] validate_selection()")


def test_message_content():
    messages = build_edit_messages("Q5", [1], THEMES, DF, "respid", "Merge nothing")
    assert [m["role"] for m in messages] == ["system", "user"]
    user = messages[1]["content"]
    assert "Question column: 'Q5'" in user
    assert '"index": 1' in user
    assert '"ThemeLabel": "Delivery delays"' in user
    assert "ALLOWED INDICES: [1]" in user
    assert "Merge nothing" in user
    for op in ("merge", "split", "replace", "delete", "insert"):
        assert f'"op": "{op}"' in user, f"schema missing {op}"
    assert "record=11 | response=Shipping was slow" in user
    assert "record=13" not in user
    print("  [PASS] Edit message content")


def test_default_instructions():
    messages = build_edit_messages("Q5", [0], THEMES, DF, "respid", "   ")
    assert DEFAULT_EDIT_INSTRUCTIONS in messages[1]["content"]
    print("  [PASS] Default instructions used for blank input")


def test_parse_edit_response():
    batch = parse_edit_response('```json\n[{"op": "delete", "indices": [0]}]\n```')
    assert len(batch) == 1 and not batch.is_legacy

    e = _expect(ResultParseError, parse_edit_response, '{"op": "delete", "indices": [0]}')
    assert str(e) == "edits must be a JSON array"
    _expect(ResultParseError, parse_edit_response, "I could not do that.")
    print("  [PASS] parse_edit_response()")


def test_request_theme_edits_with_fake_chat():
    calls = []

    def _fake_chat(messages, model):
        calls.append((messages, model))
        return 'Here are the edits: [{"op": "merge", "indices": [0, 1], "ThemeLabel": "Service problems"}]'

    batch = request_theme_edits("Q5", [0, 1], THEMES, DF, "respid", model="gpt-4o", chat=_fake_chat)
    assert len(calls) == 1
    assert calls[0][1] == "gpt-4o"
    assert batch.operations[0].op == "merge"
    print("  [PASS] request_theme_edits() with injected chat")


def test_no_call_on_input_error():
    calls = []
    _expect(EditRequestError, request_theme_edits, "Q5", [], THEMES, DF, "respid",
            None, "gpt-5", lambda m, model: calls.append(m))
    assert calls == []
    print("  [PASS] No chat call when selection is empty")


if __name__ == "__main__":
    print("Running edit request smoke tests...")
    test_validate_selection()
    test_message_content()
    test_default_instructions()
    test_parse_edit_response()
    test_request_theme_edits_with_fake_chat()
    test_no_call_on_input_error()
    print("\nAll edit request tests passed!")
