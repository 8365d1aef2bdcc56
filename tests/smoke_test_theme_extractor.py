# tests/smoke_test_theme_extractor.py
"""Verbatims 테마 추출 smoke test (chat 주입, LLM 미호출)"""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from models.theme import ResultMarker
from services.errors import UpstreamError
from services.theme_extractor import (
    DEFAULT_ANALYSIS_PROMPT,
    build_extraction_messages,
    extract_all_columns,
    extract_column_themes,
)

DF = pd.DataFrame({
    "respid": ["1", "2", "3"],
    "Q1": ["Too expensive for what it is", "Price went up again", "Great customer support"],
    "Q2": ["", "n/a", "-"],
    "Q3": ["Faster checkout", "More payment options", "Dark mode please"],
})


def test_extraction_messages():
    messages = build_extraction_messages("Q1", "record=1 | response=x")
    assert messages[0]["role"] == "system"
    user = messages[1]["content"]
    assert "column 'Q1'" in user
    assert DEFAULT_ANALYSIS_PROMPT in user
    assert user.endswith("record=1 | response=x")
    print("  [PASS] Extraction messages")


def test_extract_success():
    def _chat(messages, model):
        assert "record=2 | response=Price went up again" in messages[1]["content"]
        return '```json\n[{"ThemeLabel": "Price", "ParticipantID": [1, 2]}, {"ParticipantID": 3}]\n```'

    themes = extract_column_themes(DF, "respid", "Q1", chat=_chat)
    assert [t.label for t in themes] == ["Price", "Theme 2"]
    assert themes[0].participant_ids == ["1", "2"]
    assert themes[1].participant_ids == ["3"]
    print("  [PASS] Themes extracted")


def test_extract_markers():
    def _upstream(messages, model):
        raise UpstreamError("Rate limited", status=429)

    marker = extract_column_themes(DF, "respid", "Q1", chat=_upstream)
    assert isinstance(marker, ResultMarker)
    assert marker.error == "HTTP 429 Rate limited"

    marker = extract_column_themes(DF, "respid", "Q1", chat=lambda m, model: "Sorry, no themes today.")
    assert isinstance(marker, ResultMarker)
    assert marker.error is None
    assert marker.raw == "Sorry, no themes today."
    print("  [PASS] Upstream/parse failures become markers")


def test_extract_no_responses():
    calls = []
    result = extract_column_themes(DF, "respid", "Q2", chat=lambda m, model: calls.append(m))
    assert result == []
    assert calls == []
    print("  [PASS] Column with no meaningful responses")


def test_extract_all_columns_progress():
    events = []

    def _chat(messages, model):
        if "column 'Q1'" in messages[1]["content"]:
            raise UpstreamError("Upstream timeout", status=504)
        return '[{"ThemeLabel": "Feature requests", "ParticipantID": ["1", "2", "3"]}]'

    results = extract_all_columns(
        DF, "respid", ["Q1", "Q3"],
        progress_callback=lambda event, data: events.append((event, data["column"])),
        chat=_chat,
        pause_seconds=0,
    )
    assert list(results.keys()) == ["Q1", "Q3"]
    assert isinstance(results["Q1"], ResultMarker)
    assert results["Q3"][0].label == "Feature requests"
    assert events == [("column_start", "Q1"), ("column_done", "Q1"),
                      ("column_start", "Q3"), ("column_done", "Q3")]
    print("  [PASS] extract_all_columns() continues after failure")


if __name__ == "__main__":
    print("Running theme extractor smoke tests...")
    test_extraction_messages()
    test_extract_success()
    test_extract_markers()
    test_extract_no_responses()
    test_extract_all_columns_progress()
    print("\nAll theme extractor tests passed!")
