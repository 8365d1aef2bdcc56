# tests/smoke_test_toplines.py
"""Memos (가중 빈도표 + 요약) smoke test"""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from services.errors import InputError, UpstreamError
from services.toplines import (
    STYLE_PROMPTS,
    build_summary_prompt,
    build_toplines,
    summarize_toplines,
    toplines_to_long,
    weighted_freq,
)

DF = pd.DataFrame({
    "Q1": ["Yes", "No", "Yes", "Yes", ""],
    "Gender": ["F", "M", "M", "F", "F"],
    "wt": ["1.5", "0.5", "2", "abc", "-1"],
})


def test_unweighted_freq():
    rows = weighted_freq(DF, "Q1")
    assert [r.val for r in rows] == ["Yes", "No", "Missing"]
    assert rows[0].pct == 60.0
    assert rows[0].weight == 3.0
    assert round(sum(r.pct for r in rows), 6) == 100.0
    print("  [PASS] Unweighted frequency")


def test_weighted_freq_excludes_bad_weights():
    """숫자가 아니거나 0 이하인 가중치는 제외"""
    rows = weighted_freq(DF, "Q1", "wt")
    assert [r.val for r in rows] == ["Yes", "No"]
    assert rows[0].weight == 3.5
    assert rows[0].pct == 87.5
    assert rows[1].pct == 12.5
    assert weighted_freq(DF, "Q9") == []
    print("  [PASS] Weighted frequency")


def test_build_toplines_groups():
    toplines = build_toplines(DF, ["Q1"], ["Gender"], weight_col="wt")
    groups = toplines["Q1"]
    assert list(groups.keys()) == ["Total", "Gender: F", "Gender: M"]
    female = {r.val: r.pct for r in groups["Gender: F"]}
    assert female == {"Yes": 100.0}
    male = {r.val: r.pct for r in groups["Gender: M"]}
    assert male == {"Yes": 80.0, "No": 20.0}
    print("  [PASS] Total + demographic splits")


def test_build_toplines_input_errors():
    for args in ((None, ["Q1"]), (DF, [])):
        try:
            build_toplines(*args)
            assert False, "Expected InputError"
        except InputError:
            pass
    print("  [PASS] Input errors")


def test_summary_prompt_and_summaries():
    toplines = build_toplines(DF, ["Q1"])
    prompt = build_summary_prompt("Q1", toplines["Q1"], "Bullet-Point Insights")
    assert prompt.startswith(STYLE_PROMPTS["Bullet-Point Insights"])
    assert " - Yes: 60.0%" in prompt

    calls = []

    def _chat(messages, model, temperature=None):
        calls.append(temperature)
        return "Most respondents said yes."

    assert summarize_toplines(toplines, chat=_chat, pause_seconds=0) == {"Q1": "Most respondents said yes."}
    assert calls == [0.3]

    def _fail(messages, model, temperature=None):
        raise UpstreamError("quota exceeded", status=429)

    summaries = summarize_toplines(toplines, chat=_fail, pause_seconds=0)
    assert summaries["Q1"] == "[AI Summary Error] HTTP 429 quota exceeded"
    print("  [PASS] Summary prompt + AI summaries")


def test_toplines_to_long():
    df = toplines_to_long(build_toplines(DF, ["Q1"], ["Gender"]))
    assert list(df.columns) == ["Question", "Group", "Value", "Percent"]
    assert set(df["Group"]) == {"Total", "Gender: F", "Gender: M"}
    print("  [PASS] Toplines long table")


if __name__ == "__main__":
    print("Running toplines smoke tests...")
    test_unweighted_freq()
    test_weighted_freq_excludes_bad_weights()
    test_build_toplines_groups()
    test_build_toplines_input_errors()
    test_summary_prompt_and_summaries()
    test_toplines_to_long()
    print("\nAll toplines tests passed!")
