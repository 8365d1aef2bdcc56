# tests/smoke_test_exporter.py
"""LONG / WIDE CSV 내보내기 smoke test"""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.theme import ResultMarker, Theme
from services.edit_engine import apply_edits
from services.exporter import (
    LONG_COLUMNS,
    build_long_dataframe,
    build_wide_dataframe,
    long_filename,
    to_csv_bytes,
    wide_filename,
)

RESULTS = {
    "Q1": [
        Theme(label="Price", definition="Cost concerns", keywords=["cost", "expensive"], participant_ids=["3", "1"]),
        Theme(label="Support", participant_ids=["2", ""]),
    ],
    "Q2": ResultMarker(error="HTTP 500 server error"),
    "Q3": ResultMarker(raw="not json"),
}


def test_long_shape():
    df = build_long_dataframe(RESULTS)
    assert list(df.columns) == LONG_COLUMNS
    assert len(df) == 4
    first = df.iloc[0]
    assert first["Keywords"] == "cost, expensive"
    assert first["ParticipantIDs"] == "3; 1"
    assert df.iloc[1]["ParticipantIDs"] == "2"
    assert df.iloc[2]["ThemeLabel"] == "_parse_error"
    assert df.iloc[2]["Definition"] == "Upstream error: HTTP 500 server error"
    assert df.iloc[3]["Definition"] == "Raw LLM text was kept internally."
    print("  [PASS] Long CSV shape")


def test_wide_shape():
    df = build_wide_dataframe(RESULTS, "respid")
    assert list(df.columns) == ["respid", "Q1_Price", "Q1_Support"]
    assert df["respid"].tolist() == ["3", "1", "2"]
    assert df["Q1_Price"].tolist() == [1, 1, 0]
    assert df["Q1_Support"].tolist() == [0, 0, 1]
    print("  [PASS] Wide CSV shape")


def test_wide_collisions_and_fallback_id():
    """같은 라벨 두 개는 한 컬럼으로 합집합 코딩"""
    results = {"Q4": [Theme(label="Other  misc", participant_ids=["a"]),
                      Theme(label="Other misc", participant_ids=["b"])]}
    df = build_wide_dataframe(results)
    assert list(df.columns) == ["user_id", "Q4_Other misc"]
    assert df["Q4_Other misc"].tolist() == [1, 1]
    empty = build_wide_dataframe({"Q2": ResultMarker(error="x")})
    assert list(empty.columns) == ["user_id"] and len(empty) == 0
    print("  [PASS] Wide collisions + fallback ID column")


def test_filenames_and_bytes():
    assert long_filename("2025-01-31") == "themes_by_question_2025-01-31.csv"
    assert wide_filename("2025-01-31") == "codes_by_question_2025-01-31.csv"
    data = to_csv_bytes(build_long_dataframe(RESULTS))
    assert data.startswith(b"\xef\xbb\xbf")
    assert b"Question,ThemeLabel,Definition,Keywords,ParticipantIDs" in data
    print("  [PASS] Filenames + UTF-8 BOM bytes")


def test_wide_float_ids_match_respondents():
    """JSON 숫자 101.0 도 CSV 응답자 "101"과 같은 ID로 내보낸다"""
    merged = apply_edits([Theme(label="A"), Theme(label="B")],
                         [{"op": "merge", "indices": [0, 1], "ThemeLabel": "AB",
                           "ParticipantID": [101.0, 102]}])
    assert merged.themes[0].participant_ids == ["101", "102"]
    df = build_wide_dataframe({"Q1": merged.themes}, "respid")
    assert df["respid"].tolist() == ["101", "102"]
    assert df["Q1_AB"].tolist() == [1, 1]
    print("  [PASS] Whole-number float IDs exported as ints")


if __name__ == "__main__":
    print("Running exporter smoke tests...")
    test_long_shape()
    test_wide_shape()
    test_wide_collisions_and_fallback_id()
    test_filenames_and_bytes()
    test_wide_float_ids_match_respondents()
    print("\nAll exporter tests passed!")
