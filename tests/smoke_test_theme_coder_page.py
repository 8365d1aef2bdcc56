# tests/smoke_test_theme_coder_page.py
"""Verbatims 페이지 세션 상태 정리 smoke test"""
import sys, os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pages.theme_coder import forget_edit_reports


def test_reanalysis_forgets_reports_for_extracted_columns():
    """재분석한 문항의 리포트만 지우고 다른 문항/키는 유지"""
    state = {"edit_report_Q1": "old", "edit_report_Q2": "keep", "survey_df": "df"}
    forget_edit_reports(state, {"Q1": [], "Q3": []}.keys())
    assert state == {"edit_report_Q2": "keep", "survey_df": "df"}
    print("  [PASS] Re-analysis drops stale edit reports")


def test_clear_forgets_all_reports():
    state = {"edit_report_Q1": "a", "edit_report_Q2": "b", "id_column": "respid"}
    forget_edit_reports(state)
    assert state == {"id_column": "respid"}
    print("  [PASS] Clear drops every edit report")


if __name__ == "__main__":
    print("Running Verbatims page smoke tests...")
    test_reanalysis_forgets_reports_for_extracted_columns()
    test_clear_forgets_all_reports()
    print("\nAll Verbatims page tests passed!")
