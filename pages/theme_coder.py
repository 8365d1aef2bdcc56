"""Verbatims UI 페이지.

CSV 업로드 → 문항 컬럼별 테마 추출 → 테마 선택/편집 (모델 또는 직접 JSON) → LONG/WIDE CSV.
"""

import streamlit as st

from services.coverage import respondent_universe, uncovered_respondents
from services.csv_loader import (
    DEFAULT_ID_COLUMN,
    detect_id_column,
    detect_question_columns,
    filter_question_columns,
    require_id_column,
)
from services.edit_engine import EditResult, describe_result
from services.edit_request import parse_edit_response, request_theme_edits
from services.errors import InputError, ResultParseError, UpstreamError
from services.llm_client import AVAILABLE_MODELS, DEFAULT_MODEL
from services.theme_extractor import DEFAULT_ANALYSIS_PROMPT, extract_all_columns
from services.theme_store import ThemeStore
from ui.download import render_theme_downloads
from ui.theme_cards import render_question_marker, render_theme_cards
from ui.theme_table import render_select_buttons, render_theme_table


EDIT_REPORT_PREFIX = "edit_report_"


def forget_edit_reports(state, questions=None) -> None:
    """지난 편집 리포트 제거 (questions가 None이면 전부)"""
    if questions is None:
        keys = [k for k in state if str(k).startswith(EDIT_REPORT_PREFIX)]
    else:
        keys = [f"{EDIT_REPORT_PREFIX}{q}" for q in questions]
    for key in keys:
        state.pop(key, None)


def _get_store() -> ThemeStore:
    if "theme_store" not in st.session_state:
        st.session_state["theme_store"] = ThemeStore()
    return st.session_state["theme_store"]


def page_theme_coder() -> None:
    """Verbatims 메인 진입점."""
    st.title("Verbatims")

    df = st.session_state.get("survey_df")
    if df is None:
        st.info("Please upload a CSV file on the sidebar.", icon="ℹ️")
        return

    store = _get_store()
    question_cols = detect_question_columns(df)
    if question_cols:
        st.caption(f"✅ Detected question columns: {', '.join(question_cols)}")
    else:
        st.warning("No question columns found (Q1, Q2, Q24, etc.). Please check your CSV format.", icon="⚠️")
    if len(df) > 1000:
        st.warning("Very large dataset: consider filtering to a specific question to avoid rate/size limits.", icon="⚠️")

    _render_analysis_controls(df, store, question_cols)

    if not len(store):
        return

    st.divider()
    st.subheader("Analysis Results")
    render_theme_downloads(dict(store.items()), st.session_state.get("resolved_id_column"))

    for question in store.questions():
        _render_question(df, store, question)

    st.divider()
    if st.button("Clear results"):
        store.clear()
        forget_edit_reports(st.session_state)
        st.rerun()


# ============================================================
# 분석 설정 + 실행
# ============================================================

def _render_analysis_controls(df, store: ThemeStore, question_cols) -> None:
    col1, col2, col3 = st.columns([2, 2, 2])
    with col1:
        model_keys = list(AVAILABLE_MODELS.keys())
        model = st.selectbox(
            "Model",
            options=model_keys,
            index=model_keys.index(st.session_state.get("verbatims_model", DEFAULT_MODEL)),
            format_func=lambda m: AVAILABLE_MODELS[m],
            key="verbatims_model_select",
        )
        st.session_state["verbatims_model"] = model
    with col2:
        default_id = st.session_state.get("id_column") or detect_id_column(df) or DEFAULT_ID_COLUMN
        id_column = st.text_input("ID Column Name", value=default_id,
                                  placeholder="e.g., respid, record, participant_id")
        st.session_state["id_column"] = id_column
        st.caption(f"Detected candidate: `{detect_id_column(df) or '—'}`")
    with col3:
        question_filter = st.text_input("Question Filter (optional)", placeholder="e.g., q24 (matches prefix)")

    if "analysis_prompt" not in st.session_state:
        st.session_state["analysis_prompt"] = DEFAULT_ANALYSIS_PROMPT
    if st.button("Reset prompt to default"):
        st.session_state["analysis_prompt"] = DEFAULT_ANALYSIS_PROMPT
    analysis_prompt = st.text_area("Analysis Prompt", key="analysis_prompt", height=220)

    if not st.button("Analyze", type="primary", disabled=not question_cols):
        return

    try:
        columns = filter_question_columns(question_cols, question_filter)
        id_col = require_id_column(df, id_column)
    except InputError as e:
        st.error(str(e))
        return
    st.session_state["resolved_id_column"] = id_col

    with st.status("Analyzing...", expanded=True) as status:
        progress_bar = st.progress(0)
        log_area = st.empty()

        def _progress_callback(event: str, data: dict):
            if event == "column_start":
                log_area.text(f"Column {data['index'] + 1}/{data['total']}: {data['column']}...")
            elif event == "column_done":
                progress_bar.progress(min((data["index"] + 1) / data["total"], 1.0))

        results = extract_all_columns(
            df, id_col, columns,
            model=model,
            analysis_prompt=analysis_prompt,
            progress_callback=_progress_callback,
        )
        store.set_results(results)
        forget_edit_reports(st.session_state, results.keys())
        status.update(
            label=f"Analysis completed for {len(results)} question column(s)!",
            state="complete",
        )


# ============================================================
# 문항별 결과 + 편집
# ============================================================

def _render_question(df, store: ThemeStore, question: str) -> None:
    st.markdown(f"### Question: {question}")
    result = store.get(question)
    if render_question_marker(result):
        return

    themes = store.themes(question)
    id_col = st.session_state.get("resolved_id_column")
    universe = respondent_universe(df, id_col, question)

    selected = render_theme_table(question, themes, universe, store.selection)
    render_select_buttons(question, themes, store.selection)

    uncovered = uncovered_respondents(universe, themes)
    if uncovered:
        st.caption(f"⚠️ {len(uncovered)} respondent(s) not in any theme: {', '.join(uncovered[:20])}"
                   + (" ..." if len(uncovered) > 20 else ""))

    render_theme_cards(themes)
    _render_last_report(question)

    with st.expander("Edit selected themes with AI", expanded=bool(selected)):
        st.caption(f"Selected indices: {selected or 'none'}")
        instructions = st.text_area(
            "Editing instructions (optional)",
            key=f"edit_instructions_{question}",
            placeholder="e.g., Merge the two price-related themes and split 'Other' into specific themes.",
        )
        if st.button("Request edits", key=f"request_edits_{question}", disabled=not selected):
            try:
                with st.spinner("Requesting edits..."):
                    batch = request_theme_edits(
                        question, selected, themes, df, id_col, instructions,
                        model=st.session_state.get("verbatims_model", DEFAULT_MODEL),
                    )
            except InputError as e:
                st.error(str(e))
                return
            except UpstreamError as e:
                st.error(f"OpenAI API Error: {e}")
                return
            except ResultParseError as e:
                st.error(f"Could not apply edits: {e}")
                return
            _apply_and_report(store, question, batch)

    with st.expander("Apply edit JSON manually", expanded=False):
        raw = st.text_area("Edit operations (JSON array)", key=f"manual_edits_{question}", height=150)
        if st.button("Apply JSON", key=f"apply_json_{question}", disabled=not raw.strip()):
            try:
                batch = parse_edit_response(raw)
            except ResultParseError as e:
                st.error(f"Could not apply edits: {e}")
                return
            _apply_and_report(store, question, batch)


def _apply_and_report(store: ThemeStore, question: str, batch) -> None:
    result: EditResult = store.apply_edit_batch(question, batch)
    st.session_state[f"{EDIT_REPORT_PREFIX}{question}"] = result
    st.rerun()


def _render_last_report(question: str) -> None:
    result = st.session_state.get(f"{EDIT_REPORT_PREFIX}{question}")
    if result is None:
        return
    if result.changed:
        st.success(f"Applied {len(result.applied)} edit(s).")
    else:
        st.warning("No edits were applied.")
    for line in describe_result(result, limit=None):
        st.caption(f"⚠️ {line}")
