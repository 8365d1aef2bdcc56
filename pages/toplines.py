"""Memos UI 페이지: 가중 빈도표 + 인구통계 분할 + AI 요약."""

import pandas as pd
import streamlit as st

from services.errors import InputError
from services.llm_client import MODEL_SUMMARY, has_api_key
from services.toplines import (
    DEFAULT_STYLE,
    STYLE_PROMPTS,
    build_toplines,
    summarize_toplines,
)
from ui.download import render_toplines_download


def page_toplines() -> None:
    st.title("Memos")

    df = st.session_state.get("survey_df")
    if df is None:
        st.info("Please upload a CSV file on the sidebar.", icon="ℹ️")
        return

    columns = list(df.columns)

    # ── 설정 ──
    col1, col2 = st.columns(2)
    with col1:
        weight_col = st.selectbox("Weight Column (optional)", options=["(none)"] + columns)
        demo_cols = st.multiselect("Demographic Columns", options=columns)
    with col2:
        question_cols = st.multiselect("Survey Question Columns", options=columns)
        style = st.selectbox("Summary Style", options=list(STYLE_PROMPTS.keys()),
                             index=list(STYLE_PROMPTS.keys()).index(DEFAULT_STYLE))

    if st.button("Generate Memos", type="primary"):
        try:
            toplines = build_toplines(
                df, question_cols, demo_cols,
                weight_col=None if weight_col == "(none)" else weight_col,
            )
        except InputError as e:
            st.error(str(e))
            return
        st.session_state["toplines"] = toplines
        st.session_state.pop("topline_summaries", None)

        if has_api_key():
            with st.spinner("Writing AI summaries..."):
                st.session_state["topline_summaries"] = summarize_toplines(
                    toplines, style=style, model=MODEL_SUMMARY)
        else:
            st.warning("OPENAI_API_KEY is not set. Showing tables only.", icon="⚠️")

    toplines = st.session_state.get("toplines")
    if not toplines:
        return

    summaries = st.session_state.get("topline_summaries", {})
    for q, groups in toplines.items():
        st.divider()
        st.subheader(f"Question: {q}")

        if q in summaries:
            st.markdown("**AI Summary**")
            st.write(summaries[q])

        for group_name, table in groups.items():
            if not table:
                st.caption(f"{group_name}: no weighted responses")
                continue
            with st.expander(group_name, expanded=group_name == "Total"):
                chart_data = pd.DataFrame({"Percent": [r.pct for r in table]}, index=[r.val for r in table])
                st.bar_chart(chart_data, horizontal=True)
                st.dataframe(
                    [{"Value": r.val, "Percent": f"{r.pct:.1f}%"} for r in table],
                    hide_index=True,
                    use_container_width=True,
                )

    st.divider()
    render_toplines_download(toplines, st.session_state.get("uploaded_file_name") or "survey")
