"""테마 상세를 expander 카드로 표시하는 Streamlit 컴포넌트."""

from typing import List

import streamlit as st

from models.theme import QuestionResult, ResultMarker, Theme


def render_theme_cards(themes: List[Theme]):
    """테마별 정의, 키워드, 배정 ID를 expander로 표시."""
    for idx, theme in enumerate(themes):
        n_ids = len(theme.distinct_participants())
        with st.expander(f"**{idx}** | {theme.label or f'Theme {idx + 1}'} ({n_ids} IDs)", expanded=False):
            st.markdown(f"**Definition:** {theme.definition or 'No definition provided'}")
            if theme.keywords:
                st.markdown("**Keywords:** " + " ".join(f"`{k}`" for k in theme.keywords))
            if theme.participant_ids:
                st.caption("Participant IDs: " + ", ".join(theme.participant_ids))


def render_question_marker(result: QuestionResult) -> bool:
    """마커면 에러 표시 후 True"""
    if isinstance(result, ResultMarker):
        st.error(result.describe())
        if result.raw:
            with st.expander("Raw model text", expanded=False):
                st.code(result.raw)
        return True
    return False
