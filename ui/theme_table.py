"""문항 하나의 테마를 선택 체크박스 + 커버리지 표로 표시하는 Streamlit 컴포넌트."""

from typing import List, Set

import streamlit as st

from models.theme import Theme
from services.coverage import SelectionTracker, coverage_table


def render_theme_table(question: str, themes: List[Theme], universe: Set[str],
                       tracker: SelectionTracker) -> List[int]:
    """테마 표 렌더링 및 선택 상태 반영.

    Args:
        question: 문항 컬럼명
        themes: 현재 테마 리스트
        universe: 응답자 universe (커버리지 분모)
        tracker: 선택 상태 (theme_id 기준)

    Returns:
        현재 리스트 기준 선택 인덱스
    """
    if not themes:
        st.info("No themes for this question.")
        return []

    df = coverage_table(themes, universe)
    df.insert(0, "Select", [tracker.is_selected(question, t) for t in themes])

    column_config = {
        "Select": st.column_config.CheckboxColumn("Edit", width="small"),
        "Index": st.column_config.NumberColumn("#", width="small"),
        "ThemeLabel": st.column_config.TextColumn("Theme", width="large"),
        "Participants": st.column_config.NumberColumn("IDs", width="small"),
        "Coverage%": st.column_config.ProgressColumn(
            "Coverage", format="%.1f%%", min_value=0, max_value=100, width="medium"),
    }

    # 테마 구성/선택 상태가 바뀌면 새 위젯 (이전 체크 delta가 덮어쓰지 않게)
    state = (tuple(t.theme_id for t in themes), frozenset(tracker.selected_ids(question)))
    editor_key = f"theme_table_{question}_{abs(hash(state))}"
    edited = st.data_editor(
        df,
        column_config=column_config,
        disabled=["Index", "ThemeLabel", "Participants", "Coverage%"],
        hide_index=True,
        use_container_width=True,
        key=editor_key,
    )

    for theme, selected in zip(themes, edited["Select"].tolist()):
        tracker.set_selected(question, theme, bool(selected))

    return tracker.selected_indices(question, themes)


def render_select_buttons(question: str, themes: List[Theme], tracker: SelectionTracker) -> None:
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Select all", key=f"select_all_{question}", use_container_width=True):
            tracker.select_all(question, themes)
            st.rerun()
    with col2:
        if st.button("Clear selection", key=f"clear_sel_{question}", use_container_width=True):
            tracker.clear(question)
            st.rerun()
