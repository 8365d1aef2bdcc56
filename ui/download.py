from typing import Dict, Optional

import streamlit as st

from models.theme import QuestionResult
from services.exporter import (
    build_long_dataframe,
    build_wide_dataframe,
    long_filename,
    to_csv_bytes,
    wide_filename,
)
from services.toplines import Toplines, toplines_to_long


def render_theme_downloads(results: Dict[str, QuestionResult], id_col: Optional[str] = None):
    """LONG / WIDE CSV 다운로드 버튼 렌더링."""
    if not results:
        st.info("No results to export.")
        return

    long_df = build_long_dataframe(results)
    wide_df = build_wide_dataframe(results, id_col)

    col1, col2 = st.columns(2)
    with col1:
        st.download_button(
            label="Download Long CSV",
            data=to_csv_bytes(long_df),
            file_name=long_filename(),
            mime='text/csv',
            use_container_width=True,
        )
    with col2:
        st.download_button(
            label="Download Wide CSV",
            data=to_csv_bytes(wide_df),
            file_name=wide_filename(),
            mime='text/csv',
            use_container_width=True,
        )


def render_toplines_download(toplines: Toplines, base_name: str = "toplines"):
    """Toplines long CSV 다운로드 버튼."""
    if not toplines:
        return
    st.download_button(
        label="Download Toplines CSV",
        data=to_csv_bytes(toplines_to_long(toplines)),
        file_name=f"{base_name}_toplines.csv",
        mime='text/csv',
    )
