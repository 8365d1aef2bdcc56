import streamlit as st
import pandas as pd


def page_user_reference():
    st.title('Open-End Coder 사용자 가이드')

    st.markdown("""
        <div style="padding: 15px; border-radius: 10px; background-color: #e0f7fa; margin-bottom: 20px; border-left: 5px solid #08c7b4;">
        <h3 style="margin-top: 0;">Open-End Coder에 오신 것을 환영합니다</h3>
        <p>설문 CSV의 주관식 응답을 테마로 코딩하고, 선택한 테마를 AI 또는 직접 입력한 편집 명령으로 다듬을 수 있습니다.</p>
    </div>
    """, unsafe_allow_html=True)

    col1, col2, col3 = st.columns(3)
    with col1:
        st.markdown("""
        <div style="padding: 15px; border-radius: 10px; background-color: #fafafa; height: 170px; border: 1px solid #b2dfdb;">
            <h4 style="color: #00796b; margin-top: 0;">Verbatims</h4>
            <p>Q로 시작하는 문항 컬럼(Q1, q24_other 등)별로 테마를 추출합니다. 테마를 선택해 병합/분할/교체/삭제/추가 편집을 요청하고 LONG/WIDE CSV로 내보냅니다.</p>
        </div>
        """, unsafe_allow_html=True)
    with col2:
        st.markdown("""
        <div style="padding: 15px; border-radius: 10px; background-color: #fafafa; height: 170px; border: 1px solid #b2dfdb;">
            <h4 style="color: #00796b; margin-top: 0;">Memos</h4>
            <p>문항별 가중 빈도표를 Total 및 인구통계 레벨별로 계산하고, 선택한 스타일로 AI 요약을 작성합니다.</p>
        </div>
        """, unsafe_allow_html=True)
    with col3:
        st.markdown("""
        <div style="padding: 15px; border-radius: 10px; background-color: #fafafa; height: 170px; border: 1px solid #b2dfdb;">
            <h4 style="color: #00796b; margin-top: 0;">Chatbot</h4>
            <p>txt/md/csv/json 파일을 첨부해 질문하면 파일 내용을 근거로 답합니다. CSV 파일 없이도 사용할 수 있습니다 (pdf/docx는 파일명만 전달).</p>
        </div>
        """, unsafe_allow_html=True)

    st.markdown("---")
    st.markdown("### 편집 명령 (JSON 배열)")
    st.write("각 원소는 `op` 필드를 가지며, 한 번의 요청 안에서 아래 순서대로 적용됩니다. "
             "인덱스는 해당 단계 시작 시점의 리스트 기준(0부터)입니다.")

    data = {
        "단계": [1, 1, 2, 3, 4],
        "op": ["merge", "split", "delete", "replace", "insert"],
        "필드": [
            "indices, ThemeLabel/Definition/..., insertIndex",
            "index, replacements, insertIndex",
            "indices",
            "index, theme",
            "index, theme",
        ],
    }
    st.table(pd.DataFrame(data))
    st.markdown("<small><i>참고: `op` 필드가 없는 배열은 기존 방식(인덱스별 필드 패치)으로 처리됩니다. "
                "범위를 벗어난 인덱스는 건너뛰고 경고로 표시됩니다.</i></small>", unsafe_allow_html=True)

    st.markdown("### 예시")
    st.code("""[
  {"op": "merge", "indices": [0, 2], "ThemeLabel": "Price and value"},
  {"op": "delete", "indices": [5]},
  {"op": "insert", "index": 0, "theme": {"ThemeLabel": "Other", "ParticipantID": ["17"]}}
]""", language="json")
