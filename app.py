import os
import json
import streamlit as st
from streamlit_option_menu import option_menu
import logging

from services.csv_loader import load_survey_csv
from services.errors import InputError
from services.llm_client import has_api_key, init_client
from services.theme_store import ThemeStore
from pages.theme_coder import page_theme_coder
from pages.toplines import page_toplines
from pages.chatbot import page_chatbot
from pages.user_guide import page_user_reference

# --- 로깅 설정 ---
LOG_FILE = "access.log"
if not os.path.exists('output'):
    os.makedirs('output')
log_file_path = os.path.join('output', LOG_FILE)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(log_file_path, mode='a', encoding='utf-8'),
    ]
)

# --- 페이지 설정 ---
st.set_page_config(
    page_title="Open-End Coder",
    page_icon="🧩",
    layout="wide"
)

logging.info("User accessed the application.")

# --- 클라이언트 초기화 (키 없으면 AI 기능만 비활성) ---
if has_api_key():
    init_client()


@st.dialog("User Guide", width="large")
def _show_user_guide():
    page_user_reference()


_PAGES = ["Verbatims", "Memos", "Chatbot"]
_ICONS_UNLOCKED = ['bi bi-chat-square-quote', 'bi bi-bar-chart', 'bi bi-robot']

# ============================================================
# 사이드바
# ============================================================
with st.sidebar:
    st.markdown(
        "<h2 style='margin-bottom:0;'>🧩 Open-End Coder</h2>",
        unsafe_allow_html=True,
    )
    if not has_api_key():
        st.warning("OPENAI_API_KEY not found in .env file. AI features are disabled.", icon="⚠️")

    # ── CSV 업로드 ──
    csv_upload = st.file_uploader("Upload survey data (.csv)", type=["csv"])
    if csv_upload is not None:
        _csv_key = f"{csv_upload.name}_{csv_upload.size}"
        if st.session_state.get('_loaded_csv_key') != _csv_key:
            try:
                st.session_state['survey_df'] = load_survey_csv(csv_upload.getvalue())
                st.session_state['uploaded_file_name'] = os.path.splitext(csv_upload.name)[0]
                st.session_state['_loaded_csv_key'] = _csv_key
                st.session_state.pop('toplines', None)
                st.session_state.pop('topline_summaries', None)
                logging.info(f"CSV loaded: {csv_upload.name}")
            except InputError as e:
                st.error(str(e))

    # ── 세션(JSON) 복원 ──
    session_upload = st.file_uploader("Load session (.json)", type=["json"])
    if session_upload is not None:
        _load_key = f"{session_upload.name}_{session_upload.size}"
        if st.session_state.get('_loaded_session_key') != _load_key:
            try:
                data = json.loads(session_upload.getvalue().decode("utf-8"))
                st.session_state['theme_store'] = ThemeStore.from_json_dict(data)
                st.session_state['_loaded_session_key'] = _load_key
            except (ValueError, TypeError, AttributeError) as e:
                st.error(f"Failed to load session: {e}")

    # ── 데이터 상태 뱃지 + Save Session ──
    if 'survey_df' in st.session_state:
        df = st.session_state['survey_df']
        st.success(f"**{st.session_state.get('uploaded_file_name', 'survey')}** — {len(df)} rows, {len(df.columns)} columns")

    store = st.session_state.get('theme_store')
    if store is not None and len(store):
        st.download_button(
            label="Save Session",
            data=store.to_json_bytes(),
            file_name=f"{st.session_state.get('uploaded_file_name', 'survey')}_session.json",
            mime='application/json',
            use_container_width=True,
        )

    st.divider()

    # ── 네비게이션 메뉴 ──
    icons = list(_ICONS_UNLOCKED)
    if 'survey_df' not in st.session_state:
        # Chatbot은 CSV 없이도 사용 가능
        icons = ['bi bi-lock', 'bi bi-lock', _ICONS_UNLOCKED[2]]

    page = option_menu(
        None,
        _PAGES,
        icons=icons,
        default_index=0,
        styles={
            "container": {"padding": "4!important", "background-color": "#fafafa"},
            "icon": {"color": "black", "font-size": "20px"},
            "nav-link": {
                "font-size": "15px",
                "text-align": "left",
                "margin": "0px",
                "--hover-color": "#fafafa",
            },
            "nav-link-selected": {"background-color": "#08c7b4"},
        },
    )

    st.divider()

    if st.button("Help & User Guide", use_container_width=True):
        _show_user_guide()

# ============================================================
# 페이지 라우팅
# ============================================================
if page == 'Verbatims':
    page_theme_coder()

elif page == 'Memos':
    page_toplines()

elif page == 'Chatbot':
    page_chatbot()
