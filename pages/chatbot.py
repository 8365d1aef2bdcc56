"""Chatbot UI 페이지: 파일 첨부 + 질의응답 (설문 CSV 불필요)."""

import streamlit as st

from services.chat_assistant import (
    ACCEPTED_EXTENSIONS,
    CLEARED_GREETING,
    GREETING,
    ask_with_attachments,
    read_attachment,
)
from services.errors import InputError, UpstreamError
from services.llm_client import AVAILABLE_MODELS, DEFAULT_MODEL, has_api_key


def _history() -> list:
    if "chat_messages" not in st.session_state:
        st.session_state["chat_messages"] = [{"role": "assistant", "content": GREETING}]
    return st.session_state["chat_messages"]


def page_chatbot() -> None:
    st.title("Chatbot")
    history = _history()

    # ── 설정 + 첨부 ──
    col1, col2 = st.columns([1, 2])
    with col1:
        model_keys = list(AVAILABLE_MODELS.keys())
        model = st.selectbox(
            "Model",
            options=model_keys,
            index=model_keys.index(DEFAULT_MODEL),
            format_func=lambda m: AVAILABLE_MODELS[m],
            key="chat_model_select",
        )
        if st.button("Clear chat"):
            st.session_state["chat_messages"] = [{"role": "assistant", "content": CLEARED_GREETING}]
            st.rerun()
    with col2:
        uploads = st.file_uploader(
            "Attach files (.txt, .md, .csv, .json; .pdf/.docx are listed by name only)",
            type=ACCEPTED_EXTENSIONS,
            accept_multiple_files=True,
            key="chat_attachments",
        )

    attachments = [read_attachment(f.name, f.getvalue(), f.type or "") for f in uploads or []]
    if attachments:
        st.caption(" · ".join(
            f"{'✅' if a.parsed else '📎'} {a.name}" for a in attachments
        ))

    if not has_api_key():
        st.warning("OPENAI_API_KEY is not set. The chatbot is disabled.", icon="⚠️")

    for message in history:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])

    question = st.chat_input("Ask a question about your files...", disabled=not has_api_key())
    if not question:
        return

    try:
        with st.spinner("Thinking..."):
            answer = ask_with_attachments(question, history, attachments, model=model)
    except InputError as e:
        st.error(str(e))
        return
    except UpstreamError as e:
        st.error(f"OpenAI API Error: {e}")
        return

    history.append({"role": "user", "content": question.strip()})
    history.append({"role": "assistant", "content": answer})
    st.rerun()
