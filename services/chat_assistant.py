"""Chatbot 서비스: 첨부 파일을 컨텍스트로 붙여 질문에 답한다.

1. 업로드 파일 읽기 (txt/md/json 원문, csv는 행 단위 요약 텍스트)
2. pdf/docx는 파일명만 목록으로 전달 (본문 추출 안 함)
3. 질문 + 지시문 + 파일 블록을 MAX_INPUT_CHARS 안에서 조립
4. 최근 대화 10개와 함께 call_chat 호출
"""

import io
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import pandas as pd

from services.csv_loader import MAX_INPUT_CHARS
from services.errors import InputError
from services.llm_client import DEFAULT_MODEL, call_chat

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = "You are a precise research assistant. If you reference files, cite them by filename."
GREETING = "Hi! Ask a question and optionally attach files. I'll answer and reference them."
CLEARED_GREETING = "Chat cleared. Ask another question anytime."
NO_CONTENT = "(No content returned)"

ACCEPTED_EXTENSIONS = ["txt", "md", "csv", "json", "pdf", "docx"]
TEXT_EXTENSIONS = ("txt", "md", "json")

HISTORY_LIMIT = 10
RESERVED_CHARS = 2000           # 지시문 + 답변 여유분
CSV_PREVIEW_ROWS = 100
CSV_CELL_CHARS = 200


@dataclass
class ChatAttachment:
    """첨부 파일 1개. text가 None이면 파싱하지 않은 파일 (목록에만 표시)"""
    name: str
    mime: str = ""
    text: Optional[str] = None

    @property
    def parsed(self) -> bool:
        return isinstance(self.text, str) and len(self.text) > 0


def _extension(name: str) -> str:
    return name.rsplit(".", 1)[-1].lower() if "." in name else ""


def _decode(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


def _cell(value) -> str:
    return re.sub(r"\s+", " ", str(value))[:CSV_CELL_CHARS]


def csv_preview_text(raw: str) -> str:
    """CSV 텍스트를 'COLUMNS: ...' + 'row=N | col=val | ...' 줄로 평탄화 (최대 100행)"""
    df = pd.read_csv(io.StringIO(raw), dtype=str, keep_default_na=False)
    rows = [row for _, row in df.iterrows() if any(str(v).strip() for v in row)]
    headers = [str(c) for c in df.columns]

    lines = [f"COLUMNS: {', '.join(headers)}"]
    for i, row in enumerate(rows[:CSV_PREVIEW_ROWS]):
        cells = [f"{h}={_cell(v)}" for h, v in zip(headers, row)]
        lines.append(f"row={i + 1} | {' | '.join(cells)}")
    if len(rows) > CSV_PREVIEW_ROWS:
        lines.append(f"... ({len(rows) - CSV_PREVIEW_ROWS} more rows not shown)")
    return "\n".join(lines)


def read_attachment(name: str, data: bytes, mime: str = "") -> ChatAttachment:
    """업로드 파일 → ChatAttachment. CSV 파싱 실패 시 원문 텍스트로 대체"""
    ext = _extension(name)
    if ext == "csv" or mime == "text/csv":
        raw = _decode(data)
        try:
            text = csv_preview_text(raw)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            logger.warning(f"CSV attachment {name} could not be parsed, using raw text: {e}")
            text = raw
        return ChatAttachment(name=name, mime=mime, text=text)
    if ext in TEXT_EXTENSIONS or mime.startswith("text/") or mime == "application/json":
        return ChatAttachment(name=name, mime=mime, text=_decode(data))
    return ChatAttachment(name=name, mime=mime, text=None)


# ---------------------------------------------------------------------------
# 프롬프트 조립
# ---------------------------------------------------------------------------


def build_file_blocks(question: str, attachments: List[ChatAttachment],
                      budget: int = MAX_INPUT_CHARS) -> List[str]:
    """읽은 파일 텍스트를 남은 글자 수 안에서 앞에서부터 잘라 넣는다"""
    remaining = budget - len(question) - RESERVED_CHARS
    blocks = []
    for att in attachments:
        if not att.parsed:
            continue
        if remaining <= 0:
            break
        chunk = att.text[:remaining]
        remaining -= len(chunk)
        blocks.append(f"=== FILE: {att.name} (truncated) ===\n{chunk}\n=== END FILE: {att.name} ===")
    return blocks


def build_user_block(question: str, attachments: List[ChatAttachment],
                     budget: int = MAX_INPUT_CHARS) -> str:
    unparsed = [a for a in attachments if a.text is None]
    list_note = ""
    if unparsed:
        names = "\n".join(f"- {a.name} ({a.mime or 'unknown'})" for a in unparsed)
        list_note = f"\nUnparsed attachments included for context only (no text extracted yet):\n{names}\n"

    blocks = "\n\n".join(build_file_blocks(question, attachments, budget))
    return (
        f"Question:\n{question}\n\n"
        "Instructions:\n"
        "- Use the attached file texts to answer when relevant.\n"
        "- When you cite, reference the filename(s) that support your answer.\n"
        "- If a file wasn't parsed (e.g., PDF/DOCX), say so and answer using parsed files only.\n\n"
        f"{list_note}\n{blocks}"
    )


def build_chat_messages(question: str, history: List[Dict[str, str]],
                        attachments: List[ChatAttachment]) -> List[Dict[str, str]]:
    """system + 최근 대화 + 첨부 포함 user 메시지"""
    return [
        {"role": "system", "content": CHAT_SYSTEM_PROMPT},
        *history[-HISTORY_LIMIT:],
        {"role": "user", "content": build_user_block(question, attachments)},
    ]


def ask_with_attachments(
    question: str,
    history: List[Dict[str, str]],
    attachments: List[ChatAttachment],
    model: str = DEFAULT_MODEL,
    chat: Callable[..., str] = call_chat,
) -> str:
    """질문 전송 후 답변 텍스트 반환.

    Raises:
        InputError: 빈 질문
        UpstreamError: call_chat 실패 (호출부에서 표시)
    """
    q = (question or "").strip()
    if not q:
        raise InputError("Type a question to ask the model.")

    messages = build_chat_messages(q, history, attachments)
    logger.info(f"Chat question ({len(q)} chars) with {len(attachments)} attachment(s), model={model}")
    answer = chat(messages, model, temperature=0.2)
    return answer or NO_CONTENT
