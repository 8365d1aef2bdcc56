"""Verbatims 테마 추출 서비스.

문항 컬럼마다 응답을 모아 모델에 한 번씩 요청하고,
결과를 Theme 리스트 또는 ResultMarker(에러/원문)로 저장한다.
"""

import logging
import time
from typing import Callable, Dict, List, Optional

import pandas as pd

from models.theme import QuestionResult, ResultMarker, Theme
from services.csv_loader import MAX_INPUT_CHARS, build_response_payload
from services.errors import ResultParseError, UpstreamError
from services.json_parser import parse_theme_array
from services.llm_client import DEFAULT_MODEL, call_chat

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a precise, compliance-focused data analyst. "
    "Output strictly valid JSON with no commentary."
)

DEFAULT_ANALYSIS_PROMPT = """Your role: You are a senior survey research analyst.
Your task: Read the list of open-ended responses to the survey questions in the attached csv and identify the key themes. It is crucial that every ParticipantID goes into at least one theme category for each question. You may include categories for 'Other', 'Don't Know', and 'Refused' if needed.
Instructions:
1) Identify 6-9 themes that capture the main ideas expressed.
2) For each theme, provide:
- ThemeLabel (3–5 neutral words)
- Definition (short, factual)
- RepresentativeKeywords (5–10 indicative words/phrases)
- ParticipantID (row numbers that correspond to the theme)
3) Output ONLY JSON in this format:
[
{
"ThemeLabel": "Theme Name",
"Definition": "Short definition.",
"RepresentativeKeywords": ["keyword1", "keyword2"],
"ParticipantID": ["row number1", "row number2"]
 }
]"""

# 컬럼 간 호출 간격 (초)
PAUSE_BETWEEN_COLUMNS = 1.2


def build_extraction_messages(column: str, payload: str,
                              analysis_prompt: str = DEFAULT_ANALYSIS_PROMPT) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": (
                f"Analyze the following open-ended responses for column '{column}'.\n\n"
                f"{analysis_prompt}\n\n"
                "Use the 'record' value as ParticipantID.\n\n"
                f"RESPONSES (one per line):\n{payload}"
            ),
        },
    ]


def extract_column_themes(
    df: pd.DataFrame,
    id_col: str,
    column: str,
    model: str = DEFAULT_MODEL,
    analysis_prompt: str = DEFAULT_ANALYSIS_PROMPT,
    skip_blanks: bool = True,
    max_chars: int = MAX_INPUT_CHARS,
    chat: Callable[..., str] = call_chat,
) -> QuestionResult:
    """컬럼 하나의 테마 추출.

    Returns:
        성공 시 Theme 리스트, 업스트림 실패 시 ResultMarker(error),
        파싱 실패 시 ResultMarker(raw)
    """
    payload = build_response_payload(df, id_col, column, max_chars, skip_blanks)
    if not payload.strip():
        # 분석할 응답이 없으면 빈 배열
        return []

    messages = build_extraction_messages(column, payload, analysis_prompt or DEFAULT_ANALYSIS_PROMPT)
    try:
        content = chat(messages, model)
    except UpstreamError as e:
        logger.error(f"Column {column}: LLM call failed: {e}")
        return ResultMarker(error=str(e))

    try:
        themes: List[Theme] = parse_theme_array(content)
    except ResultParseError:
        logger.error(f"Column {column}: Failed to parse themes (response length={len(content or '')})")
        return ResultMarker(raw=content)

    logger.info(f"Column {column}: extracted {len(themes)} themes")
    return themes


def extract_all_columns(
    df: pd.DataFrame,
    id_col: str,
    columns: List[str],
    model: str = DEFAULT_MODEL,
    analysis_prompt: str = DEFAULT_ANALYSIS_PROMPT,
    skip_blanks: bool = True,
    progress_callback: Optional[Callable] = None,
    chat: Callable[..., str] = call_chat,
    pause_seconds: float = PAUSE_BETWEEN_COLUMNS,
) -> Dict[str, QuestionResult]:
    """여러 컬럼 순차 추출. 한 컬럼 실패가 나머지를 막지 않는다."""
    results: Dict[str, QuestionResult] = {}
    total = len(columns)

    for idx, column in enumerate(columns):
        if progress_callback:
            progress_callback("column_start", {"column": column, "index": idx, "total": total})

        results[column] = extract_column_themes(
            df, id_col, column,
            model=model,
            analysis_prompt=analysis_prompt,
            skip_blanks=skip_blanks,
            chat=chat,
        )

        if progress_callback:
            progress_callback("column_done", {"column": column, "index": idx, "total": total})

        if pause_seconds and idx < total - 1:
            time.sleep(pause_seconds)

    return results
