"""테마 결과 CSV 내보내기.

LONG: 문항 × 테마 한 행 (Question, ThemeLabel, Definition, Keywords, ParticipantIDs)
WIDE: 응답자 한 행, {question}_{themeLabel} 0/1 코드 컬럼
"""

import datetime as dt
import re
from typing import Dict, List, Optional

import pandas as pd

from models.theme import QuestionResult, ResultMarker, is_theme_list

LONG_COLUMNS = ["Question", "ThemeLabel", "Definition", "Keywords", "ParticipantIDs"]
FALLBACK_ID_COLUMN = "user_id"


def _today() -> str:
    return dt.date.today().isoformat()


def long_filename(day: Optional[str] = None) -> str:
    return f"themes_by_question_{day or _today()}.csv"


def wide_filename(day: Optional[str] = None) -> str:
    return f"codes_by_question_{day or _today()}.csv"


def build_long_dataframe(results: Dict[str, QuestionResult]) -> pd.DataFrame:
    rows = []
    for question, result in results.items():
        if is_theme_list(result):
            for idx, theme in enumerate(result):
                rows.append({
                    "Question": question,
                    "ThemeLabel": theme.label or f"Theme {idx + 1}",
                    "Definition": theme.definition,
                    "Keywords": ", ".join(theme.keywords),
                    "ParticipantIDs": "; ".join(p for p in theme.participant_ids if p),
                })
        else:
            marker: ResultMarker = result
            rows.append({
                "Question": question,
                "ThemeLabel": "_parse_error",
                "Definition": f"Upstream error: {marker.error}" if marker.error
                else "Raw LLM text was kept internally.",
                "Keywords": "",
                "ParticipantIDs": "",
            })
    return pd.DataFrame(rows, columns=LONG_COLUMNS)


def _code_column(question: str, label: str, idx: int) -> str:
    theme_name = re.sub(r'\s+', ' ', label or f"Theme_{idx + 1}")
    return f"{question}_{theme_name}"


def build_wide_dataframe(results: Dict[str, QuestionResult], id_col: Optional[str] = None) -> pd.DataFrame:
    """응답자 × 테마 0/1 코드표. 같은 컬럼명이 겹치면 합집합으로 코딩."""
    id_name = id_col or FALLBACK_ID_COLUMN

    all_ids: List[str] = []
    seen = set()
    code_columns: Dict[str, set] = {}

    for question, result in results.items():
        if not is_theme_list(result):
            continue
        for idx, theme in enumerate(result):
            members = {p for p in theme.participant_ids if p}
            code_columns.setdefault(_code_column(question, theme.label, idx), set()).update(members)
            for pid in theme.participant_ids:
                if pid and pid not in seen:
                    seen.add(pid)
                    all_ids.append(pid)

    data = {id_name: all_ids}
    for column, members in code_columns.items():
        data[column] = [1 if pid in members else 0 for pid in all_ids]
    return pd.DataFrame(data, columns=[id_name] + list(code_columns.keys()))


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode('utf-8-sig')
