"""설문 응답 CSV 로딩 및 컬럼 감지.

- 문항 컬럼: ^q\\d+ (대소문자 무시, Q24 / q10a 등)
- ID 컬럼: 흔한 이름 목록에서 자동 감지, 사용자가 준 이름은 대소문자 무시 매칭
- 응답 payload: 'record=<id> | response=<text>' 줄 단위, 문자 예산 안에서 자름
"""

import io
import logging
import re
from typing import Iterator, List, Optional, Tuple, Union

import pandas as pd

from services.errors import InputError

logger = logging.getLogger(__name__)

MAX_INPUT_CHARS = 120000

QUESTION_COL_RE = re.compile(r'^q\d+', re.IGNORECASE)

COMMON_ID_NAMES = [
    'respid', 'record', 'responseid', 'response_id',
    'respondentid', 'respondent_id', 'participantid', 'participant_id',
    'id', 'user_id', 'userid', 'caseid', 'case_id',
]

DEFAULT_ID_COLUMN = 'respid'

# 무응답 취급 문자열 (영숫자 외 문자를 공백으로 바꾼 뒤 비교)
PLACEHOLDERS = {
    '', 'na', 'n a', 'n/a', 'none', 'no response', 'no comment', 'nil', '.', '-', '--',
}


def load_survey_csv(source: Union[bytes, str, io.IOBase]) -> pd.DataFrame:
    """CSV를 문자열 DataFrame으로 로드 (BOM/헤더 공백 제거, 완전 빈 행 제거)."""
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False, encoding='utf-8-sig')
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise InputError(f"Error parsing CSV file. Please check the file format. ({e})") from e

    df.columns = [str(c).replace('\ufeff', '').strip() for c in df.columns]
    if len(df):
        blank = df.apply(lambda row: all(str(v).strip() == '' for v in row), axis=1)
        df = df[~blank].reset_index(drop=True)
    logger.info(f"Loaded CSV: {len(df)} rows, {len(df.columns)} columns")
    return df


def detect_question_columns(df: pd.DataFrame) -> List[str]:
    return [c for c in df.columns if QUESTION_COL_RE.match(str(c))]


def filter_question_columns(columns: List[str], prefix: str) -> List[str]:
    """선택 필터 (접두어 일치). 빈 필터면 전체."""
    q_filter = (prefix or '').strip().lower()
    if not q_filter:
        return list(columns)
    matched = [c for c in columns if c.lower().startswith(q_filter)]
    if not matched:
        raise InputError(f"No columns match '{prefix}'. Found: {', '.join(columns)}")
    return matched


def detect_id_column(df: pd.DataFrame) -> Optional[str]:
    lowered = [str(c).lower() for c in df.columns]
    for name in COMMON_ID_NAMES:
        if name in lowered:
            return df.columns[lowered.index(name)]
    return None


def resolve_id_column(df: pd.DataFrame, desired: Optional[str]) -> Optional[str]:
    """사용자가 입력한 ID 컬럼명을 대소문자 무시로 실제 컬럼명에 매칭"""
    if not desired:
        return None
    wanted = str(desired).strip().lower()
    for c in df.columns:
        if str(c).lower() == wanted:
            return c
    return None


def require_id_column(df: pd.DataFrame, desired: Optional[str]) -> str:
    """ID 컬럼 확정: 입력값 → 자동 감지 순서, 둘 다 실패하면 InputError"""
    resolved = resolve_id_column(df, desired or DEFAULT_ID_COLUMN)
    if resolved:
        return resolved
    auto = detect_id_column(df)
    if auto:
        logger.info(f"ID column '{desired}' not found; using detected '{auto}'")
        return auto
    raise InputError(
        f"Expected an ID column like '{desired or DEFAULT_ID_COLUMN}' in the CSV. "
        f"Available columns: {', '.join(map(str, df.columns))}"
    )


def normalize_placeholder(text) -> str:
    return re.sub(r'[^0-9A-Za-z]+', ' ', str(text or '')).strip().lower()


def is_meaningful(text, min_chars: int = 3) -> bool:
    s = str(text or '').strip()
    if len(s) < min_chars:
        return False
    return normalize_placeholder(s) not in PLACEHOLDERS


def iter_responses(df: pd.DataFrame, id_col: Optional[str], column: str,
                   skip_blanks: bool = True) -> Iterator[Tuple[str, str]]:
    """(respondent id, 응답 텍스트) 순회.

    skip_blanks=True면 무응답/너무 짧은 응답까지 제외, False면 빈 문자열만 제외.
    ID가 비어 있으면 1부터 시작하는 행 번호 사용.
    """
    if column not in df.columns:
        return
    has_id = bool(id_col) and id_col in df.columns
    for i, raw in enumerate(df[column].tolist()):
        rid = str(df[id_col].iat[i]).strip() if has_id else ''
        if not rid:
            rid = str(i + 1)
        text = str(raw if raw is not None else '').replace('\n', ' ').strip()
        if skip_blanks:
            if not is_meaningful(text):
                continue
        elif not text:
            continue
        yield rid, text


def build_response_payload(df: pd.DataFrame, id_col: Optional[str], column: str,
                           max_chars: int = MAX_INPUT_CHARS, skip_blanks: bool = True) -> str:
    """모델 입력용 응답 블록. 문자 예산을 넘는 줄부터는 잘라낸다."""
    lines = []
    total = 0
    for rid, text in iter_responses(df, id_col, column, skip_blanks):
        line = f"record={rid} | response={text}"
        add = len(line) + 1
        if total + add > max_chars:
            logger.info(f"Payload for '{column}' truncated at {len(lines)} responses ({max_chars} chars)")
            break
        lines.append(line)
        total += add
    return "\n".join(lines)
