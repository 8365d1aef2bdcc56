"""테마 편집 요청 빌더.

선택된 테마 인덱스, 현재 테마 배열, 편집 지시, 연산 스키마, 원 응답을 묶어
모델에 보낼 메시지를 만들고, 응답을 EditBatch로 디코딩한다.
상태 변경은 하지 않는다 (적용은 ThemeStore.apply_edit_batch).
"""

import json
import logging
from typing import Callable, Dict, Iterable, List, Optional

import pandas as pd

from models.edit_ops import EditBatch, decode_edit_batch
from models.theme import Theme, is_theme_list
from services.csv_loader import MAX_INPUT_CHARS, build_response_payload
from services.errors import EditRequestError, ResultParseError
from services.json_parser import parse_json_lenient
from services.llm_client import DEFAULT_MODEL, call_chat

logger = logging.getLogger(__name__)

EDIT_SYSTEM_PROMPT = (
    "You are a senior survey research analyst revising thematic codes. "
    "Output ONLY a JSON array of edit operations with no commentary."
)

DEFAULT_EDIT_INSTRUCTIONS = (
    "Improve the selected themes: merge near-duplicates, split themes that mix "
    "distinct ideas, and sharpen labels and definitions. Keep every ParticipantID "
    "from the affected themes assigned to at least one resulting theme."
)

OPERATION_SCHEMA = """Each element of the array is ONE of these operations (the "op" field is required):
{"op": "merge", "indices": [0, 2], "ThemeLabel": "...", "Definition": "...", "RepresentativeKeywords": ["..."], "ParticipantID": ["..."], "insertIndex": 0}
  - replaces the listed themes with one new theme; insertIndex is optional (default: smallest listed index)
{"op": "split", "index": 1, "replacements": [{"ThemeLabel": "...", "Definition": "...", "RepresentativeKeywords": ["..."], "ParticipantID": ["..."]}], "insertIndex": 1}
  - replaces one theme with several; insertIndex is optional (default: the split index)
{"op": "replace", "index": 3, "theme": {"ThemeLabel": "...", "Definition": "...", "RepresentativeKeywords": ["..."], "ParticipantID": ["..."]}}
  - overwrites one theme entirely
{"op": "delete", "indices": [4]}
  - removes themes
{"op": "insert", "index": 5, "theme": {"ThemeLabel": "...", "Definition": "...", "RepresentativeKeywords": ["..."], "ParticipantID": ["..."]}}
  - adds a new theme at that position

Rules:
- Operations are applied in this order: merge/split first, then delete, then replace, then insert.
- Indices in delete/replace/insert refer to positions AFTER all merge/split operations are applied.
- Only edit themes whose index is in ALLOWED INDICES.
- ParticipantID values must be record values from the responses below."""


def validate_selection(themes, selected_indices: Iterable[int]) -> List[int]:
    """선택 인덱스 검증 (네트워크 호출 전 입력 오류)"""
    if not is_theme_list(themes):
        raise EditRequestError("This question has no editable theme list (the extraction failed).")
    selected = sorted(set(int(i) for i in selected_indices))
    if not selected:
        raise EditRequestError("Select at least one theme to edit.")
    out_of_range = [i for i in selected if not 0 <= i < len(themes)]
    if out_of_range:
        raise EditRequestError(f"Selected theme indices {out_of_range} no longer exist. Refresh the selection.")
    return selected


def serialize_themes(themes: List[Theme]) -> str:
    return json.dumps(
        [{"index": i, **t.to_json_dict()} for i, t in enumerate(themes)],
        ensure_ascii=False,
        indent=2,
    )


def build_edit_messages(
    column: str,
    selected_indices: Iterable[int],
    themes: List[Theme],
    df: pd.DataFrame,
    id_col: Optional[str],
    instructions: Optional[str] = None,
    max_chars: int = MAX_INPUT_CHARS,
    skip_blanks: bool = True,
) -> List[Dict[str, str]]:
    """편집 요청 메시지 (system + user)."""
    selected = validate_selection(themes, selected_indices)
    payload = build_response_payload(df, id_col, column, max_chars, skip_blanks)
    user_instructions = (instructions or "").strip() or DEFAULT_EDIT_INSTRUCTIONS

    user_content = (
        f"Question column: '{column}'\n\n"
        f"CURRENT THEMES (JSON, with index):\n{serialize_themes(themes)}\n\n"
        f"ALLOWED INDICES: {json.dumps(selected)}\n\n"
        f"EDITING INSTRUCTIONS:\n{user_instructions}\n\n"
        f"OUTPUT FORMAT:\n{OPERATION_SCHEMA}\n\n"
        f"RESPONSES (one per line):\n{payload}"
    )
    return [
        {"role": "system", "content": EDIT_SYSTEM_PROMPT},
        {"role": "user", "content": user_content},
    ]


def parse_edit_response(content: Optional[str]) -> EditBatch:
    """모델 응답 → EditBatch. 배열로 복구되지 않으면 ResultParseError (부분 적용 없음)."""
    parsed = parse_json_lenient(content)
    if not isinstance(parsed, list):
        raise ResultParseError("edits must be a JSON array", raw=content)
    return decode_edit_batch(parsed)


def request_theme_edits(
    column: str,
    selected_indices: Iterable[int],
    themes: List[Theme],
    df: pd.DataFrame,
    id_col: Optional[str],
    instructions: Optional[str] = None,
    model: str = DEFAULT_MODEL,
    chat: Callable[..., str] = call_chat,
) -> EditBatch:
    """편집 요청 → 응답 파싱 → EditBatch.

    Raises:
        EditRequestError: 선택 없음/범위 밖 (호출 전)
        UpstreamError: 모델 호출 실패
        ResultParseError: JSON 배열 복구 실패
    """
    messages = build_edit_messages(column, selected_indices, themes, df, id_col, instructions)
    content = chat(messages, model)
    batch = parse_edit_response(content)
    logger.info(f"Column {column}: received {len(batch)} edit(s) ({batch.kind})")
    return batch
