"""모델 응답 텍스트에서 JSON 배열 복구.

코드펜스 제거 → 직접 파싱 → 첫 '[' ~ 마지막 ']' → 첫 '{' ~ 마지막 '}' 순서로 시도.
"""

import json
import logging
import re
from typing import Any, List, Optional

from models.theme import Theme
from services.errors import ResultParseError

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r'^`{3,}[ \t]*[A-Za-z0-9_-]*[ \t]*\n?')
_FENCE_CLOSE = re.compile(r'\n?`{3,}\s*$')


def strip_code_fences(text: str) -> str:
    """앞뒤 ``` 펜스 (언어 태그 포함) 제거"""
    t = text.strip()
    if t.startswith("```"):
        t = _FENCE_OPEN.sub("", t, count=1)
        t = _FENCE_CLOSE.sub("", t)
    return t.strip()


_FAILED = object()


def _try_loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return _FAILED


def _slice_between(text: str, open_ch: str, close_ch: str) -> Optional[str]:
    i = text.find(open_ch)
    j = text.rfind(close_ch)
    if i != -1 and j > i:
        return text[i:j + 1]
    return None


def parse_json_lenient(text: Optional[str]) -> Any:
    """모델 텍스트를 JSON으로 파싱. 실패 시 ResultParseError.

    None은 빈 배열로 취급.
    """
    if text is None:
        return []

    t = strip_code_fences(str(text))

    parsed = _try_loads(t)
    if parsed is not _FAILED:
        return parsed

    for open_ch, close_ch in (("[", "]"), ("{", "}")):
        candidate = _slice_between(t, open_ch, close_ch)
        if candidate is None:
            continue
        parsed = _try_loads(candidate)
        if parsed is not _FAILED:
            return parsed

    logger.error(f"JSON parse failed (response length={len(t)})")
    raise ResultParseError("could not parse model response as JSON", raw=str(text))


def parse_theme_array(text: Optional[str]) -> List[Theme]:
    """추출 응답을 Theme 리스트로. 배열이 아니면 ResultParseError."""
    parsed = parse_json_lenient(text)
    if not isinstance(parsed, list):
        raise ResultParseError("themes must be a JSON array", raw=text)
    return [Theme.from_llm_dict(d, i) for i, d in enumerate(parsed) if isinstance(d, dict)]
