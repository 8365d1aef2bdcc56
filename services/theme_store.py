"""문항별 테마 결과 저장소 (세션 메모리).

- 추출 결과로 통째로 생성/교체
- 편집 배치 단위로 새 리스트로 교체 (엔진은 순수 함수)
- 결과 전체 삭제 시 선택 상태도 함께 초기화
"""

import json
import logging
from typing import Dict, List, Optional, Union

from models.edit_ops import EditBatch
from models.theme import (
    QuestionResult,
    ResultMarker,
    Theme,
    is_theme_list,
    results_from_json_dict,
    results_to_json_dict,
)
from services.coverage import SelectionTracker
from services.edit_engine import EditResult, apply_edits
from services.errors import EditRequestError

logger = logging.getLogger(__name__)


class ThemeStore:
    def __init__(self):
        self._results: Dict[str, QuestionResult] = {}
        self.selection = SelectionTracker()

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, question: str) -> bool:
        return question in self._results

    def questions(self) -> List[str]:
        return list(self._results.keys())

    def items(self):
        return list(self._results.items())

    def get(self, question: str) -> Optional[QuestionResult]:
        return self._results.get(question)

    def themes(self, question: str) -> List[Theme]:
        """편집 가능한 테마 리스트. 마커/없는 문항이면 EditRequestError."""
        result = self._results.get(question)
        if not is_theme_list(result):
            raise EditRequestError(f"No editable themes for '{question}'.")
        return result

    def set_result(self, question: str, result: QuestionResult) -> None:
        """새 추출 결과로 교체 (이전 선택은 무효)"""
        self._results[question] = list(result) if is_theme_list(result) else result
        self.selection.forget(question)

    def set_results(self, results: Dict[str, QuestionResult]) -> None:
        for question, result in results.items():
            self.set_result(question, result)

    def clear(self) -> None:
        self._results.clear()
        self.selection.clear_all()

    def apply_edit_batch(self, question: str, edits: Union[EditBatch, list]) -> EditResult:
        """편집 배치 적용 후 저장소 교체. 선택은 살아남은 테마만 유지."""
        current = self.themes(question)
        result = apply_edits(current, edits)
        if result.changed:
            self._results[question] = result.themes
        self.selection.prune(question, self._results[question])
        logger.info(f"Question {question}: {len(current)} -> {len(self._results[question])} themes")
        return result

    def to_json_dict(self) -> dict:
        return {"version": 1, "results": results_to_json_dict(self._results)}

    def to_json_bytes(self) -> bytes:
        """세션 저장용 JSON 바이트"""
        return json.dumps(self.to_json_dict(), ensure_ascii=False, indent=2).encode("utf-8")

    @classmethod
    def from_json_dict(cls, d: dict) -> 'ThemeStore':
        store = cls()
        store.set_results(results_from_json_dict(d.get("results", {})))
        return store


def marker_summary(result: QuestionResult) -> str:
    if isinstance(result, ResultMarker):
        return result.describe()
    return f"{len(result)} themes"
