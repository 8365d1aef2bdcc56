"""테마 선택 상태와 커버리지 계산.

선택 상태는 문항별 theme_id 집합으로 저장한다.
merge/split로 순서가 바뀌어도 남아 있는 테마의 선택은 유지되고,
사라진 테마의 id는 prune()으로 정리된다.
"""

from typing import Dict, Iterable, List, Optional, Set

import pandas as pd

from models.theme import Theme
from services.csv_loader import iter_responses


class SelectionTracker:
    """문항 컬럼별 편집 대상 테마 선택"""

    def __init__(self):
        self._selected: Dict[str, Set[str]] = {}

    def selected_ids(self, question: str) -> Set[str]:
        return set(self._selected.get(question, set()))

    def is_selected(self, question: str, theme: Theme) -> bool:
        return theme.theme_id in self._selected.get(question, set())

    def toggle(self, question: str, theme: Theme) -> bool:
        """선택 토글. 토글 후 선택 여부 반환."""
        ids = self._selected.setdefault(question, set())
        if theme.theme_id in ids:
            ids.discard(theme.theme_id)
            return False
        ids.add(theme.theme_id)
        return True

    def set_selected(self, question: str, theme: Theme, selected: bool) -> None:
        ids = self._selected.setdefault(question, set())
        if selected:
            ids.add(theme.theme_id)
        else:
            ids.discard(theme.theme_id)

    def select_all(self, question: str, themes: List[Theme]) -> None:
        self._selected[question] = {t.theme_id for t in themes}

    def clear(self, question: str) -> None:
        self._selected[question] = set()

    def forget(self, question: str) -> None:
        self._selected.pop(question, None)

    def clear_all(self) -> None:
        self._selected.clear()

    def selected_indices(self, question: str, themes: List[Theme]) -> List[int]:
        """현재 테마 리스트 기준 선택 인덱스 (오름차순)"""
        ids = self._selected.get(question, set())
        return [i for i, t in enumerate(themes) if t.theme_id in ids]

    def prune(self, question: str, themes: List[Theme]) -> None:
        """현재 리스트에 없는 theme_id 제거"""
        if question not in self._selected:
            return
        alive = {t.theme_id for t in themes}
        self._selected[question] &= alive


def respondent_universe(df: Optional[pd.DataFrame], id_col: Optional[str], question: str) -> Set[str]:
    """문항에 유효 응답(무응답 제외)을 한 respondent ID 집합"""
    if df is None or question not in df.columns:
        return set()
    return {rid for rid, _ in iter_responses(df, id_col, question, skip_blanks=True)}


def assigned_participants(themes: Iterable[Theme]) -> Set[str]:
    ids: Set[str] = set()
    for t in themes:
        ids.update(t.participant_ids)
    return ids


def coverage_denominator(universe: Set[str], themes: List[Theme]) -> int:
    """응답자 universe 크기 → 없으면 테마 배정 ID 합집합 크기 → 최소 1"""
    if universe:
        return len(universe)
    assigned = assigned_participants(themes)
    if assigned:
        return len(assigned)
    return 1


def theme_coverage(theme: Theme, denominator: int) -> float:
    """테마에 배정된 고유 ID 비율 (%, 소수 첫째 자리)"""
    return round(len(theme.distinct_participants()) / max(denominator, 1) * 100, 1)


def coverage_table(themes: List[Theme], universe: Set[str]) -> pd.DataFrame:
    denominator = coverage_denominator(universe, themes)
    rows = []
    for i, t in enumerate(themes):
        rows.append({
            "Index": i,
            "ThemeLabel": t.label,
            "Participants": len(t.distinct_participants()),
            "Coverage%": theme_coverage(t, denominator),
        })
    return pd.DataFrame(rows, columns=["Index", "ThemeLabel", "Participants", "Coverage%"])


def uncovered_respondents(universe: Set[str], themes: List[Theme]) -> List[str]:
    """어느 테마에도 배정되지 않은 응답자"""
    return sorted(universe - assigned_participants(themes))
