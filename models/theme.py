from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union
import uuid


def _new_theme_id() -> str:
    return uuid.uuid4().hex


def coerce_str_list(value: Any) -> List[str]:
    """리스트가 아니면 빈 리스트, 리스트면 모든 원소를 문자열로 변환"""
    if not isinstance(value, list):
        return []
    return ["" if v is None else str(v) for v in value]


def participant_id_str(value: Any) -> str:
    """응답자 ID 문자열화: 101.0 같은 정수형 float은 "101"로"""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def coerce_participant_ids(value: Any) -> List[str]:
    """ParticipantID 리스트 정규화: null/빈 ID는 버린다 (CSV 내보내기와 같은 규칙)"""
    if not isinstance(value, list):
        return []
    ids = [participant_id_str(v) for v in value]
    return [pid for pid in ids if pid]


def wrap_participant_ids(value: Any) -> List[str]:
    """추출/내보내기용: 스칼라 ParticipantID는 1개짜리 리스트로 감싼다"""
    if isinstance(value, list):
        return coerce_participant_ids(value)
    return coerce_participant_ids([value])


@dataclass
class Theme:
    """문항 하나에 대해 추출된 테마

    모델과 주고받는 JSON 키는 PascalCase 4개뿐이고,
    theme_id는 선택 상태 추적용 내부 식별자 (모델에 보내지 않음).
    """
    label: str
    definition: str = ""
    keywords: List[str] = field(default_factory=list)
    participant_ids: List[str] = field(default_factory=list)
    theme_id: str = field(default_factory=_new_theme_id)

    def distinct_participants(self) -> set:
        return set(self.participant_ids)

    def to_json_dict(self) -> dict:
        """모델/세션용 JSON 딕셔너리 (wire 포맷)"""
        return {
            "ThemeLabel": self.label,
            "Definition": self.definition,
            "RepresentativeKeywords": list(self.keywords),
            "ParticipantID": list(self.participant_ids),
        }

    @classmethod
    def from_fields(cls, raw: Any, fallback_label: str,
                    theme_id: Optional[str] = None) -> 'Theme':
        """부분 ThemeFields에서 Theme 생성 (누락 필드는 기본값)

        label -> fallback_label, definition -> "", keywords/participant -> []
        """
        d = raw if isinstance(raw, dict) else {}
        label = d.get("ThemeLabel")
        definition = d.get("Definition")
        theme = cls(
            label=str(label) if label not in (None, "") else fallback_label,
            definition=str(definition) if definition is not None else "",
            keywords=coerce_str_list(d.get("RepresentativeKeywords")),
            participant_ids=coerce_participant_ids(d.get("ParticipantID")),
        )
        if theme_id is not None:
            theme.theme_id = theme_id
        return theme

    @classmethod
    def from_llm_dict(cls, d: dict, index: int) -> 'Theme':
        """최초 추출 결과 JSON에서 Theme 생성 (스칼라 ParticipantID 허용)"""
        theme = cls.from_fields(d, fallback_label=f"Theme {index + 1}")
        theme.participant_ids = wrap_participant_ids(d.get("ParticipantID"))
        return theme


@dataclass
class ResultMarker:
    """추출 실패 표시 (업스트림 에러 메시지 또는 파싱 못한 원문)"""
    error: Optional[str] = None
    raw: Optional[str] = None

    def describe(self) -> str:
        if self.error:
            return f"Error: {self.error}"
        return "Parse issue: raw model text was kept internally."

    def to_json_dict(self) -> dict:
        if self.error is not None:
            return {"_error": self.error}
        return {"_raw": self.raw or ""}


QuestionResult = Union[List[Theme], ResultMarker]


def is_theme_list(result: Any) -> bool:
    return isinstance(result, list)


def results_to_json_dict(results: Dict[str, QuestionResult]) -> dict:
    """세션 저장용: 문항별 결과를 JSON 딕셔너리로"""
    out = {}
    for question, result in results.items():
        if is_theme_list(result):
            out[question] = [t.to_json_dict() for t in result]
        else:
            out[question] = result.to_json_dict()
    return out


def results_from_json_dict(d: dict) -> Dict[str, QuestionResult]:
    """세션 JSON에서 문항별 결과 복원 (theme_id는 새로 발급)"""
    out: Dict[str, QuestionResult] = {}
    for question, value in d.items():
        if isinstance(value, list):
            out[question] = [
                Theme.from_llm_dict(t, i) for i, t in enumerate(value) if isinstance(t, dict)
            ]
        elif isinstance(value, dict):
            out[question] = ResultMarker(error=value.get("_error"), raw=value.get("_raw"))
    return out
