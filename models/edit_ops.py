"""테마 편집 연산 모델.

모델이 돌려준 JSON 배열을 경계에서 한 번 디코딩한다.
- 태그("op") 있는 원소: merge / split / replace / delete / insert 판별 유니온
- 배열 전체에 태그가 하나도 없으면: 레거시 패치 배치
"""

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

# 태그 키 (op 우선, type/action 별칭 허용)
TAG_KEYS = ("op", "type", "action")

THEME_FIELD_KEYS = ("ThemeLabel", "Definition", "RepresentativeKeywords", "ParticipantID")


def _wrap_scalar(v):
    if v is None or isinstance(v, (list, tuple, set)):
        return v
    return [v]


class _Op(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def describe(self) -> str:
        return self.op


class MergeOp(_Op):
    op: Literal["merge"]
    indices: List[int]
    ThemeLabel: Any = None
    Definition: Any = None
    RepresentativeKeywords: Any = None
    ParticipantID: Any = None
    insert_index: Optional[int] = Field(default=None, alias="insertIndex")

    @field_validator("indices", mode="before")
    @classmethod
    def wrap_indices(cls, v):
        return _wrap_scalar(v)

    def theme_fields(self) -> dict:
        return {k: getattr(self, k) for k in THEME_FIELD_KEYS}

    def describe(self) -> str:
        return f"merge {sorted(set(self.indices))}"


class SplitOp(_Op):
    op: Literal["split"]
    index: int
    replacements: List[Any]
    insert_index: Optional[int] = Field(default=None, alias="insertIndex")

    @field_validator("replacements", mode="before")
    @classmethod
    def wrap_replacements(cls, v):
        return _wrap_scalar(v)

    def describe(self) -> str:
        return f"split {self.index} into {len(self.replacements)}"


class ReplaceOp(_Op):
    op: Literal["replace"]
    index: int
    theme: Any = None

    def describe(self) -> str:
        return f"replace {self.index}"


class DeleteOp(_Op):
    op: Literal["delete"]
    indices: List[int]

    @field_validator("indices", mode="before")
    @classmethod
    def wrap_indices(cls, v):
        return _wrap_scalar(v)

    def describe(self) -> str:
        return f"delete {sorted(set(self.indices))}"


class InsertOp(_Op):
    op: Literal["insert"]
    index: int
    theme: Any = None

    def describe(self) -> str:
        return f"insert at {self.index}"


EditOperation = Annotated[
    Union[MergeOp, SplitOp, ReplaceOp, DeleteOp, InsertOp],
    Field(discriminator="op"),
]

_operation_adapter = TypeAdapter(EditOperation)


class LegacyPatch(BaseModel):
    """구버전 패치: index 위치 테마의 주어진 필드만 덮어쓴다."""
    model_config = ConfigDict(extra="ignore")

    index: int
    ThemeLabel: Any = None
    Definition: Any = None
    RepresentativeKeywords: Any = None
    ParticipantID: Any = None

    def present_fields(self) -> Dict[str, Any]:
        """패치에 실제로 들어있던 테마 필드만"""
        return {k: getattr(self, k) for k in THEME_FIELD_KEYS if k in self.model_fields_set}

    def describe(self) -> str:
        return f"patch {self.index}"


@dataclass
class InvalidOperation:
    """디코딩에 실패한 원소 (엔진이 skipped로 기록)"""
    raw: Any
    reason: str

    def describe(self) -> str:
        return "invalid"


@dataclass
class EditBatch:
    kind: str  # "tagged" | "legacy"
    operations: List[Any] = field(default_factory=list)

    @property
    def is_legacy(self) -> bool:
        return self.kind == "legacy"

    def __len__(self) -> int:
        return len(self.operations)


def _tag_of(item: Any) -> Optional[str]:
    if not isinstance(item, dict):
        return None
    for key in TAG_KEYS:
        if key in item and item[key] is not None:
            return key
    return None


def _short_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors()[:3]:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg', '')}" if loc else err.get("msg", ""))
    return "; ".join(parts)


def decode_operation(item: Any) -> Union[MergeOp, SplitOp, ReplaceOp, DeleteOp, InsertOp, InvalidOperation]:
    if not isinstance(item, dict):
        return InvalidOperation(raw=item, reason="operation is not an object")
    tag_key = _tag_of(item)
    if tag_key is None:
        return InvalidOperation(raw=item, reason="missing op tag")

    data = dict(item)
    data["op"] = str(data.pop(tag_key)).strip().lower()
    try:
        return _operation_adapter.validate_python(data)
    except ValidationError as e:
        return InvalidOperation(raw=item, reason=f"invalid {data['op']} operation: {_short_error(e)}")


def decode_legacy_patch(item: Any) -> Union[LegacyPatch, InvalidOperation]:
    if not isinstance(item, dict):
        return InvalidOperation(raw=item, reason="patch is not an object")
    try:
        return LegacyPatch.model_validate(item)
    except ValidationError as e:
        return InvalidOperation(raw=item, reason=f"invalid patch: {_short_error(e)}")


def is_legacy_batch(items: List[Any]) -> bool:
    """모든 원소에 태그가 없을 때만 레거시 배치 (빈 배치는 tagged로 취급)"""
    return bool(items) and all(_tag_of(item) is None for item in items)


def decode_edit_batch(items: List[Any]) -> EditBatch:
    """JSON 배열을 EditBatch로 디코딩. 원소 단위 실패는 InvalidOperation으로 남긴다."""
    if is_legacy_batch(items):
        return EditBatch(kind="legacy", operations=[decode_legacy_patch(i) for i in items])
    return EditBatch(kind="tagged", operations=[decode_operation(i) for i in items])
