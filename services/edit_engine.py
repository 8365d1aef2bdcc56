"""테마 편집 엔진.

문항 하나의 테마 리스트에 편집 배치를 적용해 새 리스트를 돌려준다 (입력은 변경하지 않음).

태그 연산은 입력 순서와 무관하게 아래 단계 순서로 실행한다.
  1. merge / split  (서로 간에는 입력 순서대로, 실행 시점의 배열 기준)
  2. delete         (모든 인덱스 합집합, 내림차순 제거)
  3. replace        (슬롯 통째로 덮어쓰기)
  4. insert         (인덱스를 [0, len]으로 clamp 후 삽입)

delete/replace/insert 인덱스는 1단계가 끝난 배열 기준이다.
범위를 벗어나거나 필드가 빠진 연산은 배치를 중단하지 않고 skipped에 사유와 함께 남긴다.
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from models.edit_ops import (
    DeleteOp,
    EditBatch,
    InsertOp,
    InvalidOperation,
    LegacyPatch,
    MergeOp,
    ReplaceOp,
    SplitOp,
    decode_edit_batch,
)
from models.theme import Theme, coerce_participant_ids, coerce_str_list

logger = logging.getLogger(__name__)

MERGED_LABEL = "Merged Theme"

MIXED_PHASE_WARNING = (
    "Batch mixes merge/split with delete/replace/insert: delete/replace/insert "
    "indices were applied to positions after merge/split, not to the original list."
)


@dataclass
class AppliedEdit:
    operation: Any
    summary: str


@dataclass
class SkippedEdit:
    operation: Any
    reason: str


@dataclass
class EditResult:
    """편집 결과: 새 테마 리스트 + 적용/스킵 내역"""
    themes: List[Theme]
    applied: List[AppliedEdit] = field(default_factory=list)
    skipped: List[SkippedEdit] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    kind: str = "tagged"

    @property
    def changed(self) -> bool:
        return bool(self.applied)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


# ---------------------------------------------------------------------------
# 레거시 패치
# ---------------------------------------------------------------------------


def _patched_theme(current: Theme, fields: dict, index: int, warnings: List[str]) -> Theme:
    """있는 필드만 덮어쓰는 per-field merge (theme_id 유지)

    명시적인 null/빈 값은 무시하지 않고 기본값으로 덮어쓴다:
    ThemeLabel -> "Theme {index+1}", Definition -> "", 리스트 -> [].
    """
    updates = {}
    if "ThemeLabel" in fields:
        label = fields["ThemeLabel"]
        updates["label"] = str(label) if label not in (None, "") else f"Theme {index + 1}"
    if "Definition" in fields:
        definition = fields["Definition"]
        updates["definition"] = str(definition) if definition is not None else ""
    for key, attr, coerce in (("RepresentativeKeywords", "keywords", coerce_str_list),
                              ("ParticipantID", "participant_ids", coerce_participant_ids)):
        if key not in fields:
            continue
        value = fields[key]
        if value is None or isinstance(value, list):
            updates[attr] = coerce(value)
        else:
            warnings.append(f"{key} on patch for '{current.label}' is not a list; kept previous value")
    return dataclasses.replace(current, **updates)


def _apply_legacy(themes: List[Theme], batch: EditBatch) -> EditResult:
    result = EditResult(themes=list(themes), kind="legacy")
    work = result.themes

    for patch in batch.operations:
        if isinstance(patch, InvalidOperation):
            result.skipped.append(SkippedEdit(patch.raw, patch.reason))
            continue
        if not 0 <= patch.index < len(work):
            result.skipped.append(SkippedEdit(patch, f"index {patch.index} out of range (0..{len(work) - 1})"))
            continue
        work[patch.index] = _patched_theme(work[patch.index], patch.present_fields(), patch.index, result.warnings)
        result.applied.append(AppliedEdit(patch, patch.describe()))

    return result


# ---------------------------------------------------------------------------
# 1단계: merge / split
# ---------------------------------------------------------------------------


def _apply_merge(work: List[Theme], op: MergeOp, result: EditResult) -> None:
    indices = sorted(set(op.indices))
    valid = [i for i in indices if 0 <= i < len(work)]
    dropped = [i for i in indices if not 0 <= i < len(work)]

    if not valid:
        reason = "no indices" if not indices else f"indices {indices} out of range"
        result.skipped.append(SkippedEdit(op, reason))
        return
    if dropped:
        result.warnings.append(f"merge ignored out-of-range indices {dropped}")

    point = op.insert_index if op.insert_index is not None else valid[0]

    # 앞쪽 인덱스가 밀리지 않도록 뒤에서부터 제거
    for i in reversed(valid):
        del work[i]

    merged = Theme.from_fields(op.theme_fields(), fallback_label=MERGED_LABEL)
    point = _clamp(point, 0, len(work))
    work.insert(point, merged)
    result.applied.append(AppliedEdit(op, f"merged {valid} into '{merged.label}' at {point}"))


def _apply_split(work: List[Theme], op: SplitOp, result: EditResult) -> None:
    if not 0 <= op.index < len(work):
        result.skipped.append(SkippedEdit(op, f"index {op.index} out of range (0..{len(work) - 1})"))
        return

    removed = work.pop(op.index)
    replacements = [
        Theme.from_fields(raw, fallback_label=f"Split {n + 1}")
        for n, raw in enumerate(op.replacements)
    ]
    point = op.insert_index if op.insert_index is not None else op.index
    point = _clamp(point, 0, len(work))
    work[point:point] = replacements
    result.applied.append(AppliedEdit(
        op, f"split '{removed.label}' into {len(replacements)} theme(s) at {point}"))


# ---------------------------------------------------------------------------
# 2~4단계: delete / replace / insert
# ---------------------------------------------------------------------------


def _apply_deletes(work: List[Theme], ops: List[DeleteOp], result: EditResult) -> None:
    n = len(work)
    to_delete = set()
    for op in ops:
        indices = sorted(set(op.indices))
        valid = [i for i in indices if 0 <= i < n]
        dropped = [i for i in indices if not 0 <= i < n]
        if not valid:
            reason = "no indices" if not indices else f"indices {indices} out of range"
            result.skipped.append(SkippedEdit(op, reason))
            continue
        if dropped:
            result.warnings.append(f"delete ignored out-of-range indices {dropped}")
        to_delete.update(valid)
        result.applied.append(AppliedEdit(op, f"deleted {valid}"))

    for i in sorted(to_delete, reverse=True):
        del work[i]


def _apply_replace(work: List[Theme], op: ReplaceOp, result: EditResult) -> None:
    if not 0 <= op.index < len(work):
        result.skipped.append(SkippedEdit(op, f"index {op.index} out of range (0..{len(work) - 1})"))
        return
    if not isinstance(op.theme, dict):
        result.skipped.append(SkippedEdit(op, "missing theme"))
        return
    # 같은 슬롯의 테마를 수정한 것이므로 theme_id 유지
    work[op.index] = Theme.from_fields(
        op.theme, fallback_label=f"Theme {op.index + 1}", theme_id=work[op.index].theme_id)
    result.applied.append(AppliedEdit(op, f"replaced {op.index} with '{work[op.index].label}'"))


def _apply_insert(work: List[Theme], op: InsertOp, result: EditResult) -> None:
    if not isinstance(op.theme, dict):
        result.skipped.append(SkippedEdit(op, "missing theme"))
        return
    point = _clamp(op.index, 0, len(work))
    theme = Theme.from_fields(op.theme, fallback_label=f"Theme {point + 1}")
    work.insert(point, theme)
    result.applied.append(AppliedEdit(op, f"inserted '{theme.label}' at {point}"))


def _apply_tagged(themes: List[Theme], batch: EditBatch) -> EditResult:
    result = EditResult(themes=list(themes), kind="tagged")
    work = result.themes

    restructures, deletes, replaces, inserts = [], [], [], []
    for op in batch.operations:
        if isinstance(op, InvalidOperation):
            result.skipped.append(SkippedEdit(op.raw, op.reason))
        elif isinstance(op, (MergeOp, SplitOp)):
            restructures.append(op)
        elif isinstance(op, DeleteOp):
            deletes.append(op)
        elif isinstance(op, ReplaceOp):
            replaces.append(op)
        elif isinstance(op, InsertOp):
            inserts.append(op)

    if restructures and (deletes or replaces or inserts):
        result.warnings.append(MIXED_PHASE_WARNING)

    for op in restructures:
        if isinstance(op, MergeOp):
            _apply_merge(work, op, result)
        else:
            _apply_split(work, op, result)

    if deletes:
        _apply_deletes(work, deletes, result)

    for op in replaces:
        _apply_replace(work, op, result)

    for op in inserts:
        _apply_insert(work, op, result)

    return result


# ---------------------------------------------------------------------------
# 진입점
# ---------------------------------------------------------------------------


def apply_edits(themes: List[Theme], edits: Union[EditBatch, List[Any], Any]) -> EditResult:
    """테마 리스트에 편집 배치 적용.

    Args:
        themes: 현재 테마 리스트 (변경하지 않음)
        edits: 디코딩된 EditBatch 또는 모델이 준 JSON 배열 그대로

    Returns:
        EditResult (themes는 항상 0..n-1 dense 리스트)
    """
    if isinstance(edits, EditBatch):
        batch = edits
    elif isinstance(edits, list):
        batch = decode_edit_batch(edits)
    else:
        logger.warning(f"Edit batch ignored: expected a JSON array, got {type(edits).__name__}")
        return EditResult(themes=list(themes), warnings=["edits must be a JSON array"])

    if batch.is_legacy:
        result = _apply_legacy(themes, batch)
    else:
        result = _apply_tagged(themes, batch)

    for skipped in result.skipped:
        logger.debug(f"Skipped edit {skipped.operation!r}: {skipped.reason}")
    logger.info(
        f"Edit batch ({result.kind}): {len(result.applied)} applied, "
        f"{len(result.skipped)} skipped, {len(themes)} -> {len(result.themes)} themes"
    )
    return result


def apply_theme_edits(themes: List[Theme], edits: Union[EditBatch, List[Any]]) -> List[Theme]:
    """apply_edits의 테마 리스트만 필요할 때"""
    return apply_edits(themes, edits).themes


def describe_result(result: EditResult, limit: Optional[int] = 5) -> List[str]:
    """UI 표시용 스킵/경고 메시지"""
    lines = [f"Skipped: {s.reason}" for s in result.skipped]
    lines.extend(result.warnings)
    return lines[:limit] if limit else lines
