"""Memos (toplines) 서비스.

문항별 가중 빈도표(Total + 인구통계 레벨별)를 만들고,
선택한 스타일로 모델에 요약을 요청한다.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

import pandas as pd

from services.errors import InputError, UpstreamError
from services.llm_client import MODEL_SUMMARY, call_chat

logger = logging.getLogger(__name__)

MISSING_LABEL = "Missing"
TOTAL_GROUP = "Total"

STYLE_PROMPTS: Dict[str, str] = {
    "Executive Brief": "Write a single clear paragraph summarizing the key findings in a professional, executive-ready tone.",
    "Bullet-Point Insights": "Write 3–5 bullet points highlighting the key findings. Be concise, like topline insights in a slide deck.",
    "Detailed Narrative": "Write a detailed narrative (2–3 paragraphs) describing the key findings and demographic differences, as if for an analyst memo.",
}
DEFAULT_STYLE = "Executive Brief"


@dataclass
class ToplineRow:
    val: str
    weight: float
    pct: float


Toplines = Dict[str, Dict[str, List[ToplineRow]]]


def _value_labels(series: pd.Series) -> pd.Series:
    values = series.fillna("").astype(str)
    return values.where(values != "", MISSING_LABEL)


def weighted_freq(df: pd.DataFrame, value_col: str, weight_col: Optional[str] = None) -> List[ToplineRow]:
    """가중 빈도표 (비율 내림차순). 가중치가 0 이하/숫자가 아니면 제외."""
    if df.empty or value_col not in df.columns:
        return []

    values = _value_labels(df[value_col])
    if weight_col:
        weights = pd.to_numeric(df[weight_col], errors="coerce").fillna(0.0)
    else:
        weights = pd.Series(1.0, index=df.index)

    mask = weights > 0
    sums = weights[mask].groupby(values[mask], sort=False).sum()
    total = float(sums.sum())

    rows = [
        ToplineRow(val=str(val), weight=float(w), pct=(float(w) / total * 100) if total > 0 else 0.0)
        for val, w in sums.items()
    ]
    rows.sort(key=lambda r: -r.pct)
    return rows


def build_toplines(df: Optional[pd.DataFrame], question_cols: List[str],
                   demo_cols: Optional[List[str]] = None,
                   weight_col: Optional[str] = None) -> Toplines:
    """문항별 {그룹명: 빈도표}. 그룹은 'Total'과 '<demo>: <level>'."""
    if df is None or df.empty:
        raise InputError("Please upload a CSV first.")
    if not question_cols:
        raise InputError("Please select at least one survey question column.")

    toplines: Toplines = {}
    for q in question_cols:
        groups = {TOTAL_GROUP: weighted_freq(df, q, weight_col)}
        for demo in demo_cols or []:
            levels = _value_labels(df[demo])
            # 등장 순서대로
            for level in pd.unique(levels):
                subset = df[levels == level]
                groups[f"{demo}: {level}"] = weighted_freq(subset, q, weight_col)
        toplines[q] = groups
    logger.info(f"Toplines built: {len(question_cols)} questions, {len(demo_cols or [])} demographics")
    return toplines


def build_summary_prompt(question_label: str, groups: Dict[str, List[ToplineRow]],
                         style: str = DEFAULT_STYLE) -> str:
    text = f"Survey question: {question_label}\n\n"
    for group_name, table in groups.items():
        text += f"{group_name}:\n"
        for r in table:
            text += f" - {r.val}: {r.pct:.1f}%\n"
        text += "\n"

    return f"{STYLE_PROMPTS.get(style, STYLE_PROMPTS[DEFAULT_STYLE])}\n\nData:\n{text}"


def summarize_toplines(
    toplines: Toplines,
    style: str = DEFAULT_STYLE,
    model: str = MODEL_SUMMARY,
    chat: Callable[..., str] = call_chat,
    pause_seconds: float = 0.25,
) -> Dict[str, str]:
    """문항별 요약. 실패한 문항은 '[AI Summary Error] ...' 텍스트로 남긴다."""
    summaries: Dict[str, str] = {}
    for q, groups in toplines.items():
        prompt = build_summary_prompt(q, groups, style)
        try:
            text = chat([{"role": "user", "content": prompt}], model, temperature=0.3)
            summaries[q] = text or "[Empty response]"
        except UpstreamError as e:
            logger.warning(f"AI summary failed for {q}: {e}")
            summaries[q] = f"[AI Summary Error] {e}"
        if pause_seconds:
            time.sleep(pause_seconds)
    return summaries


def toplines_to_long(toplines: Toplines) -> pd.DataFrame:
    rows = []
    for q, groups in toplines.items():
        for group_name, table in groups.items():
            for r in table:
                rows.append({
                    "Question": q,
                    "Group": group_name,
                    "Value": r.val,
                    "Percent": round(r.pct, 4),
                })
    return pd.DataFrame(rows, columns=["Question", "Group", "Value", "Percent"])
