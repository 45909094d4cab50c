# severity.py
# =============================================================================
# 严重度聚合：将匹配条目折叠为单一分数并映射到总体评估等级。
#
# 权重与阈值是游戏平衡已依赖的校准常量，必须原样保留：
#   critical=3, warning=2, caution=1, neutral=0, supportive=-1
#   recommendation 额外加分：immediate=+3, important=+2
#   score > 5 → critical; > 2.5 → warning; > 0.5 → caution;
#   否则无 analysis 且无 warning → supportive；其余 → neutral
# =============================================================================

"""Severity scoring and the overall-assessment ladder."""

from __future__ import annotations

from typing import Iterable, Sequence, Tuple, Union

from redbox.primitives.models import AdviserWarning, PolicyAnalysis, Recommendation

SEVERITY_WEIGHTS = {
    "critical": 3.0,
    "warning": 2.0,
    "caution": 1.0,
    "neutral": 0.0,
    "supportive": -1.0,
}

PRIORITY_BONUS = {
    "immediate": 3.0,
    "important": 2.0,
}

CRITICAL_THRESHOLD = 5.0
WARNING_THRESHOLD = 2.5
CAUTION_THRESHOLD = 0.5

OpinionItem = Union[PolicyAnalysis, Recommendation, AdviserWarning]


def item_score(item: OpinionItem) -> float:
    """单个条目的得分。显式 score 优先于严重度权重。"""
    if item.score is not None:
        return float(item.score)
    severity = getattr(item, "severity", None) or "neutral"
    score = SEVERITY_WEIGHTS[severity]
    if isinstance(item, Recommendation):
        score += PRIORITY_BONUS.get(item.priority, 0.0)
    return score


def aggregate_score(items: Iterable[OpinionItem]) -> float:
    return sum(item_score(item) for item in items)


def classify(
    score: float,
    analyses: Sequence[PolicyAnalysis],
    warnings: Sequence[AdviserWarning],
) -> str:
    """阈值阶梯。空 analysis/warning 但分数 <= 0.5 时为 supportive。"""
    if score > CRITICAL_THRESHOLD:
        return "critical"
    if score > WARNING_THRESHOLD:
        return "warning"
    if score > CAUTION_THRESHOLD:
        return "caution"
    if not analyses and not warnings:
        return "supportive"
    return "neutral"


def assess(
    analyses: Sequence[PolicyAnalysis],
    recommendations: Sequence[Recommendation],
    warnings: Sequence[AdviserWarning],
) -> Tuple[float, str]:
    """返回 (score, overall_assessment)。"""
    score = aggregate_score([*analyses, *recommendations, *warnings])
    return score, classify(score, analyses, warnings)
