# interactions.py
# =============================================================================
# 议员游说回应：按 (方式, 结果) 与议员画像选择最具体的回应模板。
#
#   1. 过滤：approach / outcome 命中，且所有声明的约束成立
#   2. 特异度 = 声明的约束个数；只保留最大特异度的子集
#   3. 子集内随机选择；无候选时使用目录的通用兜底文本
# =============================================================================

"""MP lobbying interaction responses."""

from __future__ import annotations

import logging
import random
from typing import List, Optional

from redbox.catalog.loader import Catalog, default_catalog
from redbox.engine.renderer import VariantRenderer
from redbox.primitives.mp_models import APPROACHES, OUTCOMES, InteractionTemplate, MPTarget

logger = logging.getLogger(__name__)


def candidate_interactions(
    catalog: Catalog,
    target: MPTarget,
    approach: str,
    outcome: str,
) -> List[InteractionTemplate]:
    """最大特异度的候选模板（保持目录顺序）。"""
    matched = [
        t for t in catalog.interactions
        if approach in t.approaches and outcome in t.outcomes and t.matches(target)
    ]
    if not matched:
        return []
    top = max(t.specificity for t in matched)
    return [t for t in matched if t.specificity == top]


def get_interaction_response(
    target: MPTarget,
    approach: str,
    outcome: str,
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """生成议员对游说的回应文本。

    Args:
        target: 被游说议员。
        approach: promise / persuade / threaten。
        outcome: success / failure / backfire。

    Raises:
        ValueError: approach 或 outcome 不在已知取值内。
    """
    if approach not in APPROACHES:
        raise ValueError(f"未知的游说方式: {approach!r}")
    if outcome not in OUTCOMES:
        raise ValueError(f"未知的游说结果: {outcome!r}")

    catalog = catalog or default_catalog()
    rng = rng or random.Random()

    candidates = candidate_interactions(catalog, target, approach, outcome)
    if candidates:
        template = candidates[0] if len(candidates) == 1 else rng.choice(candidates)
    else:
        logger.debug("无匹配回应 (%s/%s, %s)，使用兜底文本", approach, outcome, target.name)
        template = catalog.interaction_fallback

    subs = {"name": target.name, "constituency": target.constituency}
    return VariantRenderer(rng).render(template.text, subs)
