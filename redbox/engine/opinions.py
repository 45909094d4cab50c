# opinions.py
# =============================================================================
# 顾问意见生成，偏好评估 + 目录模板 → 打分 → 评级 → 标题/摘要/预测。
#
# 流程（单个顾问）：
#   1. BiasAssessor 按偏好向量生成赤字/债务/增长/... 条目
#   2. 目录中该顾问触发器成立的全部模板（并集，按目录顺序）渲染为条目
#   3. severity.assess 聚合得分并映射到 overall_assessment
#   4. 标题按 (顾问, 评级) 取；摘要按 quiet / concerns / mild 取
#   5. 预测模板按目录顺序首个命中者胜出
#
# 多个顾问时，单个顾问的失败被隔离：记录异常后继续生成其余顾问的意见。
# =============================================================================

"""Adviser opinion generation."""

from __future__ import annotations

import logging
import random
from typing import Any, Dict, List, Optional, Union

from redbox.advisers.roster import HiredRecord, normalize_roster
from redbox.catalog.loader import Catalog, default_catalog
from redbox.engine.assessments import BiasAssessor, opinion_substitutions
from redbox.engine.renderer import VariantRenderer
from redbox.engine.severity import OpinionItem, assess
from redbox.engine.triggers import evaluate_trigger
from redbox.primitives.models import (
    AdviserOpinion,
    AdviserProfile,
    AdviserWarning,
    OpinionTemplate,
    PolicyAnalysis,
    Prediction,
    Recommendation,
)
from redbox.primitives.state import ProposedChanges, SimulationState

logger = logging.getLogger(__name__)

# 摘要中列出的主要关切数量上限
MAX_SUMMARY_CONCERNS = 2

AdviserRef = Union[HiredRecord, AdviserProfile, str]


class OpinionGenerator:
    """单个顾问意见的生成器。 / Builds one adviser's opinion per call."""

    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        rng: Optional[random.Random] = None,
    ):
        self._catalog = catalog or default_catalog()
        self._renderer = VariantRenderer(rng)
        self._assessor = BiasAssessor(self._catalog, self._renderer)

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def resolve_profile(self, adviser: AdviserRef) -> AdviserProfile:
        if isinstance(adviser, HiredRecord):
            return adviser.profile
        if isinstance(adviser, AdviserProfile):
            return adviser
        profile = self._catalog.adviser(adviser)
        if profile is None:
            raise KeyError(f"目录 '{self._catalog.name}' 中没有顾问 '{adviser}'")
        return profile

    def matched_templates(
        self,
        profile: AdviserProfile,
        state: SimulationState,
        proposed: Optional[ProposedChanges] = None,
    ) -> List[OpinionTemplate]:
        """该顾问所有触发器成立的模板，保持目录顺序。"""
        matched = [
            template for template in self._catalog.templates_for(profile.type)
            if evaluate_trigger(template.trigger, state, proposed, profile)
        ]
        logger.debug("%s: %d 个模板命中", profile.type, len(matched))
        return matched

    def render_item(self, template: OpinionTemplate, substitutions: Dict[str, str]) -> OpinionItem:
        render = self._renderer.render
        if template.item_kind == "analysis":
            return PolicyAnalysis(
                area=template.category,
                severity=template.severity,
                title=render(template.title, substitutions),
                description=render(template.body, substitutions),
                source_id=template.id,
            )
        if template.item_kind == "warning":
            return AdviserWarning(
                severity=template.severity,
                title=render(template.title, substitutions),
                description=render(template.body, substitutions),
                consequences=(
                    render(template.consequences, substitutions)
                    if template.consequences is not None else None
                ),
                source_id=template.id,
            )
        body = render(template.body, substitutions)
        return Recommendation(
            priority=template.priority,
            action=render(template.action, substitutions),
            rationale=render(template.rationale, substitutions) if template.rationale else body,
            expected_outcome=body or None,
            source_id=template.id,
        )

    def generate(
        self,
        state: SimulationState,
        adviser: AdviserRef,
        proposed: Optional[ProposedChanges] = None,
    ) -> AdviserOpinion:
        """生成单个顾问的意见。无任何条目时返回 supportive 的空意见。"""
        profile = self.resolve_profile(adviser)
        subs = opinion_substitutions(profile, state, proposed)

        assessment = self._assessor.assess(profile, state, proposed, subs)
        analyses = assessment.analyses
        recommendations = assessment.recommendations
        warnings = assessment.warnings

        for template in self.matched_templates(profile, state, proposed):
            item = self.render_item(template, subs)
            if isinstance(item, PolicyAnalysis):
                analyses.append(item)
            elif isinstance(item, AdviserWarning):
                warnings.append(item)
            else:
                recommendations.append(item)

        score, overall = assess(analyses, recommendations, warnings)

        return AdviserOpinion(
            adviser_id=profile.type,
            overall_assessment=overall,
            severity_score=score,
            headline=self._renderer.render(self._catalog.headline(overall, profile.type), subs),
            summary=self._summary(profile, analyses, warnings, subs),
            analyses=analyses,
            recommendations=recommendations,
            warnings=warnings,
            prediction=self.predict(profile, state, proposed, subs),
        )

    def _summary(
        self,
        profile: AdviserProfile,
        analyses: List[PolicyAnalysis],
        warnings: List[AdviserWarning],
        subs: Dict[str, str],
    ) -> str:
        if not analyses and not warnings:
            return self._renderer.render(self._catalog.summary("quiet", profile.type), subs)

        concerns = [
            a.area for a in analyses if a.severity in ("critical", "warning")
        ][:MAX_SUMMARY_CONCERNS]
        if not concerns:
            return self._renderer.render(self._catalog.summary("mild", profile.type), subs)
        return self._renderer.render(
            self._catalog.summary("concerns", profile.type),
            {**subs, "concerns": " and ".join(concerns)},
        )

    def predict(
        self,
        profile: AdviserProfile,
        state: SimulationState,
        proposed: Optional[ProposedChanges] = None,
        substitutions: Optional[Dict[str, str]] = None,
    ) -> Optional[Prediction]:
        """首个触发器成立的预测模板；无命中时返回 None。"""
        for template in self._catalog.predictions_for(profile.type):
            if evaluate_trigger(template.trigger, state, proposed, profile):
                subs = substitutions or opinion_substitutions(profile, state, proposed)
                return Prediction(
                    timeframe=template.timeframe,
                    likelihood=template.likelihood,
                    outcome=self._renderer.render(template.outcome, subs),
                )
        return None


def generate_adviser_opinions(
    state: SimulationState,
    roster: Any,
    proposed: Optional[ProposedChanges] = None,
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
) -> Dict[str, AdviserOpinion]:
    """为名册中每位顾问生成意见。

    Args:
        state: 当前回合快照。
        roster: 任意形态的名册（见 normalize_roster）。
        proposed: 可选的预算草案。
        catalog: 目录，默认使用随包目录。
        rng: 措辞变体的随机源。

    Returns:
        adviser type -> AdviserOpinion，保持名册顺序。生成失败的顾问不在结果中。
    """
    generator = OpinionGenerator(catalog, rng)
    records = normalize_roster(roster, generator.catalog)

    opinions: Dict[str, AdviserOpinion] = {}
    for adviser_type, record in records.items():
        try:
            opinions[adviser_type] = generator.generate(state, record, proposed)
        except Exception:
            logger.exception("顾问 '%s' 意见生成失败，跳过", adviser_type)
    return opinions
