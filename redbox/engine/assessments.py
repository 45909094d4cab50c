# assessments.py
# =============================================================================
# 偏好评估：根据顾问偏好向量对当前（或草案）财政状况逐项打分。
#
# 顺序固定：赤字 → 债务 → 增长 → 公共服务 → 政治 → 市场 → 财政规则 → 税收/支出。
# 只有赤字与债务分析携带非零 score：
#   赤字: excess * (1 - growth_priority)
#   债务: excess * 0.3
# 其余偏好条目 score = 0，仅影响 supportive/neutral 的判定与摘要文本。
# 各条目的措辞来自目录 narratives 表（按顾问取值，缺省回退 default）。
# =============================================================================

"""Bias-driven assessment items for a single adviser."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from redbox.engine.renderer import VariantRenderer
from redbox.engine.triggers import extract_metric
from redbox.primitives.models import (
    AdviserProfile,
    AdviserWarning,
    PolicyAnalysis,
    Recommendation,
)
from redbox.primitives.state import ProposedChanges, SimulationState

if TYPE_CHECKING:
    from redbox.catalog.loader import Catalog

DEBT_SCORE_FACTOR = 0.3

GROWTH_PRIORITY_GATE = 0.6
SPENDING_AVERSION_GATE = 0.7
POLITICAL_SENSITIVITY_GATE = 0.7
MARKET_SENSITIVITY_GATE = 0.7
RULE_RIGIDITY_GATE = 0.5
TAX_AVERSION_GATE = 0.6
CUT_AVERSION_GATE = 0.6


@dataclass
class BiasAssessment:
    analyses: List[PolicyAnalysis] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    warnings: List[AdviserWarning] = field(default_factory=list)


def opinion_substitutions(
    profile: AdviserProfile,
    state: SimulationState,
    proposed: Optional[ProposedChanges] = None,
) -> Dict[str, str]:
    """顾问意见文本可用的全部占位符取值（已格式化）。"""
    deficit = extract_metric("deficit", state, proposed)
    revenue_change = proposed.revenue_change if proposed is not None else 0.0
    spending_change = proposed.spending_change if proposed is not None else 0.0
    breaches = proposed.manifesto_breaches if proposed is not None else []
    bias = profile.bias
    return {
        "name": profile.name,
        "deficit": f"{deficit:.1f}" if deficit is not None else "n/a",
        "tolerance": f"{bias.deficit_tolerance:.1f}",
        "debt": f"{state.fiscal.debt_to_gdp_percent:.0f}",
        "debt_tolerance": f"{bias.debt_tolerance:.0f}",
        "growth": f"{state.economy.gdp_growth_annual:.1f}",
        "inflation": f"{state.economy.inflation_rate:.1f}",
        "unemployment": f"{state.economy.unemployment_rate:.1f}",
        "nhs_quality": f"{state.services.nhs_quality:.0f}",
        "approval": f"{state.political.public_approval:.0f}",
        "pm_trust": f"{state.political.pm_trust:.0f}",
        "gilt_yield": f"{state.markets.gilt_yield_10yr:.2f}",
        "sentiment": state.markets.market_sentiment,
        "revenue_change": f"{revenue_change:.0f}",
        "spending_cut": f"{abs(spending_change):.0f}",
        "breaches": ", ".join(breaches) if breaches else "none",
    }


class BiasAssessor:
    """按顾问偏好生成分析、建议与警告条目。"""

    def __init__(self, catalog: Catalog, renderer: VariantRenderer):
        self._catalog = catalog
        self._renderer = renderer

    def _say(self, topic: str, profile: AdviserProfile, subs: Dict[str, str]) -> str:
        return self._renderer.render(self._catalog.narrative(topic, profile.type), subs)

    def assess(
        self,
        profile: AdviserProfile,
        state: SimulationState,
        proposed: Optional[ProposedChanges] = None,
        substitutions: Optional[Dict[str, str]] = None,
    ) -> BiasAssessment:
        subs = substitutions or opinion_substitutions(profile, state, proposed)
        out = BiasAssessment()
        self._deficit(out, profile, state, proposed, subs)
        self._debt(out, profile, state, subs)
        self._growth(out, profile, state, subs)
        self._services(out, profile, state, subs)
        self._political(out, profile, state, proposed, subs)
        self._markets(out, profile, state, subs)
        if proposed is not None:
            self._fiscal_rules(out, profile, proposed, subs)
            self._tax_and_spending(out, profile, proposed, subs)
        return out

    # -------------------------------------------------------------------------
    # 赤字 / Deficit
    # -------------------------------------------------------------------------

    def _deficit(self, out, profile, state, proposed, subs) -> None:
        deficit = extract_metric("deficit", state, proposed)
        if deficit is None:
            return
        bias = profile.bias
        excess = deficit - bias.deficit_tolerance
        if excess <= 0:
            return
        severity = "critical" if excess > 3 else "warning" if excess > 1.5 else "caution"

        out.analyses.append(PolicyAnalysis(
            area="deficit",
            severity=severity,
            title=self._say("deficit_title", profile, subs),
            description=self._say("deficit_description", profile, subs),
            quantitative_reasoning=self._say("deficit_reasoning", profile, subs),
            score=excess * (1 - bias.growth_priority),
        ))
        if severity in ("critical", "warning"):
            out.warnings.append(AdviserWarning(
                severity=severity,
                title=self._say("deficit_warning_title", profile, subs),
                description=self._say("deficit_warning_description", profile, subs),
                consequences=self._say("deficit_consequences", profile, subs),
                score=0.0,
            ))

    # -------------------------------------------------------------------------
    # 债务 / Debt
    # -------------------------------------------------------------------------

    def _debt(self, out, profile, state, subs) -> None:
        excess = state.fiscal.debt_to_gdp_percent - profile.bias.debt_tolerance
        if excess <= 0:
            return
        severity = "critical" if excess > 15 else "warning" if excess > 7 else "caution"

        out.analyses.append(PolicyAnalysis(
            area="debt",
            severity=severity,
            title=self._say("debt_title", profile, subs),
            description=self._say("debt_description", profile, subs),
            score=excess * DEBT_SCORE_FACTOR,
        ))
        if severity in ("critical", "warning"):
            out.recommendations.append(Recommendation(
                priority="immediate" if severity == "critical" else "important",
                action=self._say("debt_recommendation", profile, subs),
                rationale=self._say("debt_rationale", profile, subs),
                score=0.0,
            ))

    # -------------------------------------------------------------------------
    # 增长 / Growth
    # -------------------------------------------------------------------------

    def _growth(self, out, profile, state, subs) -> None:
        growth = state.economy.gdp_growth_annual
        if growth >= 1.0 or profile.bias.growth_priority <= GROWTH_PRIORITY_GATE:
            return
        severity = "critical" if growth < 0 else "warning" if growth < 0.5 else "caution"

        out.analyses.append(PolicyAnalysis(
            area="growth",
            severity=severity,
            title=self._say("growth_title", profile, subs),
            description=self._say("growth_description", profile, subs),
            score=0.0,
        ))
        if growth < 0.5:
            out.recommendations.append(Recommendation(
                priority="important",
                action=self._say("growth_recommendation", profile, subs),
                rationale=self._say("growth_rationale", profile, subs),
                score=0.0,
            ))

    # -------------------------------------------------------------------------
    # 公共服务 / Public services
    # -------------------------------------------------------------------------

    def _services(self, out, profile, state, subs) -> None:
        nhs = state.services.nhs_quality
        if profile.bias.spending_cut_aversion <= SPENDING_AVERSION_GATE or nhs >= 60:
            return
        severity = "critical" if nhs < 40 else "warning" if nhs < 50 else "caution"

        out.analyses.append(PolicyAnalysis(
            area="services",
            severity=severity,
            title=self._say("services_title", profile, subs),
            description=self._say("services_description", profile, subs),
            score=0.0,
        ))
        out.warnings.append(AdviserWarning(
            severity=severity,
            title=self._say("services_warning_title", profile, subs),
            description=self._say("services_warning_description", profile, subs),
            consequences=self._say("services_consequences", profile, subs),
            score=0.0,
        ))

    # -------------------------------------------------------------------------
    # 政治 / Political
    # -------------------------------------------------------------------------

    def _political(self, out, profile, state, proposed, subs) -> None:
        if profile.bias.political_sensitivity <= POLITICAL_SENSITIVITY_GATE:
            return
        approval = state.political.public_approval
        if approval < 35:
            out.analyses.append(PolicyAnalysis(
                area="political",
                severity="critical" if approval < 30 else "warning",
                title=self._say("political_title", profile, subs),
                description=self._say("political_description", profile, subs),
                score=0.0,
            ))
            out.recommendations.append(Recommendation(
                priority="immediate" if approval < 30 else "important",
                action=self._say("political_recommendation", profile, subs),
                rationale=self._say("political_rationale", profile, subs),
                score=0.0,
            ))

        if proposed is not None and proposed.manifesto_breaches:
            out.warnings.append(AdviserWarning(
                severity="warning",
                title=self._say("manifesto_warning_title", profile, subs),
                description=self._say("manifesto_warning_description", profile, subs),
                consequences=self._say("manifesto_consequences", profile, subs),
                score=0.0,
            ))

    # -------------------------------------------------------------------------
    # 市场 / Gilt markets
    # -------------------------------------------------------------------------

    def _markets(self, out, profile, state, subs) -> None:
        if profile.bias.market_sensitivity <= MARKET_SENSITIVITY_GATE:
            return
        gilt = state.markets.gilt_yield_10yr
        if not (gilt > 5.0 or state.markets.gilt_yield_10yr_change > 0.5):
            return
        severity = "critical" if gilt > 6.0 else "warning"

        out.analyses.append(PolicyAnalysis(
            area="debt",
            severity=severity,
            title=self._say("market_title", profile, subs),
            description=self._say("market_description", profile, subs),
            score=0.0,
        ))
        if gilt > 5.5:
            out.warnings.append(AdviserWarning(
                severity=severity,
                title=self._say("market_warning_title", profile, subs),
                description=self._say("market_warning_description", profile, subs),
                consequences=self._say("market_consequences", profile, subs),
                score=0.0,
            ))

    # -------------------------------------------------------------------------
    # 预算草案 / Proposed budget
    # -------------------------------------------------------------------------

    def _fiscal_rules(self, out, profile, proposed, subs) -> None:
        rigidity = profile.bias.fiscal_rule_rigidity
        if proposed.fiscal_rules_met or rigidity <= RULE_RIGIDITY_GATE:
            return
        out.warnings.append(AdviserWarning(
            severity="critical" if rigidity > 0.8 else "warning",
            title=self._say("fiscal_rules_title", profile, subs),
            description=self._say("fiscal_rules_description", profile, subs),
            consequences=self._say("fiscal_rules_consequences", profile, subs),
            score=0.0,
        ))

    def _tax_and_spending(self, out, profile, proposed, subs) -> None:
        bias = profile.bias
        if proposed.revenue_change > 10 and bias.tax_rise_aversion > TAX_AVERSION_GATE:
            out.warnings.append(AdviserWarning(
                severity="warning",
                title=self._say("tax_rise_title", profile, subs),
                description=self._say("tax_rise_description", profile, subs),
                consequences=self._say("tax_rise_consequences", profile, subs),
                score=0.0,
            ))
        if proposed.spending_change < -15 and bias.spending_cut_aversion > CUT_AVERSION_GATE:
            out.warnings.append(AdviserWarning(
                severity="warning",
                title=self._say("spending_cut_title", profile, subs),
                description=self._say("spending_cut_description", profile, subs),
                consequences=self._say("spending_cut_consequences", profile, subs),
                score=0.0,
            ))
