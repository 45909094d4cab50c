# triggers.py
# =============================================================================
# 触发器求值，从实时状态/预算草案中提取标量并与阈值严格比较。
#
# 指标集合是封闭的（METRIC_SOURCES）。每个指标显式声明：
#   proposed：存在预算草案时优先使用的取值
#   current：实时状态取值（无草案或草案不提供该指标时）
# 未知指标或取不到值 → None（"不匹配"），触发器恒为 False，而非抛错。
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from redbox.primitives.models import AdviserProfile, Trigger
from redbox.primitives.state import ProposedChanges, SimulationState

logger = logging.getLogger(__name__)

StateReader = Callable[[SimulationState], Optional[float]]
ProposalReader = Callable[[SimulationState, ProposedChanges], Optional[float]]

# 布尔指标以 1.0/0.0 编码，与 0.5 比较得到真值语义
BOOLEAN_TRUE_THRESHOLD = 0.5


def _as_flag(value: bool) -> float:
    return 1.0 if value else 0.0


def _percent_of_gdp(amount: float, state: SimulationState) -> Optional[float]:
    gdp = state.economy.gdp_nominal
    if not gdp:
        return None
    return amount * 100.0 / gdp


@dataclass(frozen=True)
class MetricSource:
    """单个指标的取值来源。proposed 为 None 表示草案不覆盖该指标。"""

    current: Optional[StateReader] = None
    proposed: Optional[ProposalReader] = None


METRIC_SOURCES: Dict[str, MetricSource] = {
    "deficit": MetricSource(
        current=lambda s: _percent_of_gdp(s.fiscal.deficit, s),
        proposed=lambda s, p: (
            _percent_of_gdp(p.projected_deficit, s) if p.projected_deficit is not None else None
        ),
    ),
    "debt": MetricSource(current=lambda s: s.fiscal.debt_to_gdp_percent),
    "growth": MetricSource(current=lambda s: s.economy.gdp_growth_annual),
    "inflation": MetricSource(current=lambda s: s.economy.inflation_rate),
    "unemployment": MetricSource(current=lambda s: s.economy.unemployment_rate),
    "approval": MetricSource(current=lambda s: s.political.public_approval),
    "nhs_quality": MetricSource(current=lambda s: s.services.nhs_quality),
    "gilt_yield": MetricSource(current=lambda s: s.markets.gilt_yield_10yr),
    "fiscal_rules": MetricSource(
        current=lambda s: _as_flag(
            s.fiscal.stability_rule_met and s.fiscal.investment_rule_met
        ),
        proposed=lambda s, p: _as_flag(p.fiscal_rules_met),
    ),
    # 净收支变化只存在于预算草案中 / Net changes only exist on a proposal
    "tax_change": MetricSource(proposed=lambda s, p: p.revenue_change),
    "spending_change": MetricSource(proposed=lambda s, p: p.spending_change),
}

KNOWN_METRICS = frozenset(METRIC_SOURCES)


def extract_metric(
    metric: str,
    state: SimulationState,
    proposed: Optional[ProposedChanges] = None,
) -> Optional[float]:
    """提取指标标量。 / Extract the scalar for a metric.

    Returns:
        指标值；未知指标或当前上下文无该值时返回 None。
    """
    source = METRIC_SOURCES.get(metric)
    if source is None:
        logger.debug("未知指标，触发器不匹配: %s", metric)
        return None
    if proposed is not None and source.proposed is not None:
        value = source.proposed(state, proposed)
        if value is not None:
            return value
    if source.current is not None:
        return source.current(state)
    return None


def compare(value: Optional[float], operator: str, threshold: float) -> bool:
    """严格比较（无 >= / <=），阈值本身永不匹配。"""
    if value is None:
        return False
    if operator == ">":
        return value > threshold
    if operator == "<":
        return value < threshold
    return False


def evaluate_trigger(
    trigger: Trigger,
    state: SimulationState,
    proposed: Optional[ProposedChanges] = None,
    profile: Optional[AdviserProfile] = None,
) -> bool:
    """求值单个触发器。 / Evaluate one trigger against live state."""
    value = extract_metric(trigger.metric, state, proposed)
    return compare(value, trigger.operator, trigger.resolve_threshold(profile))
