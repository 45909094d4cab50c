# state.py
# =============================================================================
# 宿主模拟状态快照 / Host simulation state snapshot
#
# 外部经济模拟每回合产出 SimulationState；本包只读取其中的数值/布尔叶子，
# 从不写回。ProposedChanges 仅在评估尚未提交的预算时由调用方提供。
# / The surrounding simulation produces a SimulationState each turn; this
# package only reads named numeric/boolean leaves and never writes back.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class EconomyState:
    """宏观经济指标。 / Macro-economic indicators."""

    gdp_nominal: float = 2700.0  # £bn
    gdp_growth_annual: float = 1.0  # %
    inflation_rate: float = 2.0  # %
    unemployment_rate: float = 4.2  # %


@dataclass(frozen=True)
class FiscalState:
    """财政指标。 / Fiscal indicators."""

    deficit: float = 60.0  # £bn
    debt_to_gdp_percent: float = 95.0
    stability_rule_met: bool = True
    investment_rule_met: bool = True
    vat_rate: float = 20.0
    income_tax_basic_rate: float = 20.0
    corporation_tax_rate: float = 25.0


@dataclass(frozen=True)
class ServicesState:
    """公共服务质量（0-100）。 / Public service quality (0-100)."""

    nhs_quality: float = 60.0
    education_quality: float = 65.0


@dataclass(frozen=True)
class MarketsState:
    """金边债券市场。 / Gilt market."""

    gilt_yield_10yr: float = 4.0
    gilt_yield_10yr_change: float = 0.0
    market_sentiment: str = "cautious"  # panic/nervous/cautious/confident/bullish


@dataclass(frozen=True)
class PoliticalState:
    """政治指标。 / Political indicators."""

    public_approval: float = 40.0
    pm_trust: float = 55.0
    backbench_satisfaction: float = 60.0
    manifesto_violations: int = 0


@dataclass(frozen=True)
class SimulationState:
    """单回合只读快照。 / Read-only snapshot for one turn."""

    current_turn: int = 0
    current_month: int = 1  # 1-12
    economy: EconomyState = field(default_factory=EconomyState)
    fiscal: FiscalState = field(default_factory=FiscalState)
    services: ServicesState = field(default_factory=ServicesState)
    markets: MarketsState = field(default_factory=MarketsState)
    political: PoliticalState = field(default_factory=PoliticalState)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SimulationState:
        """从宿主的嵌套字典构建快照，未知键被忽略。 / Build from a nested host dict; unknown keys ignored."""
        sections = {
            "economy": EconomyState,
            "fiscal": FiscalState,
            "services": ServicesState,
            "markets": MarketsState,
            "political": PoliticalState,
        }
        kwargs: Dict[str, Any] = {}
        for name, section_cls in sections.items():
            raw = data.get(name) or {}
            known = section_cls.__dataclass_fields__
            kwargs[name] = section_cls(
                **{k: v for k, v in raw.items() if k in known}
            )
        return cls(
            current_turn=int(data.get("current_turn", 0)),
            current_month=int(data.get("current_month", 1)),
            **kwargs,
        )


@dataclass(frozen=True)
class ProposedChanges:
    """待评估的预算草案。 / A not-yet-committed budget under evaluation.

    revenue_change / spending_change 单位 £bn（正数为增加）。
    projected_deficit 单位 £bn；为 None 时赤字指标沿用实时状态。
    """

    revenue_change: float = 0.0
    spending_change: float = 0.0
    projected_deficit: Optional[float] = None
    fiscal_rules_met: bool = True
    manifesto_breaches: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional[ProposedChanges]:
        if data is None:
            return None
        projected = data.get("projected_deficit")
        return cls(
            revenue_change=float(data.get("revenue_change", 0.0)),
            spending_change=float(data.get("spending_change", 0.0)),
            projected_deficit=float(projected) if projected is not None else None,
            fiscal_rules_met=bool(data.get("fiscal_rules_met", True)),
            manifesto_breaches=list(data.get("manifesto_breaches", [])),
        )
