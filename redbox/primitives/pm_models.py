# redbox/primitives/pm_models.py
"""首相消息领域数据模型。 / Prime Minister messaging domain data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

PM_MESSAGE_TYPES = (
    "regular_checkin",    # 定期检查 / Scheduled performance review
    "warning",            # 表现不佳警告 / Warning about poor performance
    "threat",             # 直接威胁 / Direct threat of consequences
    "demand",             # 政策要求 / Policy demand
    "support_change",     # 支持变化通知 / Support change notification
    "reshuffle_warning",  # 改组前最后警告 / Final warning before reshuffle
    "praise",             # 表扬 / Positive feedback
    "concern",            # 具体问题关切 / Concern about a specific issue
)
PM_TONES = ("supportive", "neutral", "stern", "angry")
DEMAND_CATEGORIES = ("tax", "spending", "deficit", "approval")

# 数值范围条件（min/max 均为闭区间） / Numeric range conditions (inclusive bounds)
RANGE_CONDITIONS = (
    "trust", "approval", "deficit", "growth", "inflation",
    "unemployment", "reshuffle_risk",
)
# 布尔旗标条件（必须精确匹配） / Boolean flag conditions (exact match)
FLAG_CONDITIONS = (
    "manifesto_breach", "support_withdrawn", "recent_contact",
    "tax_rises", "spending_cuts", "nhs_crisis",
)


@dataclass(frozen=True)
class RangeCondition:
    minimum: Optional[float] = None
    maximum: Optional[float] = None

    def holds(self, value: Optional[float]) -> bool:
        if value is None:
            return False
        if self.minimum is not None and value < self.minimum:
            return False
        if self.maximum is not None and value > self.maximum:
            return False
        return True


@dataclass(frozen=True)
class MessageConditions:
    """合取条件：每个声明的条件都必须成立。 / Conjunctive: every declared condition must hold."""

    ranges: Dict[str, RangeCondition] = field(default_factory=dict)
    flags: Dict[str, bool] = field(default_factory=dict)


@dataclass(frozen=True)
class PMMessageTemplate:
    id: str
    type: str
    conditions: MessageConditions
    subject: Any  # str 或措辞变体元组 / str or tuple of phrasings
    content: Any
    tone: str
    priority: int = 0  # 越高越优先 / Higher wins
    demand_category: Optional[str] = None
    demand_details: Optional[str] = None
    consequence_warning: Optional[str] = None


@dataclass(frozen=True)
class MessageContext:
    """一次消息评估的条件向量。

    数值为 None 表示宿主未提供；旗标为 None 表示未知，
    未知旗标永远不满足模板中声明的旗标条件。
    """

    values: Dict[str, Optional[float]] = field(default_factory=dict)
    flags: Dict[str, Optional[bool]] = field(default_factory=dict)


@dataclass(frozen=True)
class PMMessage:
    id: str
    turn: int
    type: str
    subject: str
    content: str
    tone: str
    timestamp: float
    read: bool = False
    template_id: Optional[str] = None
    demand_category: Optional[str] = None
    demand_details: Optional[str] = None
    consequence_warning: Optional[str] = None


@dataclass(frozen=True)
class PMDemand:
    category: str
    description: str
    deadline: int  # 回合号 / Turn number
    met: bool = False


@dataclass(frozen=True)
class PMRelationshipState:
    """首相与财政大臣的关系状态（写时复制）。 / PM-Chancellor relationship (copy-on-write)."""

    patience: float = 70.0  # 0-100
    warnings_issued: int = 0
    demands_issued: int = 0
    demands_met: int = 0
    last_contact_turn: int = -1
    messages: Tuple[PMMessage, ...] = ()
    consecutive_poor_performance: int = 0
    reshuffle_risk: float = 0.0  # 0-100
    support_withdrawn: bool = False
    final_warning_given: bool = False
    active_demands: Tuple[PMDemand, ...] = ()

    @property
    def unread_count(self) -> int:
        return sum(1 for m in self.messages if not m.read)


@dataclass(frozen=True)
class PMCommunication:
    """process_pm_communications 的返回值。"""

    message: Optional[PMMessage]
    relationship: PMRelationshipState
    reshuffle_triggered: bool = False
    reason: str = ""


def active_demand_categories(rel: PMRelationshipState) -> List[str]:
    return [d.category for d in rel.active_demands if not d.met]
