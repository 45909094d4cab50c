# models.py
# =============================================================================
# 顾问意见引擎的核心数据模型。
# 包含：AdviserBias、AdviserProfile、Trigger、OpinionTemplate、
#       PolicyAnalysis、Recommendation、AdviserWarning、Prediction、
#       PredictionTemplate、AdviserOpinion 等不可变结构。
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

# -----------------------------------------------------------------------------
# 枚举取值（字符串常量） / Enumerated string values
# -----------------------------------------------------------------------------
SEVERITIES = ("critical", "warning", "caution", "neutral", "supportive")
PRIORITIES = ("immediate", "important", "consider")
ITEM_KINDS = ("analysis", "warning", "recommendation")
POLICY_AREAS = (
    "taxation", "spending", "deficit", "debt", "growth", "services", "political",
)
OPERATORS = (">", "<")
LIKELIHOODS = ("almost_certain", "likely", "possible", "unlikely")
NARRATIVE_STYLES = ("formal", "pragmatic", "urgent", "academic", "political")
RELATIONSHIP_TIERS = ("excellent", "good", "strained", "poor")

# 文本字段可以是单一字符串，也可以是若干措辞变体 / A text field is one string or several phrasings
Text = Union[str, Tuple[str, ...]]


@dataclass(frozen=True)
class AdviserBias:
    """顾问偏好参数。

    deficit_tolerance / debt_tolerance 为 GDP 百分比阈值，
    其余权重均归一化在 [0, 1]。
    """

    deficit_tolerance: float  # % of GDP at which warnings start
    debt_tolerance: float  # % of GDP debt ceiling
    tax_rise_aversion: float
    spending_cut_aversion: float
    growth_priority: float
    political_sensitivity: float
    manifesto_rigidity: float
    fiscal_rule_rigidity: float
    market_sensitivity: float

    @classmethod
    def weight_fields(cls) -> Tuple[str, ...]:
        return tuple(
            name for name in cls.__dataclass_fields__
            if name not in ("deficit_tolerance", "debt_tolerance")
        )


@dataclass(frozen=True)
class AdviserProfile:
    """顾问身份 + 偏好向量，加载后不可变。 / Persona identity plus bias vector."""

    type: str
    name: str
    title: str
    bias: AdviserBias
    narrative_style: str = "formal"
    description: str = ""
    background: str = ""
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Trigger:
    """(metric, operator, threshold) 三元组。

    threshold 可以是字面量，也可以相对于顾问偏好：
    bias="debt_tolerance", offset=10 表示 阈值 = debt_tolerance + 10。
    """

    metric: str
    operator: str
    threshold: float = 0.0
    bias: Optional[str] = None
    offset: float = 0.0

    def resolve_threshold(self, profile: Optional[AdviserProfile] = None) -> float:
        if self.bias is None:
            return self.threshold
        if profile is None:
            raise ValueError(f"trigger on '{self.metric}' needs a persona to resolve bias '{self.bias}'")
        return float(getattr(profile.bias, self.bias)) + self.offset


@dataclass(frozen=True)
class OpinionTemplate:
    """顾问意见模板，以 item_kind 为判别字段的标签联合。

    analysis / warning 必须声明 severity；recommendation 必须声明
    priority 与 action；consequences 仅允许出现在 warning 上。
    """

    id: str
    persona: str
    trigger: Trigger
    category: str
    item_kind: str
    title: Text
    body: Text = ""
    severity: Optional[str] = None
    priority: Optional[str] = None
    consequences: Optional[str] = None
    action: Optional[str] = None
    rationale: Optional[str] = None

    def __post_init__(self) -> None:
        if self.item_kind not in ITEM_KINDS:
            raise ValueError(f"{self.id}: unknown item_kind '{self.item_kind}'")
        if self.category not in POLICY_AREAS:
            raise ValueError(f"{self.id}: unknown category '{self.category}'")
        if self.item_kind in ("analysis", "warning"):
            if self.severity not in SEVERITIES:
                raise ValueError(f"{self.id}: {self.item_kind} needs a severity")
        if self.item_kind == "recommendation":
            if self.priority not in PRIORITIES:
                raise ValueError(f"{self.id}: recommendation needs a priority")
            if not self.action:
                raise ValueError(f"{self.id}: recommendation needs an action")
        if self.consequences is not None and self.item_kind != "warning":
            raise ValueError(f"{self.id}: consequences are only allowed on warnings")


# =============================================================================
# 意见条目 / Opinion items
#
# score 为 None 时由严重度权重计分；偏好评估产生的条目显式给出 score。
# =============================================================================


@dataclass(frozen=True)
class PolicyAnalysis:
    area: str
    severity: str
    title: str
    description: str
    quantitative_reasoning: Optional[str] = None
    score: Optional[float] = None
    source_id: Optional[str] = None


@dataclass(frozen=True)
class Recommendation:
    priority: str
    action: str
    rationale: str
    expected_outcome: Optional[str] = None
    score: Optional[float] = None
    source_id: Optional[str] = None


@dataclass(frozen=True)
class AdviserWarning:
    severity: str
    title: str
    description: str
    consequences: Optional[str] = None
    score: Optional[float] = None
    source_id: Optional[str] = None


@dataclass(frozen=True)
class Prediction:
    timeframe: str
    likelihood: str
    outcome: str


@dataclass(frozen=True)
class PredictionTemplate:
    """顾问预测规则，按目录顺序首个命中者胜出。"""

    id: str
    persona: str
    trigger: Trigger
    timeframe: str
    likelihood: str
    outcome: Text


@dataclass
class AdviserOpinion:
    """单个顾问在单次评估中的意见，临时对象，由调用方决定是否缓存。"""

    adviser_id: str
    overall_assessment: str
    severity_score: float
    headline: str
    summary: str
    analyses: List[PolicyAnalysis] = field(default_factory=list)
    recommendations: List[Recommendation] = field(default_factory=list)
    warnings: List[AdviserWarning] = field(default_factory=list)
    prediction: Optional[Prediction] = None
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def is_empty(self) -> bool:
        return not (self.analyses or self.recommendations or self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        from dataclasses import asdict

        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data
