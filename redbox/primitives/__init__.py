# primitives/
# 数据模型：模拟状态、顾问、意见条目、首相消息、议员互动。

from redbox.primitives.models import (
    AdviserBias,
    AdviserOpinion,
    AdviserProfile,
    AdviserWarning,
    OpinionTemplate,
    PolicyAnalysis,
    Prediction,
    PredictionTemplate,
    Recommendation,
    Trigger,
)
from redbox.primitives.mp_models import InteractionTemplate, MPTarget
from redbox.primitives.pm_models import (
    MessageConditions,
    MessageContext,
    PMDemand,
    PMMessage,
    PMMessageTemplate,
    PMRelationshipState,
    RangeCondition,
)
from redbox.primitives.state import ProposedChanges, SimulationState

__all__ = [
    "AdviserBias",
    "AdviserOpinion",
    "AdviserProfile",
    "AdviserWarning",
    "InteractionTemplate",
    "MPTarget",
    "MessageConditions",
    "MessageContext",
    "OpinionTemplate",
    "PMDemand",
    "PMMessage",
    "PMMessageTemplate",
    "PMRelationshipState",
    "PolicyAnalysis",
    "Prediction",
    "PredictionTemplate",
    "ProposedChanges",
    "RangeCondition",
    "Recommendation",
    "SimulationState",
    "Trigger",
]
