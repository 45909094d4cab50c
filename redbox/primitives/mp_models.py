# redbox/primitives/mp_models.py
"""议员游说互动数据模型。 / MP lobbying interaction data models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

APPROACHES = ("promise", "persuade", "threaten")
OUTCOMES = ("success", "failure", "backfire")

# 参与特异度计数的约束字段 / Constraint fields counted towards specificity
CONSTRAINT_FIELDS = (
    "min_rebelliousness",
    "max_rebelliousness",
    "min_ambition",
    "max_ambition",
    "party",
    "faction",
    "is_minister",
)


@dataclass(frozen=True)
class MPTarget:
    """被游说议员的画像。 / Profile of the MP being lobbied.

    rebelliousness / ambition 取值 0-10。
    """

    name: str
    constituency: str = ""
    party: str = ""
    faction: str = ""
    is_minister: bool = False
    rebelliousness: float = 5.0
    ambition: float = 5.0


@dataclass(frozen=True)
class InteractionTemplate:
    """未声明的约束即通配。 / Any constraint left as None is a wildcard."""

    id: str
    approaches: Tuple[str, ...]
    outcomes: Tuple[str, ...]
    text: str
    min_rebelliousness: Optional[float] = None
    max_rebelliousness: Optional[float] = None
    min_ambition: Optional[float] = None
    max_ambition: Optional[float] = None
    party: Optional[str] = None
    faction: Optional[str] = None
    is_minister: Optional[bool] = None

    @property
    def specificity(self) -> int:
        return sum(1 for name in CONSTRAINT_FIELDS if getattr(self, name) is not None)

    def matches(self, target: MPTarget) -> bool:
        if self.min_rebelliousness is not None and target.rebelliousness < self.min_rebelliousness:
            return False
        if self.max_rebelliousness is not None and target.rebelliousness > self.max_rebelliousness:
            return False
        if self.min_ambition is not None and target.ambition < self.min_ambition:
            return False
        if self.max_ambition is not None and target.ambition > self.max_ambition:
            return False
        if self.is_minister is not None and target.is_minister != self.is_minister:
            return False
        if self.party is not None and target.party != self.party:
            return False
        if self.faction is not None and target.faction != self.faction:
            return False
        return True
