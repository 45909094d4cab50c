# roster.py
# =============================================================================
# 已聘顾问名册：记录、关系/准确度追踪、聘用与解聘。
#
# HiredRecord 不可变：每次记录建议采纳情况或预测结果都返回新记录。
# relationship 是采纳率的派生属性，从不单独存储，因此与计数永远一致。
# 名册 = 有序的 顾问 type -> HiredRecord 映射，每个顾问至多一条记录。
# 宿主可能以三种形态传入名册（映射 / 键值对列表 / 序列化字典），
# 统一由 normalize_roster 在边界处归一化。
# =============================================================================

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from redbox.catalog.loader import Catalog, default_catalog
from redbox.primitives.models import AdviserProfile

logger = logging.getLogger(__name__)

Roster = Dict[str, "HiredRecord"]

MAX_HIRED_ADVISERS = 3
RESIGNATION_PROBABILITY = 0.3
RESIGNATION_IGNORED_THRESHOLD = 8


def relationship_tier(followed: int, ignored: int) -> str:
    """采纳率分级：> 0.7 excellent, > 0.5 good, > 0.3 strained, 其余 poor。

    尚无任何建议记录时为 good。
    """
    total = followed + ignored
    if total == 0:
        return "good"
    rate = followed / total
    if rate > 0.7:
        return "excellent"
    if rate > 0.5:
        return "good"
    if rate > 0.3:
        return "strained"
    return "poor"


@dataclass(frozen=True)
class HiredRecord:
    """已聘顾问的记录（写时复制）。"""

    profile: AdviserProfile
    hired_turn: int = 0
    advice_followed_count: int = 0
    advice_ignored_count: int = 0
    accurate_predictions: int = 0
    inaccurate_predictions: int = 0

    @property
    def adviser_type(self) -> str:
        return self.profile.type

    @property
    def relationship(self) -> str:
        return relationship_tier(self.advice_followed_count, self.advice_ignored_count)

    @property
    def accuracy_rate(self) -> float:
        return accuracy_rate(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "adviser_type": self.adviser_type,
            "hired_turn": self.hired_turn,
            "advice_followed_count": self.advice_followed_count,
            "advice_ignored_count": self.advice_ignored_count,
            "accurate_predictions": self.accurate_predictions,
            "inaccurate_predictions": self.inaccurate_predictions,
            "relationship": self.relationship,
        }

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        catalog: Optional[Catalog] = None,
        adviser_type: Optional[str] = None,
    ) -> HiredRecord:
        """从序列化字典恢复记录。画像始终以目录为准。

        记录自身未声明身份时使用 adviser_type（名册中的键）。

        Raises:
            ValueError: 缺少顾问身份或目录中无此顾问。
        """
        adviser_type = _identity(data) or adviser_type
        if not adviser_type:
            raise ValueError(f"记录缺少顾问身份: {dict(data)!r}")
        catalog = catalog or default_catalog()
        profile = catalog.adviser(adviser_type)
        if profile is None:
            raise ValueError(f"目录 '{catalog.name}' 中没有顾问 '{adviser_type}'")
        return cls(
            profile=profile,
            hired_turn=int(data.get("hired_turn", 0)),
            advice_followed_count=int(data.get("advice_followed_count", 0)),
            advice_ignored_count=int(data.get("advice_ignored_count", 0)),
            accurate_predictions=int(data.get("accurate_predictions", 0)),
            inaccurate_predictions=int(data.get("inaccurate_predictions", 0)),
        )


def _identity(data: Mapping[str, Any]) -> Optional[str]:
    """序列化记录中的顾问 type：adviser_type 字段或 profile.type。"""
    adviser_type = data.get("adviser_type")
    if adviser_type:
        return str(adviser_type)
    profile = data.get("profile")
    if isinstance(profile, AdviserProfile):
        return profile.type
    if isinstance(profile, Mapping) and profile.get("type"):
        return str(profile["type"])
    if isinstance(profile, str) and profile:
        return profile
    return None


# =============================================================================
# 单条记录操作 / Record-level tracking
# =============================================================================


def record_advice_outcome(record: HiredRecord, followed: bool) -> HiredRecord:
    if followed:
        return replace(record, advice_followed_count=record.advice_followed_count + 1)
    return replace(record, advice_ignored_count=record.advice_ignored_count + 1)


def record_prediction_outcome(record: HiredRecord, accurate: bool) -> HiredRecord:
    if accurate:
        return replace(record, accurate_predictions=record.accurate_predictions + 1)
    return replace(record, inaccurate_predictions=record.inaccurate_predictions + 1)


def accuracy_rate(record: HiredRecord) -> float:
    """预测准确率；尚无预测记录时为 0.5。"""
    total = record.accurate_predictions + record.inaccurate_predictions
    if total == 0:
        return 0.5
    return record.accurate_predictions / total


def check_resignation(
    record: HiredRecord,
    rng: Optional[random.Random] = None,
    probability: float = RESIGNATION_PROBABILITY,
    ignored_threshold: int = RESIGNATION_IGNORED_THRESHOLD,
) -> bool:
    """关系为 poor 且被忽视次数超过阈值时，按概率辞职。"""
    if record.relationship != "poor" or record.advice_ignored_count <= ignored_threshold:
        return False
    rng = rng or random.Random()
    return rng.random() < probability


# =============================================================================
# 名册操作 / Roster-level operations
# =============================================================================


def normalize_roster(roster: Any, catalog: Optional[Catalog] = None) -> Roster:
    """把宿主传入的任意形态名册归一化为 type -> HiredRecord 有序映射。

    接受：
      - 映射（type -> 记录），包括从 JSON 得到的纯字典
      - 列表：[(type, 记录), ...] 键值对，或直接的记录列表
    记录可以是 HiredRecord、AdviserProfile 或序列化字典。
    序列化字典未声明身份时以映射键或键值对的键作为顾问 type。
    键与记录都缺少顾问身份的条目被丢弃并记录警告；同一顾问的重复条目保留首个。
    """
    if roster is None:
        return {}

    if isinstance(roster, Mapping):
        entries: Iterable[Tuple[Any, Any]] = roster.items()
    elif isinstance(roster, (list, tuple)):
        entries = [
            (item[0], item[1]) if isinstance(item, (list, tuple)) and len(item) == 2 else (None, item)
            for item in roster
        ]
    else:
        logger.warning("无法识别的名册类型，按空名册处理: %s", type(roster).__name__)
        return {}

    normalized: Roster = {}
    for key, entry in entries:
        record = _coerce_record(entry, catalog, key)
        if record is None:
            continue
        if record.adviser_type in normalized:
            logger.warning("名册中顾问重复，保留首个: %s", record.adviser_type)
            continue
        normalized[record.adviser_type] = record
    return normalized


def _coerce_record(
    entry: Any,
    catalog: Optional[Catalog],
    key: Any = None,
) -> Optional[HiredRecord]:
    if isinstance(entry, HiredRecord):
        return entry
    if isinstance(entry, AdviserProfile):
        return HiredRecord(profile=entry)
    if isinstance(entry, Mapping):
        try:
            return HiredRecord.from_dict(entry, catalog, key if isinstance(key, str) else None)
        except (TypeError, ValueError) as exc:
            logger.warning("丢弃无效的名册条目: %s", exc)
            return None
    logger.warning("丢弃无法识别的名册条目: %r", entry)
    return None


def can_hire(roster: Roster, max_hired: int = MAX_HIRED_ADVISERS) -> bool:
    return len(roster) < max_hired


def available_advisers(roster: Roster, catalog: Optional[Catalog] = None) -> List[str]:
    """目录中尚未聘用的顾问 type（按目录顺序）。"""
    catalog = catalog or default_catalog()
    return [adviser_type for adviser_type in catalog.advisers if adviser_type not in roster]


def hire_adviser(
    roster: Roster,
    adviser_type: str,
    turn: int = 0,
    catalog: Optional[Catalog] = None,
) -> Roster:
    """返回聘用后的新名册。未知顾问或已聘用时原样返回。

    名册上限由调用方通过 can_hire 检查。
    """
    if adviser_type in roster:
        return roster
    catalog = catalog or default_catalog()
    profile = catalog.adviser(adviser_type)
    if profile is None:
        logger.warning("目录中没有顾问 '%s'，忽略聘用", adviser_type)
        return roster
    updated = dict(roster)
    updated[adviser_type] = HiredRecord(profile=profile, hired_turn=turn)
    return updated


def fire_adviser(roster: Roster, adviser_type: str) -> Roster:
    updated = dict(roster)
    updated.pop(adviser_type, None)
    return updated


def record_advice(roster: Roster, adviser_type: str, followed: bool) -> Roster:
    """对未聘用的顾问为空操作。"""
    record = roster.get(adviser_type)
    if record is None:
        return roster
    updated = dict(roster)
    updated[adviser_type] = record_advice_outcome(record, followed)
    return updated


def record_prediction(roster: Roster, adviser_type: str, accurate: bool) -> Roster:
    record = roster.get(adviser_type)
    if record is None:
        return roster
    updated = dict(roster)
    updated[adviser_type] = record_prediction_outcome(record, accurate)
    return updated
