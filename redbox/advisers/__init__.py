# advisers/
# 已聘顾问名册：记录、关系与准确度追踪、聘用与解聘。

from redbox.advisers.roster import (
    HiredRecord,
    Roster,
    accuracy_rate,
    available_advisers,
    can_hire,
    check_resignation,
    fire_adviser,
    hire_adviser,
    normalize_roster,
    record_advice,
    record_advice_outcome,
    record_prediction,
    record_prediction_outcome,
    relationship_tier,
)

__all__ = [
    "HiredRecord",
    "Roster",
    "accuracy_rate",
    "available_advisers",
    "can_hire",
    "check_resignation",
    "fire_adviser",
    "hire_adviser",
    "normalize_roster",
    "record_advice",
    "record_advice_outcome",
    "record_prediction",
    "record_prediction_outcome",
    "relationship_tier",
]
