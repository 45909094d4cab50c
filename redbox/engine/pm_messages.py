# pm_messages.py
# =============================================================================
# 首相消息：触发策略、模板选择、关系状态演化。
#
# 每回合流程（process_pm_communications）：
#   1. settle_demands: 计入已满足的要求并将其移出 active_demands
#   2. update_pm_relationship: 耐心、连续不佳表现、改组风险
#   3. 事件触发消息优先；否则检查定期消息
#   4. 消息类型 → 条件合取匹配 → 最高 priority（并列随机）→ 渲染
#   5. 记账：warnings/demands/final warning/support/last contact
#
# 与顾问意见管线相同，无匹配模板时不产出消息（None），而非兜底文本。
# 所有状态对象不可变，函数返回新的 PMRelationshipState。
# =============================================================================

"""Prime Minister messaging: trigger policy, template selection, relationship model."""

from __future__ import annotations

import logging
import random
import time
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from redbox.catalog.loader import Catalog, default_catalog
from redbox.engine.renderer import VariantRenderer
from redbox.primitives.pm_models import (
    MessageConditions,
    MessageContext,
    PMCommunication,
    PMDemand,
    PMMessage,
    PMMessageTemplate,
    PMRelationshipState,
    active_demand_categories,
)
from redbox.primitives.state import SimulationState

logger = logging.getLogger(__name__)

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

FIRST_MESSAGE_TURN = 3
SCHEDULED_MESSAGE_INTERVAL = 6
RESHUFFLE_TRIGGER_RISK = 95.0
DEMAND_DEADLINE_TURNS = 3
DEFICIT_DEMAND_TARGET = 50.0  # £bn

# 事件原因 / Event reasons
REASON_SCHEDULED = "scheduled"
REASON_RESHUFFLE_IMMINENT = "reshuffle_imminent"
REASON_LOW_TRUST = "low_trust"
REASON_CONTINUED_LOW_TRUST = "continued_low_trust"
REASON_LOW_APPROVAL = "low_approval"
REASON_HIGH_DEFICIT = "high_deficit"
REASON_GOOD_PERFORMANCE = "good_performance"
REASON_SUPPORT_WITHDRAWN = "support_withdrawn"
REASON_SUPPORT_RESTORED = "support_restored"
REASON_MANIFESTO_BREACH = "manifesto_breach"
REASON_TAX_ANGER = "tax_anger"


def month_name(month: int) -> str:
    if 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return "Unknown"


def _turns_since_contact(rel: PMRelationshipState, turn: int) -> int:
    return turn - rel.last_contact_turn


# =============================================================================
# 条件上下文与模板选择 / Context and template selection
# =============================================================================


def build_message_context(
    state: SimulationState,
    relationship: PMRelationshipState,
    reason: str = "",
    turn: Optional[int] = None,
) -> MessageContext:
    """由宿主状态与触发原因推导条件向量。

    旗标推导：
      nhs_crisis       NHS 质量 <= 50
      tax_rises        VAT > 20、基本所得税 > 20、公司税 > 25，或原因为 tax_anger
      spending_cuts    赤字 < £40bn 且 NHS 质量 < 55
      manifesto_breach 原因为 manifesto_breach
      support_withdrawn 原因为 support_withdrawn → True，support_restored → False，否则未知
      recent_contact   距上次联系不足 2 回合
    """
    turn = state.current_turn if turn is None else turn
    fiscal = state.fiscal
    nhs = state.services.nhs_quality

    if reason == REASON_SUPPORT_WITHDRAWN:
        support_withdrawn: Optional[bool] = True
    elif reason == REASON_SUPPORT_RESTORED:
        support_withdrawn = False
    else:
        support_withdrawn = None

    return MessageContext(
        values={
            "trust": state.political.pm_trust,
            "approval": state.political.public_approval,
            "deficit": fiscal.deficit,
            "growth": state.economy.gdp_growth_annual,
            "inflation": state.economy.inflation_rate,
            "unemployment": state.economy.unemployment_rate,
            "reshuffle_risk": relationship.reshuffle_risk,
        },
        flags={
            "nhs_crisis": nhs <= 50,
            "tax_rises": (
                fiscal.vat_rate > 20
                or fiscal.income_tax_basic_rate > 20
                or fiscal.corporation_tax_rate > 25
                or reason == REASON_TAX_ANGER
            ),
            "spending_cuts": fiscal.deficit < 40 and nhs < 55,
            "manifesto_breach": reason == REASON_MANIFESTO_BREACH,
            "support_withdrawn": support_withdrawn,
            "recent_contact": (
                relationship.last_contact_turn >= 0
                and _turns_since_contact(relationship, turn) < 2
            ),
        },
    )


def conditions_hold(conditions: MessageConditions, context: MessageContext) -> bool:
    """每个声明的条件都必须成立；未知旗标不满足任何声明的旗标条件。"""
    for key, bounds in conditions.ranges.items():
        if not bounds.holds(context.values.get(key)):
            return False
    for key, expected in conditions.flags.items():
        actual = context.flags.get(key)
        if actual is None or actual != expected:
            return False
    return True


def select_template(
    catalog: Catalog,
    message_type: str,
    context: MessageContext,
    rng: Optional[random.Random] = None,
) -> Optional[PMMessageTemplate]:
    """按类型过滤 → 条件匹配 → 最高 priority；并列时随机选择。"""
    candidates = [
        t for t in catalog.messages_of_type(message_type)
        if conditions_hold(t.conditions, context)
    ]
    if not candidates:
        logger.debug("消息类型 '%s' 无匹配模板", message_type)
        return None
    top = max(t.priority for t in candidates)
    best = [t for t in candidates if t.priority == top]
    if len(best) == 1:
        return best[0]
    return (rng or random.Random()).choice(best)


def message_substitutions(state: SimulationState) -> Dict[str, str]:
    political = state.political
    return {
        "trust": str(round(political.pm_trust)),
        "approval": str(round(political.public_approval)),
        "deficit": str(round(state.fiscal.deficit)),
        "growth": f"{state.economy.gdp_growth_annual:.1f}",
        "backbench": str(round(political.backbench_satisfaction)),
        "unemployment": f"{state.economy.unemployment_rate:.1f}",
        "month": month_name(state.current_month),
    }


def generate_pm_message(
    state: SimulationState,
    relationship: PMRelationshipState,
    message_type: str,
    reason: str = "",
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
    turn: Optional[int] = None,
) -> Optional[PMMessage]:
    """生成一条首相消息；无匹配模板时返回 None。"""
    catalog = catalog or default_catalog()
    rng = rng or random.Random()
    turn = state.current_turn if turn is None else turn

    context = build_message_context(state, relationship, reason, turn)
    template = select_template(catalog, message_type, context, rng)
    if template is None:
        return None

    renderer = VariantRenderer(rng)
    subs = message_substitutions(state)
    return PMMessage(
        id=f"pm_{turn}_{message_type}_{rng.getrandbits(32):08x}",
        turn=turn,
        type=message_type,
        subject=renderer.render(template.subject, subs),
        content=renderer.render(template.content, subs),
        tone=template.tone,
        timestamp=time.time(),
        template_id=template.id,
        demand_category=template.demand_category,
        demand_details=template.demand_details,
        consequence_warning=template.consequence_warning,
    )


# =============================================================================
# 触发策略 / Trigger policy
# =============================================================================


def should_send_scheduled_message(
    relationship: PMRelationshipState,
    turn: int,
    interval: int = SCHEDULED_MESSAGE_INTERVAL,
    first_turn: int = FIRST_MESSAGE_TURN,
) -> bool:
    """首次在第 first_turn 回合；之后距上次联系满 interval 回合。"""
    if relationship.last_contact_turn == -1:
        return turn >= first_turn
    return _turns_since_contact(relationship, turn) >= interval


def should_send_event_triggered_message(
    state: SimulationState,
    relationship: PMRelationshipState,
    turn: Optional[int] = None,
) -> Tuple[bool, Optional[str], str]:
    """事件触发阶梯，返回 (是否发送, 消息类型, 原因)。"""
    turn = state.current_turn if turn is None else turn
    rel = relationship
    trust = state.political.pm_trust
    approval = state.political.public_approval
    since = _turns_since_contact(rel, turn)

    if rel.reshuffle_risk >= 80 and not rel.final_warning_given:
        return True, "reshuffle_warning", REASON_RESHUFFLE_IMMINENT

    if trust < 30 and since >= 2:
        if rel.warnings_issued == 0:
            return True, "warning", REASON_LOW_TRUST
        return True, "threat", REASON_CONTINUED_LOW_TRUST

    if approval < 25 and since >= 3:
        return True, "concern", REASON_LOW_APPROVAL

    if state.fiscal.deficit > 80 and "deficit" not in active_demand_categories(rel):
        return True, "demand", REASON_HIGH_DEFICIT

    if trust > 75 and approval > 50 and since >= 4 and rel.consecutive_poor_performance == 0:
        return True, "praise", REASON_GOOD_PERFORMANCE

    if rel.reshuffle_risk >= 60 and not rel.support_withdrawn and rel.warnings_issued >= 2:
        return True, "support_change", REASON_SUPPORT_WITHDRAWN

    if rel.support_withdrawn and trust >= 50:
        return True, "support_change", REASON_SUPPORT_RESTORED

    return False, None, ""


# =============================================================================
# 关系状态 / Relationship model
# =============================================================================


def _patience_change(state: SimulationState, rel: PMRelationshipState, turn: int) -> Tuple[float, bool]:
    """返回 (耐心变化量, 本回合是否表现不佳)。"""
    trust = state.political.pm_trust
    approval = state.political.public_approval
    deficit = state.fiscal.deficit
    change = 0.0

    # 蜜月期结束后的自然衰减
    if turn > 12 and trust < 65:
        change -= 0.5

    poor = trust < 45
    if trust < 20:
        change -= 8
    elif trust < 30:
        change -= 5
    elif trust < 45:
        change -= 2
    elif trust > 75:
        change += 4
    elif trust > 60:
        change += 2

    if approval < 20:
        change -= 5
    elif approval < 30:
        change -= 3
    elif approval < 38:
        change -= 1
    elif approval > 50:
        change += 2

    if deficit > 100:
        change -= 4
    elif deficit > 80:
        change -= 2
    elif deficit < 30:
        change += 1

    violations = state.political.manifesto_violations
    if violations >= 3:
        change -= 2
    elif violations >= 1:
        change -= 1

    return change, poor


def update_pm_relationship(
    state: SimulationState,
    relationship: PMRelationshipState,
    turn: Optional[int] = None,
) -> PMRelationshipState:
    """按本回合表现更新耐心、连续不佳表现计数与改组风险。"""
    turn = state.current_turn if turn is None else turn
    rel = relationship

    change, poor = _patience_change(state, rel, turn)
    patience = max(0.0, min(100.0, rel.patience + change))
    streak = rel.consecutive_poor_performance + 1 if poor else 0

    risk = 0.0
    if patience < 20:
        risk += 50
    elif patience < 40:
        risk += 25

    if streak >= 6:
        risk += 30
    elif streak >= 3:
        risk += 15

    if rel.warnings_issued >= 3:
        risk += 20
    elif rel.warnings_issued >= 2:
        risk += 10

    overdue = sum(1 for d in rel.active_demands if not d.met and turn > d.deadline)
    risk += overdue * 15

    return replace(
        rel,
        patience=patience,
        consecutive_poor_performance=streak,
        reshuffle_risk=min(100.0, risk),
    )


def check_demand_fulfillment(demand: PMDemand, state: SimulationState) -> bool:
    """目前只有赤字要求可自动判定：赤字降至 £50bn 以下。"""
    if demand.category == "deficit":
        return state.fiscal.deficit < DEFICIT_DEMAND_TARGET
    return False


def settle_demands(state: SimulationState, relationship: PMRelationshipState) -> PMRelationshipState:
    """累计本回合满足的要求（demands_met），并从 active_demands 中移除已满足的要求。"""
    pending: List[PMDemand] = []
    newly_met = 0
    for demand in relationship.active_demands:
        if demand.met:
            continue
        if check_demand_fulfillment(demand, state):
            newly_met += 1
            continue
        pending.append(demand)
    if len(pending) == len(relationship.active_demands):
        return relationship
    return replace(
        relationship,
        active_demands=tuple(pending),
        demands_met=relationship.demands_met + newly_met,
    )


def mark_message_as_read(relationship: PMRelationshipState, message_id: str) -> PMRelationshipState:
    messages = tuple(
        replace(m, read=True) if m.id == message_id else m
        for m in relationship.messages
    )
    return replace(relationship, messages=messages)


def _record_message(
    rel: PMRelationshipState,
    message: PMMessage,
    reason: str,
    turn: int,
) -> PMRelationshipState:
    updates: Dict[str, object] = {
        "messages": rel.messages + (message,),
        "last_contact_turn": turn,
    }
    if message.type == "warning":
        updates["warnings_issued"] = rel.warnings_issued + 1
    elif message.type == "demand":
        updates["demands_issued"] = rel.demands_issued + 1
        updates["active_demands"] = rel.active_demands + (PMDemand(
            category=message.demand_category or "deficit",
            description=message.demand_details or message.subject,
            deadline=turn + DEMAND_DEADLINE_TURNS,
        ),)
    elif message.type == "reshuffle_warning":
        updates["final_warning_given"] = True
    elif message.type == "support_change":
        if reason == REASON_SUPPORT_WITHDRAWN:
            updates["support_withdrawn"] = True
        elif reason == REASON_SUPPORT_RESTORED:
            updates["support_withdrawn"] = False
    return replace(rel, **updates)


def process_pm_communications(
    state: SimulationState,
    relationship: PMRelationshipState,
    catalog: Optional[Catalog] = None,
    rng: Optional[random.Random] = None,
    turn: Optional[int] = None,
    scheduled_interval: int = SCHEDULED_MESSAGE_INTERVAL,
    first_message_turn: int = FIRST_MESSAGE_TURN,
) -> PMCommunication:
    """处理本回合的首相沟通。

    事件触发消息优先；事件无匹配模板或未触发时再检查定期消息。
    改组风险达到 95 时 reshuffle_triggered 为 True（由宿主决定后果）。
    """
    catalog = catalog or default_catalog()
    rng = rng or random.Random()
    turn = state.current_turn if turn is None else turn

    rel = settle_demands(state, relationship)
    rel = update_pm_relationship(state, rel, turn)
    reshuffle = rel.reshuffle_risk >= RESHUFFLE_TRIGGER_RISK
    if reshuffle:
        logger.info("改组风险 %.0f，触发改组", rel.reshuffle_risk)

    message: Optional[PMMessage] = None
    reason = ""

    send, message_type, event_reason = should_send_event_triggered_message(state, rel, turn)
    if send and message_type is not None:
        message = generate_pm_message(state, rel, message_type, event_reason, catalog, rng, turn)
        if message is not None:
            reason = event_reason

    if message is None and should_send_scheduled_message(
        rel, turn, scheduled_interval, first_message_turn
    ):
        message = generate_pm_message(state, rel, "regular_checkin", REASON_SCHEDULED, catalog, rng, turn)
        if message is not None:
            reason = REASON_SCHEDULED

    if message is not None:
        rel = _record_message(rel, message, reason, turn)
        logger.debug("回合 %d 首相消息: %s (%s)", turn, message.template_id, reason)

    return PMCommunication(
        message=message,
        relationship=rel,
        reshuffle_triggered=reshuffle,
        reason=reason,
    )
