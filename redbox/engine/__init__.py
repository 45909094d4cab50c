# engine/__init__.py
# =============================================================================
# redbox 引擎模块：触发器、渲染、评级、顾问意见、首相消息、议员回应。
# =============================================================================

from redbox.engine.interactions import get_interaction_response
from redbox.engine.opinions import OpinionGenerator, generate_adviser_opinions
from redbox.engine.pm_messages import (
    check_demand_fulfillment,
    generate_pm_message,
    mark_message_as_read,
    process_pm_communications,
    should_send_event_triggered_message,
    should_send_scheduled_message,
    update_pm_relationship,
)
from redbox.engine.renderer import VariantRenderer
from redbox.engine.severity import assess
from redbox.engine.triggers import evaluate_trigger

__all__ = [
    "OpinionGenerator",
    "VariantRenderer",
    "assess",
    "check_demand_fulfillment",
    "evaluate_trigger",
    "generate_adviser_opinions",
    "generate_pm_message",
    "get_interaction_response",
    "mark_message_as_read",
    "process_pm_communications",
    "should_send_event_triggered_message",
    "should_send_scheduled_message",
    "update_pm_relationship",
]
