# redbox/__init__.py
# =============================================================================
# redbox：财政大臣模拟的顾问意见与首相消息引擎。
# / Adviser opinion and No.10 messaging engine for a Chancellor simulation.
# =============================================================================

"""redbox：财政大臣模拟的顾问意见与首相消息引擎。 / Adviser opinion and No.10 messaging engine."""

from redbox.api.briefing import advise, hire, mp_response, pm_briefing, resignations

__version__ = "0.1.0"
__all__ = ["advise", "hire", "mp_response", "pm_briefing", "resignations", "__version__"]
