from redbox.api.briefing import advise, hire, mp_response, pm_briefing, resignations

__all__ = ["advise", "hire", "mp_response", "pm_briefing", "resignations"]
