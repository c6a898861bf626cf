"""
core/availability.py

Reports whether the generative backend is usable, and why not.
Pure read of provider status: no retries, no side effects beyond caching the
last human-readable reason, never raises.
"""

from typing import Optional

from core.feedback_schema import AvailabilityState
from models.model_provider import ModelProvider
from utils.logging_utils import get_logger

logger = get_logger("availability")


class AvailabilityProbe:
    def __init__(self, provider: ModelProvider):
        self.provider = provider
        self.last_reason: Optional[str] = None

    def is_available(self) -> AvailabilityState:
        try:
            state = self.provider.is_available()
        except Exception as e:
            state = AvailabilityState.unavailable(f"availability check failed: {type(e).__name__}")
            logger.warning(f"[AvailabilityProbe] Provider status check raised: {e}")

        if not isinstance(state, AvailabilityState):
            state = AvailabilityState.unavailable("availability check returned no state")

        if state.available:
            self.last_reason = None
        else:
            if not state.reason:
                state = AvailabilityState.unavailable("model not ready")
            if state.reason != self.last_reason:
                logger.info(f"[AvailabilityProbe] Generative backend unavailable: {state.reason}")
            self.last_reason = state.reason
        return state
