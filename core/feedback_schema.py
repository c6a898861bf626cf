"""
core/feedback_schema.py

Data model shared by every stage of the feedback pipeline.

- FeedbackRequest: what the journal entry source hands in (rating, text, recent hints)
- FeedbackResult: what the caller gets back, exactly once per orchestrator call
- ParsedFeedback: intermediate payload produced by the response parser
- Emotion: the fixed set of mascot display states
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

MIN_RATING = 1
MAX_RATING = 10


class Emotion(Enum):
    """Mascot emotion states the pipeline classifies into."""
    HAPPY = "happy"
    SUPPORTIVE = "supportive"
    CONCERNED = "concerned"
    PROUD = "proud"
    THINKING = "thinking"
    SLEEPING = "sleeping"
    NEUTRAL = "neutral"


def clamp_rating(rating: int) -> int:
    return max(MIN_RATING, min(MAX_RATING, int(rating)))


@dataclass
class FeedbackRequest:
    """One journal entry worth of input.

    `recent_hints` are previously generated responses, most recent first.
    Out-of-range ratings are clamped into [1, 10].
    """
    rating: int
    text: Optional[str] = None
    recent_hints: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.rating = clamp_rating(self.rating)
        self.recent_hints = [h for h in (self.recent_hints or []) if isinstance(h, str)]

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())


@dataclass
class FeedbackResult:
    text: str
    emotion: Emotion
    used_generative_model: bool
    # Why the generative tier was skipped or failed; None when it succeeded
    fallback_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "emotion": self.emotion.value,
            "used_generative_model": self.used_generative_model,
            "fallback_reason": self.fallback_reason,
        }


@dataclass
class ParsedFeedback:
    text: str
    emotion_hint: str
    tags: Optional[List[str]] = None


@dataclass(frozen=True)
class AvailabilityState:
    """Whether the generative backend can serve, and why not when it cannot."""
    available: bool
    reason: Optional[str] = None

    @classmethod
    def ready(cls) -> "AvailabilityState":
        return cls(available=True)

    @classmethod
    def unavailable(cls, reason: str) -> "AvailabilityState":
        return cls(available=False, reason=reason)
