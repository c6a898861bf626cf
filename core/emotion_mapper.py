"""
core/emotion_mapper.py

Maps free-text emotion hints onto the fixed mascot emotion set, and applies the
celebratory clamp: a self-reported great day (rating >= 8) always shows a
celebrating mascot, whatever the text analysis suggests.
"""

from typing import Optional, Sequence, Tuple

from core.feedback_schema import Emotion

CELEBRATORY_RATING = 8
CELEBRATORY_EMOTIONS = frozenset({Emotion.HAPPY, Emotion.PROUD})

# Checked in order; the first group with a substring hit wins.
HINT_KEYWORDS: Sequence[Tuple[Tuple[str, ...], Emotion]] = (
    (("happy", "proud"), Emotion.HAPPY),
    (("support", "encourage"), Emotion.SUPPORTIVE),
    (("concern", "tough", "hard"), Emotion.CONCERNED),
    (("thinking",), Emotion.THINKING),
    (("sleep",), Emotion.SLEEPING),
    (("neutral",), Emotion.NEUTRAL),
)


def emotion_for_rating(rating: int) -> Emotion:
    """Default bucket from the rating alone."""
    if rating >= 8:
        return Emotion.HAPPY
    if rating >= 5:
        return Emotion.SUPPORTIVE
    return Emotion.CONCERNED


class EmotionMapper:
    def map(self, hint: Optional[str], rating: int) -> Emotion:
        lowered = (hint or "").lower()
        if lowered:
            for keywords, emotion in HINT_KEYWORDS:
                if any(k in lowered for k in keywords):
                    return emotion
        return emotion_for_rating(rating)

    def clamp(self, emotion: Emotion, rating: int) -> Emotion:
        if rating >= CELEBRATORY_RATING and emotion not in CELEBRATORY_EMOTIONS:
            return Emotion.HAPPY
        return emotion

    def resolve(self, hint: Optional[str], rating: int) -> Emotion:
        """map() followed by clamp()."""
        return self.clamp(self.map(hint, rating), rating)
