"""
# core/fallback_engine.py

Module Contract
- Purpose: Deterministic, network-free feedback generator. The guaranteed backstop when the generative tier is unavailable or fails.
- Inputs:
  - generate(rating, text) with rating in [1, 10] and optional entry text
  - Collaborators: a TextAnalyzer (sentiment(text), nouns(text)) and a seedable random.Random
- Outputs:
  - FallbackFeedback(text, emotion): text is never empty; emotion is happy, supportive or concerned,
    already passed through the celebratory clamp. The message itself is chosen from the unclamped blended tone.
- Behavior:
  - blended_emotion: rating <= 4 or sentiment < -0.5 → concerned; rating >= 8 or sentiment > 0.5 → happy; else supportive
  - message: one of three openings for the bucket (personalized with the first extracted noun or a generic
    placeholder), a fixed validating body, an optional theme sentence, exactly one suggestion, a closing emoji
- Side effects:
  - None. No network I/O. Recent hints are intentionally not consulted here.
"""
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from config.app_config import MAX_KEYWORDS
from core.emotion_mapper import EmotionMapper
from core.feedback_schema import Emotion
from utils.logging_utils import get_logger
from utils.text_analysis import TextAnalyzer

logger = get_logger("fallback_engine")

GENERIC_TOPIC = "what you're experiencing"
NEGATIVE_THRESHOLD = -0.5
POSITIVE_THRESHOLD = 0.5

OPENINGS: Dict[Emotion, Sequence[str]] = {
    Emotion.HAPPY: (
        "What a wonderful day! I can feel how much {topic} is lighting you up.",
        "This is so lovely to hear, and it sounds like {topic} brought you real joy.",
        "Your happiness shines through, and it's beautiful to see {topic} giving you this energy.",
    ),
    Emotion.SUPPORTIVE: (
        "Thank you for sharing about {topic} today.",
        "It sounds like {topic} has been on your mind.",
        "I appreciate you taking a moment to reflect on {topic}.",
    ),
    Emotion.CONCERNED: (
        "I hear how {topic} is affecting you.",
        "I'm sorry that {topic} has been weighing on you.",
        "It sounds like {topic} has made today really hard.",
    ),
}

BODIES: Dict[Emotion, str] = {
    Emotion.HAPPY: "Moments like this are worth savoring, and you deserve every bit of it.",
    Emotion.SUPPORTIVE: "Whatever today held, showing up to reflect on it is a meaningful step.",
    Emotion.CONCERNED: "What you're feeling is valid, and you don't have to carry it all at once.",
}

SUGGESTIONS: Dict[Emotion, Sequence[str]] = {
    Emotion.HAPPY: (
        "Try writing down one thing that made today great so you can come back to it later.",
        "Consider sharing this good news with someone you care about.",
        "Take a quiet minute tonight to notice what helped today go so well.",
    ),
    Emotion.SUPPORTIVE: (
        "Try a short walk to give your mind a little space.",
        "Consider naming one small thing you'd like to carry into tomorrow.",
        "Try a few slow breaths before moving on to your next task.",
    ),
    Emotion.CONCERNED: (
        "Try breathing in for four counts and out for six, a few times over.",
        "Consider reaching out to someone you trust, even with a short message.",
        "Try naming five things you can see around you to ground yourself.",
    ),
}

EMOJI: Dict[Emotion, str] = {
    Emotion.HAPPY: "🌸",
    Emotion.SUPPORTIVE: "🌿",
    Emotion.CONCERNED: "💙",
}

THEME_ALIASES: Dict[str, Sequence[str]] = {
    "work": ("work", "job", "career", "project", "office", "boss", "meeting", "interview",
             "colleague", "coworker", "deadline"),
    "family": ("family", "mom", "dad", "mother", "father", "sister", "brother", "sibling",
               "parent", "kid", "child", "son", "daughter", "grandma", "grandpa"),
    "friends": ("friend", "friendship", "roommate"),
    "health": ("health", "exercise", "workout", "sleep", "doctor", "body", "gym"),
    "nature": ("nature", "walk", "park", "garden", "tree", "forest", "beach", "hike", "sunshine"),
}

THEME_LINES: Dict[str, Sequence[str]] = {
    "work": (
        "Work can ask a lot of us, and the effort you put in there matters.",
        "Finding balance with work is part of growing.",
        "Your commitment shows, even on the days it doesn't feel that way.",
    ),
    "family": (
        "Family connections are some of the deepest roots we have.",
        "The people closest to us can stir up the biggest feelings.",
        "The care you hold for your family says a lot about you.",
    ),
    "friends": (
        "Friendships can be such a steady source of support.",
        "The connections you keep are part of what makes you strong.",
        "It's clear the people around you matter to you.",
    ),
    "health": (
        "Looking after your body and mind is a real form of self-respect.",
        "Your wellbeing is worth making room for.",
        "Rest and health grow together, one day at a time.",
    ),
    "nature": (
        "Time outside has a quiet way of restoring balance.",
        "Nature has a gentle way of meeting us where we are.",
        "The world outside often mirrors our own growth.",
    ),
}


@dataclass
class FallbackFeedback:
    text: str
    emotion: Emotion


def blended_emotion(rating: int, sentiment: float) -> Emotion:
    if rating <= 4 or sentiment < NEGATIVE_THRESHOLD:
        return Emotion.CONCERNED
    if rating >= 8 or sentiment > POSITIVE_THRESHOLD:
        return Emotion.HAPPY
    return Emotion.SUPPORTIVE


def topic_phrase(topics: Sequence[str]) -> str:
    return f"your {topics[0]}" if topics else GENERIC_TOPIC


def match_theme(topics: Sequence[str]) -> Optional[str]:
    for topic in topics:
        for theme, aliases in THEME_ALIASES.items():
            if topic in aliases:
                return theme
    return None


def _capitalize_first(sentence: str) -> str:
    return sentence[:1].upper() + sentence[1:] if sentence else sentence


class FallbackEngine:
    """Local feedback generator built on a sentiment tagger and keyword extractor."""

    def __init__(self, analyzer: TextAnalyzer, rng: Optional[random.Random] = None,
                 mapper: Optional[EmotionMapper] = None, max_topics: int = MAX_KEYWORDS):
        self.analyzer = analyzer
        self.rng = rng or random.Random()
        self.mapper = mapper or EmotionMapper()
        self.max_topics = max_topics

    def sentiment_score(self, text: Optional[str]) -> float:
        if not text or not text.strip():
            return 0.0
        try:
            score = float(self.analyzer.sentiment(text))
        except Exception as e:
            # The backstop must not fail; analysis errors count as neutral
            logger.warning(f"[FallbackEngine] Sentiment analysis failed: {type(e).__name__}: {e}")
            return 0.0
        return max(-1.0, min(1.0, score))

    def keywords(self, text: Optional[str]) -> List[str]:
        if not text or not text.strip():
            return []
        try:
            nouns = self.analyzer.nouns(text) or []
        except Exception as e:
            logger.warning(f"[FallbackEngine] Keyword extraction failed: {type(e).__name__}: {e}")
            return []
        unique = list(dict.fromkeys(n.strip().lower() for n in nouns if n and n.strip()))
        return unique[: self.max_topics]

    def message(self, emotion: Emotion, topics: Sequence[str]) -> str:
        bucket = emotion if emotion in OPENINGS else Emotion.SUPPORTIVE
        opening = self.rng.choice(OPENINGS[bucket]).format(topic=topic_phrase(topics))
        parts = [_capitalize_first(opening), BODIES[bucket]]

        theme = match_theme(topics)
        if theme:
            parts.append(self.rng.choice(THEME_LINES[theme]))

        parts.append(self.rng.choice(SUGGESTIONS[bucket]))
        return " ".join(parts) + " " + EMOJI[bucket]

    def generate(self, rating: int, text: Optional[str]) -> FallbackFeedback:
        sentiment = self.sentiment_score(text)
        blended = blended_emotion(rating, sentiment)
        # The wording follows what was written; only the mascot emotion is clamped
        emotion = self.mapper.clamp(blended, rating)
        topics = self.keywords(text)
        logger.debug(
            f"[FallbackEngine] rating={rating} sentiment={sentiment:.2f} "
            f"tone={blended.value} emotion={emotion.value} topics={topics}"
        )
        return FallbackFeedback(text=self.message(blended, topics), emotion=emotion)
