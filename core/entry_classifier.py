"""
# core/entry_classifier.py

Module Contract
- Purpose: Tag a journal entry with one mood category and one focus area, using the same two-tier
  strategy as feedback generation (generative session first, keyword rules as the backstop).
- Inputs:
  - classify(text, rating)
- Outputs:
  - EntryClassification(mood_category, focus_area, used_generative_model); never raises.
- Behavior:
  - Generative replies must be a JSON object {"moodCategory", "focusArea"} whose values come from
    the fixed vocabularies below (case-insensitive); anything else counts as a failure.
  - Keyword rules: mood depends on the rating band first, then substrings; focus is the first matching group.
"""
import asyncio
import json
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from config.app_config import ENTRY_CHAR_LIMIT, GENERATION_TIMEOUT_S
from core.availability import AvailabilityProbe
from core.feedback_schema import clamp_rating
from core.prompt_builder import truncate
from core.session_manager import SessionManager
from models.model_provider import ModelProvider
from utils.logging_utils import get_logger

logger = get_logger("entry_classifier")

MOOD_CATEGORIES = (
    "Productive", "Mindful", "Reflective", "Excited", "Grateful",
    "Anxious", "Peaceful", "Energized", "Contemplative", "Joyful",
)

FOCUS_AREAS = (
    "Gratitude", "Goals", "Family", "Career", "Health",
    "Relationships", "Self-care", "Growth", "Creativity", "Balance",
)

CLASSIFIER_SYSTEM_PROMPT = (
    "You are a journal entry classifier. Analyze the journal entry and categorize it with exactly 2 tags.\n"
    f"1. MOOD CATEGORY (what's happening overall), choose ONE of: {', '.join(MOOD_CATEGORIES)}.\n"
    f"2. FOCUS AREA (what to focus on), choose ONE of: {', '.join(FOCUS_AREAS)}.\n"
    'Respond in this exact JSON format: {"moodCategory": "<category>", "focusArea": "<area>"}\n'
    "Only respond with valid JSON, nothing else."
)

# (substrings, label); first hit wins
HIGH_MOOD_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("accomplish", "done", "finish"), "Productive"),
    (("excit", "opport"), "Excited"),
    (("thank", "grateful"), "Grateful"),
)
MID_MOOD_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("calm", "peace"), "Peaceful"),
    (("think", "reflect"), "Reflective"),
)
LOW_MOOD_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("worry", "stress", "anxious"), "Anxious"),
)
FOCUS_RULES: Sequence[Tuple[Tuple[str, ...], str]] = (
    (("work", "job", "career", "project"), "Career"),
    (("family", "mom", "dad", "sibling"), "Family"),
    (("friend", "relationship"), "Relationships"),
    (("health", "exercise", "sleep"), "Health"),
    (("goal", "plan", "achieve"), "Goals"),
    (("grateful", "thank", "appreciate"), "Gratitude"),
    (("learn", "grow"), "Growth"),
    (("rest", "relax", "care"), "Self-care"),
)


@dataclass
class EntryClassification:
    mood_category: str
    focus_area: str
    used_generative_model: bool

    def to_dict(self) -> Dict[str, object]:
        return {
            "mood_category": self.mood_category,
            "focus_area": self.focus_area,
            "used_generative_model": self.used_generative_model,
        }


def _first_match(text: str, rules: Sequence[Tuple[Tuple[str, ...], str]], default: str) -> str:
    for needles, label in rules:
        if any(n in text for n in needles):
            return label
    return default


def classify_by_keywords(text: Optional[str], rating: int) -> Tuple[str, str]:
    lowered = (text or "").lower()
    if rating >= 8:
        mood = _first_match(lowered, HIGH_MOOD_RULES, "Joyful")
    elif rating >= 6:
        mood = _first_match(lowered, MID_MOOD_RULES, "Mindful")
    else:
        mood = _first_match(lowered, LOW_MOOD_RULES, "Contemplative")
    focus = _first_match(lowered, FOCUS_RULES, "Balance")
    return mood, focus


def _canonical(value: object, vocabulary: Sequence[str]) -> Optional[str]:
    if not isinstance(value, str):
        return None
    wanted = value.strip().lower()
    for item in vocabulary:
        if item.lower() == wanted:
            return item
    return None


def parse_classification(raw: str) -> Optional[Tuple[str, str]]:
    try:
        payload = json.loads((raw or "").strip())
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    mood = _canonical(payload.get("moodCategory"), MOOD_CATEGORIES)
    focus = _canonical(payload.get("focusArea"), FOCUS_AREAS)
    if mood is None or focus is None:
        return None
    return mood, focus


class EntryClassifier:
    def __init__(self, provider: ModelProvider, generation_timeout: Optional[float] = GENERATION_TIMEOUT_S,
                 entry_char_limit: int = ENTRY_CHAR_LIMIT):
        self.probe = AvailabilityProbe(provider)
        self.session_manager = SessionManager(provider, CLASSIFIER_SYSTEM_PROMPT)
        self.generation_timeout = generation_timeout
        self.entry_char_limit = entry_char_limit

    async def _classify_with_model(self, text: str) -> Optional[Tuple[str, str]]:
        session = await self.session_manager.get_session()
        prompt = f"Classify this journal entry:\n\n{truncate(text, self.entry_char_limit)}"
        call = session.respond(prompt)
        if self.generation_timeout and self.generation_timeout > 0:
            raw = await asyncio.wait_for(call, timeout=self.generation_timeout)
        else:
            raw = await call
        return parse_classification(raw)

    async def classify(self, text: Optional[str], rating: int) -> EntryClassification:
        rating = clamp_rating(rating)
        if text and text.strip() and self.probe.is_available().available:
            try:
                result = await self._classify_with_model(text.strip())
                if result is not None:
                    return EntryClassification(*result, used_generative_model=True)
                logger.warning("[EntryClassifier] Model reply outside the fixed vocabularies; using keyword rules")
            except Exception as e:
                logger.warning(f"[EntryClassifier] Generative classification failed ({type(e).__name__}: {e}); using keyword rules")
                await self.session_manager.reset_session()

        mood, focus = classify_by_keywords(text, rating)
        return EntryClassification(mood, focus, used_generative_model=False)
