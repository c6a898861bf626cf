"""
# core/prompt_builder.py

Module Contract
- Purpose: Deterministic prompt assembly for the generative feedback tier, plus the fixed companion persona bound to the session.
- Inputs:
  - build(rating, text, hints) with rating in [1, 10], optional entry text, recent responses most-recent-first
- Outputs:
  - Prompt string: rating line, quoted entry (bounded), up to N prior responses to avoid, JSON output contract.
- Side effects:
  - None. Pure string building.
"""
from typing import Optional, Sequence

from config.app_config import ENTRY_CHAR_LIMIT, HINT_CHAR_LIMIT, MAX_HINTS
from utils.logging_utils import get_logger

logger = get_logger("prompt_builder")

FEEDBACK_SYSTEM_PROMPT = (
    "You are a warm, caring companion inside a mood journaling app. "
    "Reply to the user's journal entry in 3-5 sentences and no more than 75 words.\n"
    "Match your tone to the emotion rating:\n"
    "- 8-10: celebratory and joyful, share in their good day.\n"
    "- 4-7: balanced and encouraging, acknowledge both the good and the hard.\n"
    "- 1-3: very gentle, validating and soft; never cheerful or dismissive.\n"
    "Always reference at least one concrete detail from their entry when there is one.\n"
    "Offer exactly one small, actionable suggestion.\n"
    "Vary your phrasing from one reply to the next.\n"
    "Never diagnose, never give medical advice, never label the user with a condition.\n"
    "Never repeat any of your recent responses verbatim."
)

JSON_CONTRACT = (
    "Respond with only a JSON object of the form "
    '{"text": "<your reply>", "emotionHint": "<one word: happy, proud, supportive, '
    'concerned, thinking, sleeping or neutral>", "tags": ["<short tag>", ...]}. '
    "No markdown, no extra keys, nothing outside the JSON."
)


def truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit]


class PromptBuilder:
    """Builds the per-call prompt for the feedback session."""

    def __init__(self, entry_char_limit: int = ENTRY_CHAR_LIMIT,
                 max_hints: int = MAX_HINTS, hint_char_limit: int = HINT_CHAR_LIMIT):
        self.entry_char_limit = entry_char_limit
        self.max_hints = max_hints
        self.hint_char_limit = hint_char_limit
        self.system_prompt = FEEDBACK_SYSTEM_PROMPT

    def select_hints(self, hints: Optional[Sequence[str]]) -> list:
        """First `max_hints` non-blank hints, each cut to `hint_char_limit`."""
        selected = [h.strip() for h in (hints or []) if h and h.strip()][: self.max_hints]
        return [truncate(h, self.hint_char_limit) for h in selected]

    def build(self, rating: int, text: Optional[str], hints: Optional[Sequence[str]] = None) -> str:
        lines = [f"User's emotion rating: {rating}/10"]

        entry = (text or "").strip()
        if entry:
            entry = truncate(entry, self.entry_char_limit)
            lines.append("")
            lines.append("User's journal entry:")
            lines.append(f'"{entry}"')

        selected = self.select_hints(hints)
        if selected:
            lines.append("")
            lines.append("Your recent responses (vary your wording and do not repeat these):")
            lines.extend(f"- {h}" for h in selected)

        lines.append("")
        lines.append(JSON_CONTRACT)

        prompt = "\n".join(lines)
        logger.debug(f"[PromptBuilder] Built prompt ({len(prompt)} chars, {len(selected)} hints)")
        return prompt
