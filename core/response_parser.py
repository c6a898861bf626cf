"""
# core/response_parser.py

Module Contract
- Purpose: Turn raw model output (ideally JSON, possibly malformed) into ParsedFeedback.
- Strategy:
  1. Strict decode of a JSON object with string `text`, string `emotionHint`, optional list `tags`
     (a surrounding ```json fence is tolerated).
  2. On failure, recover the quoted value after a `"text":` marker up to the next `",`
     (emotion hint "supportive", no tags); otherwise keep the raw output verbatim.
  3. Always minimize markdown in the final text (idempotent).
- Errors:
  - ResponseParseError only when nothing usable remains (empty text after every step).
"""
import json
import re
from typing import Any, Optional

from core.feedback_schema import ParsedFeedback
from utils.logging_utils import get_logger

logger = get_logger("response_parser")

DEFAULT_RECOVERED_HINT = "supportive"

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL | re.IGNORECASE)
_TEXT_MARKER_RE = re.compile(r'"text"\s*:\s*"(.*?)",', re.DOTALL)
_RULE_RE = re.compile(r"-{3,}")
_HEADING_RE = re.compile(r"^[^\S\n]*(?:#+[^\S\n]*)+", re.MULTILINE)


class ResponseParseError(ValueError):
    """Raised when raw model output yields no usable feedback text."""


def strip_markdown(text: str) -> str:
    """Remove heading markers and horizontal rules, then trim.

    Rules go first so a `---#` run cannot leave a fresh heading marker behind. Heading
    markers are matched after any non-newline whitespace at the start of a line
    so the final trim cannot expose a new one.
    strip_markdown(strip_markdown(x)) == strip_markdown(x).
    """
    if not text:
        return ""
    cleaned = _RULE_RE.sub("", text)
    cleaned = _HEADING_RE.sub("", cleaned)
    return cleaned.strip()


def _strict_decode(raw: str) -> Optional[ParsedFeedback]:
    candidate = raw.strip()
    fenced = _FENCE_RE.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    try:
        payload: Any = json.loads(candidate)
    except (json.JSONDecodeError, TypeError):
        return None
    if not isinstance(payload, dict):
        return None

    text = payload.get("text")
    hint = payload.get("emotionHint")
    tags = payload.get("tags")
    if not isinstance(text, str) or not isinstance(hint, str):
        return None
    if tags is not None:
        if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
            return None
    return ParsedFeedback(text=text, emotion_hint=hint, tags=tags)


def _recover_text(raw: str) -> Optional[str]:
    match = _TEXT_MARKER_RE.search(raw)
    if not match:
        return None
    value = match.group(1)
    try:
        # Undo JSON escapes when the fragment is a valid JSON string body
        return json.loads(f'"{value}"')
    except json.JSONDecodeError:
        return value


class ResponseParser:
    def parse(self, raw: str) -> ParsedFeedback:
        raw = raw or ""
        parsed = _strict_decode(raw)
        if parsed is None:
            recovered = _recover_text(raw)
            if recovered is not None:
                logger.debug("[ResponseParser] Strict decode failed; recovered text from marker")
                parsed = ParsedFeedback(text=recovered, emotion_hint=DEFAULT_RECOVERED_HINT, tags=None)
            else:
                logger.debug("[ResponseParser] Strict decode failed; using raw output verbatim")
                # Empty hint lets the emotion mapper fall back to the rating bucket
                parsed = ParsedFeedback(text=raw, emotion_hint="", tags=None)

        parsed.text = strip_markdown(parsed.text)
        if not parsed.text:
            raise ResponseParseError("Model output contained no usable feedback text")
        return parsed
