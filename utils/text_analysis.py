"""
utils/text_analysis.py

Local natural-language analysis used by the fallback tier.

- SentimentTagger: scalar polarity in [-1, 1] from a weighted lexicon over spaCy tokens
  (lemma or surface form), with short-range negation flipping.
- KeywordExtractor: nouns from the spaCy tagger, lemmatized and de-duplicated.
- SpacyTextAnalyzer: the `sentiment(text)` / `nouns(text)` backend the fallback engine consumes.

The spaCy pipeline is loaded lazily. When the configured model is missing the analyzer
drops to a blank English tokenizer (sentiment still works, nouns are empty); when spaCy
itself cannot build a pipeline, analysis reports unavailable and every score is neutral.
"""

from typing import Dict, Iterable, List, Optional, Protocol

import spacy
from spacy.language import Language

from utils.logging_utils import get_logger

logger = get_logger("text_analysis")


class TextAnalyzer(Protocol):
    def sentiment(self, text: str) -> float:
        ...

    def nouns(self, text: str) -> List[str]:
        ...


# ===== Sentiment lexicon =====

# Strong cues weigh 2, mild cues weigh 1. Keys are lower-case lemmas or surface forms.
POSITIVE_LEXICON: Dict[str, float] = {
    # strong
    "amazing": 2, "wonderful": 2, "fantastic": 2, "awesome": 2, "incredible": 2,
    "thrilled": 2, "ecstatic": 2, "joyful": 2, "joy": 2, "love": 2, "loved": 2,
    "proud": 2, "grateful": 2, "thankful": 2, "blessed": 2, "excited": 2,
    "delighted": 2, "brilliant": 2, "perfect": 2, "best": 2, "celebrate": 2,
    # mild
    "good": 1, "great": 1, "happy": 1, "glad": 1, "nice": 1, "calm": 1,
    "peaceful": 1, "relaxed": 1, "content": 1, "fun": 1, "enjoy": 1, "enjoyed": 1,
    "hopeful": 1, "better": 1, "success": 1, "win": 1, "accomplish": 1,
    "accomplished": 1, "productive": 1, "rested": 1, "appreciate": 1,
    "beautiful": 1, "smile": 1, "laugh": 1,
}

NEGATIVE_LEXICON: Dict[str, float] = {
    # strong
    "hopeless": 2, "exhausted": 2, "miserable": 2, "devastated": 2, "awful": 2,
    "terrible": 2, "horrible": 2, "worthless": 2, "depressed": 2, "panic": 2,
    "overwhelmed": 2, "heartbroken": 2, "hate": 2, "furious": 2, "terrified": 2,
    "unbearable": 2, "crying": 2, "lonely": 2, "empty": 2,
    # mild
    "bad": 1, "badly": 1, "sad": 1, "tired": 1, "stressed": 1, "stress": 1,
    "anxious": 1, "worried": 1, "worry": 1, "nervous": 1, "angry": 1, "upset": 1,
    "frustrated": 1, "hard": 1, "difficult": 1, "struggle": 1, "struggling": 1,
    "fail": 1, "failed": 1, "lost": 1, "hurt": 1, "pain": 1, "sick": 1,
    "disappointed": 1, "afraid": 1, "scared": 1, "tense": 1,
}

NEGATIONS = {"not", "no", "never", "n't", "nothing", "hardly", "without"}
NEGATION_WINDOW = 3

# Nouns too generic to personalize anything with
GENERIC_NOUNS = {
    "thing", "things", "day", "today", "time", "way", "lot", "bit", "stuff",
    "something", "anything", "everything", "nothing", "someone", "everyone",
    "feeling", "kind", "sort",
}


def score_tokens(tokens: Iterable[object]) -> float:
    """Polarity of a token stream in [-1, 1].

    Tokens need `lower_` and `lemma_`. A negation within the previous few tokens flips
    the sign of a cue. The total is squashed as total / (sum of |weights| + 1), so a
    single strong cue lands near +/-0.67 and the score only reaches the extremes with
    several agreeing cues.
    """
    total = 0.0
    magnitude = 0.0
    recent: List[str] = []
    for tok in tokens:
        surface = tok.lower_
        lemma = (tok.lemma_ or "").lower()
        weight = 0.0
        for form in (surface, lemma):
            if form in POSITIVE_LEXICON:
                weight = POSITIVE_LEXICON[form]
                break
            if form in NEGATIVE_LEXICON:
                weight = -NEGATIVE_LEXICON[form]
                break
        if weight:
            if any(w in NEGATIONS for w in recent[-NEGATION_WINDOW:]):
                weight = -weight
            total += weight
            magnitude += abs(weight)
        recent.append(surface)

    if magnitude == 0:
        return 0.0
    return max(-1.0, min(1.0, total / (magnitude + 1.0)))


class SpacyTextAnalyzer:
    """SentimentTagger + KeywordExtractor over one lazily loaded spaCy pipeline."""

    def __init__(self, model_name: str = "en_core_web_sm", max_keywords: int = 3,
                 nlp: Optional[Language] = None):
        self.model_name = model_name
        self.max_keywords = max_keywords
        self._nlp = nlp
        self._load_attempted = nlp is not None

    @property
    def nlp(self) -> Optional[Language]:
        if not self._load_attempted:
            self._load_attempted = True
            self._nlp = self._load_pipeline()
        return self._nlp

    def _load_pipeline(self) -> Optional[Language]:
        try:
            nlp = spacy.load(self.model_name, disable=["ner", "parser"])
            logger.debug(f"[TextAnalyzer] spaCy loaded: {self.model_name}")
            return nlp
        except OSError as e:
            logger.warning(f"[TextAnalyzer] spaCy model '{self.model_name}' unavailable ({e}); using blank tokenizer")
        try:
            return spacy.blank("en")
        except Exception as e:
            logger.error(f"[TextAnalyzer] spaCy could not build a pipeline: {e}")
            return None

    @property
    def available(self) -> bool:
        return self.nlp is not None

    @property
    def can_tag_nouns(self) -> bool:
        nlp = self.nlp
        return nlp is not None and ("tagger" in nlp.pipe_names or "morphologizer" in nlp.pipe_names)

    def sentiment(self, text: str) -> float:
        if not text or not text.strip() or self.nlp is None:
            return 0.0
        return score_tokens(self.nlp(text))

    def nouns(self, text: str) -> List[str]:
        """Up to `max_keywords` distinct noun lemmas, in order of first appearance."""
        if not text or not text.strip() or not self.can_tag_nouns:
            return []
        doc = self.nlp(text)
        seen: Dict[str, None] = {}
        for tok in doc:
            if tok.pos_ != "NOUN" or tok.is_stop or not tok.is_alpha:
                continue
            lemma = (tok.lemma_ or tok.text).lower()
            if len(lemma) < 3 or lemma in GENERIC_NOUNS:
                continue
            seen.setdefault(lemma, None)
            if len(seen) >= self.max_keywords:
                break
        return list(seen)
