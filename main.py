"""
# main.py

Module Contract
- Purpose: Command-line entry point. Builds the feedback pipeline from configuration, runs one generation
  (and optionally an entry classification) and prints the result as JSON.
- Inputs:
  - --rating N (1-10), --text T, --hint H (repeatable, most recent first), --seed S, --classify, --verbose
  - Environment / config/config.yaml via config.app_config
- Outputs:
  - JSON on stdout: {"feedback": {...}, "classification": {...}?}
- Key functions:
  - build_provider(), build_orchestrator(): wire the provider, analyzer and orchestrator from config
- Side effects:
  - Network calls to the configured generative backend when available; logging to console (and file if configured).
"""
import argparse
import asyncio
import json
import logging
import random
import sys
from typing import Optional

from utils.logging_utils import configure_logging, get_logger
from config.app_config import (
    API_BASE_URL,
    APP_TITLE,
    API_KEY,
    FALLBACK_SEED,
    GENERATIVE_ENABLED,
    LOG_FILE,
    LOG_LEVEL,
    MAX_KEYWORDS,
    MAX_TOKENS,
    MODEL_NAME,
    REQUEST_TIMEOUT_S,
    SPACY_MODEL,
    TEMPERATURE,
    TOP_P,
)
from core import EntryClassifier, FeedbackOrchestrator
from core.feedback_schema import FeedbackRequest
from models.model_provider import OpenAIModelProvider
from utils.text_analysis import SpacyTextAnalyzer

logger = get_logger("main")


def build_provider() -> OpenAIModelProvider:
    return OpenAIModelProvider(
        api_key=API_KEY,
        model=MODEL_NAME,
        base_url=API_BASE_URL,
        app_title=APP_TITLE,
        timeout=REQUEST_TIMEOUT_S,
        max_tokens=MAX_TOKENS,
        temperature=TEMPERATURE,
        top_p=TOP_P,
        enabled=GENERATIVE_ENABLED,
    )


def build_orchestrator(provider, seed: Optional[int] = None) -> FeedbackOrchestrator:
    analyzer = SpacyTextAnalyzer(model_name=SPACY_MODEL, max_keywords=MAX_KEYWORDS)
    seed = FALLBACK_SEED if seed is None else seed
    return FeedbackOrchestrator(provider=provider, analyzer=analyzer, rng=random.Random(seed))


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate companion feedback for a journal entry.")
    parser.add_argument("--rating", type=int, required=True, help="Mood rating from 1 to 10")
    parser.add_argument("--text", default=None, help="Journal entry text")
    parser.add_argument("--hint", action="append", default=[], dest="hints",
                        help="A previous response to avoid repeating (most recent first; repeatable)")
    parser.add_argument("--seed", type=int, default=None, help="Seed for fallback template selection")
    parser.add_argument("--classify", action="store_true", help="Also classify mood category and focus area")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> dict:
    provider = build_provider()
    try:
        orchestrator = build_orchestrator(provider, seed=args.seed)
        request = FeedbackRequest(rating=args.rating, text=args.text, recent_hints=args.hints)
        output = {"feedback": (await orchestrator.generate(request)).to_dict()}
        if args.classify:
            classifier = EntryClassifier(provider)
            output["classification"] = (await classifier.classify(args.text, request.rating)).to_dict()
        return output
    finally:
        await provider.aclose()


def main(argv=None) -> int:
    args = parse_args(argv)
    level = logging.DEBUG if args.verbose else getattr(logging, LOG_LEVEL, logging.INFO)
    configure_logging(level=level, file_path=LOG_FILE)
    output = asyncio.run(run(args))
    print(json.dumps(output, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
