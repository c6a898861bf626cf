"""
# core/orchestrator.py

Module Contract
- Purpose: Public facade of the feedback pipeline. Sequences availability → prompt → session → generative call → parse → emotion mapping, and degrades to the local fallback engine on any failure.
- Inputs:
  - generate(request: FeedbackRequest)
  - Wired collaborators: ModelProvider (via AvailabilityProbe and SessionManager), PromptBuilder, ResponseParser, EmotionMapper, FallbackEngine
- Outputs:
  - FeedbackResult(text, emotion, used_generative_model, fallback_reason); never raises.
- Behavior:
  - Single pass, no retries. Invocation errors, timeouts and total parse failures all fall back.
  - After an invocation failure the cached session is discarded so the next call recreates it.
  - The fallback emotion is already clamp-consistent and is not re-mapped.
- Concurrency:
  - InFlightGuard gives callers an explicit single-slot guard: a second call while one is in flight returns busy instead of queuing.
- Side effects:
  - Logging only; nothing is persisted.
"""
import asyncio
import random
from dataclasses import dataclass
from typing import Optional

from config.app_config import GENERATION_TIMEOUT_S
from core.availability import AvailabilityProbe
from core.emotion_mapper import EmotionMapper
from core.fallback_engine import FallbackEngine
from core.feedback_schema import FeedbackRequest, FeedbackResult
from core.prompt_builder import PromptBuilder
from core.response_parser import ResponseParser, ResponseParseError
from core.session_manager import SessionManager
from models.model_provider import ModelProvider, GenerationError, ModelUnavailableError
from utils.logging_utils import get_logger, log_and_time, preview_text
from utils.text_analysis import TextAnalyzer

logger = get_logger("orchestrator")


class FeedbackOrchestrator:
    """Best-effort feedback generation with a guaranteed local backstop."""

    def __init__(
        self,
        provider: ModelProvider,
        analyzer: TextAnalyzer,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
        mapper: Optional[EmotionMapper] = None,
        fallback_engine: Optional[FallbackEngine] = None,
        rng: Optional[random.Random] = None,
        generation_timeout: Optional[float] = GENERATION_TIMEOUT_S,
    ):
        self.provider = provider
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.parser = parser or ResponseParser()
        self.mapper = mapper or EmotionMapper()
        self.fallback_engine = fallback_engine or FallbackEngine(analyzer, rng=rng, mapper=self.mapper)
        self.probe = AvailabilityProbe(provider)
        self.session_manager = SessionManager(provider, self.prompt_builder.system_prompt)
        self.generation_timeout = generation_timeout

    async def _respond(self, prompt: str) -> str:
        session = await self.session_manager.get_session()
        call = session.respond(prompt)
        if self.generation_timeout and self.generation_timeout > 0:
            return await asyncio.wait_for(call, timeout=self.generation_timeout)
        return await call

    async def _generate_with_model(self, request: FeedbackRequest) -> FeedbackResult:
        prompt = self.prompt_builder.build(request.rating, request.text, request.recent_hints)
        try:
            raw = await self._respond(prompt)
        except (GenerationError, asyncio.TimeoutError):
            # Recreate the session on the next call; no retry within this one
            await self.session_manager.reset_session()
            raise

        parsed = self.parser.parse(raw)
        emotion = self.mapper.resolve(parsed.emotion_hint, request.rating)
        return FeedbackResult(text=parsed.text, emotion=emotion, used_generative_model=True)

    def _fallback(self, request: FeedbackRequest, reason: str) -> FeedbackResult:
        feedback = self.fallback_engine.generate(request.rating, request.text)
        return FeedbackResult(
            text=feedback.text,
            emotion=feedback.emotion,
            used_generative_model=False,
            fallback_reason=reason,
        )

    @log_and_time("Feedback Generate")
    async def generate(self, request: FeedbackRequest) -> FeedbackResult:
        logger.debug(
            f"[Orchestrator] rating={request.rating} hints={len(request.recent_hints)} "
            f"entry=\"{preview_text(request.text)}\""
        )

        state = self.probe.is_available()
        if not state.available:
            return self._fallback(request, state.reason or "unavailable")

        try:
            result = await self._generate_with_model(request)
            logger.debug(f"[Orchestrator] Generative feedback ready (emotion={result.emotion.value})")
            return result
        except asyncio.TimeoutError:
            reason = "generation timed out"
        except ModelUnavailableError as e:
            reason = str(e) or "model not ready"
        except GenerationError as e:
            reason = f"invocation failed: {e}"
        except ResponseParseError as e:
            reason = f"unparseable response: {e}"
        except Exception as e:
            reason = f"unexpected error: {type(e).__name__}: {e}"
            logger.exception("[Orchestrator] Unexpected failure in generative tier")

        logger.warning(f"[Orchestrator] Falling back to local feedback ({reason})")
        return self._fallback(request, reason)


@dataclass
class GuardedOutcome:
    busy: bool
    result: Optional[FeedbackResult] = None


class InFlightGuard:
    """At most one generation in flight per logical context; extra calls are rejected, not queued."""

    def __init__(self):
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def run(self, orchestrator: FeedbackOrchestrator, request: FeedbackRequest) -> GuardedOutcome:
        if self._in_flight:
            logger.info("[InFlightGuard] Generation already in flight; rejecting request")
            return GuardedOutcome(busy=True)
        self._in_flight = True
        try:
            return GuardedOutcome(busy=False, result=await orchestrator.generate(request))
        finally:
            self._in_flight = False
