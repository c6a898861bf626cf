"""Tests for FeedbackOrchestrator: generative path, every fallback path, and the in-flight guard."""
import asyncio
import json
import random

import pytest

from core.feedback_schema import AvailabilityState, Emotion, FeedbackRequest
from core.fallback_engine import GENERIC_TOPIC
from core.orchestrator import FeedbackOrchestrator, InFlightGuard
from core.prompt_builder import FEEDBACK_SYSTEM_PROMPT
from models.model_provider import GenerationError, ModelUnavailableError


class FakeSession:
    def __init__(self, instructions, replies):
        self.instructions = instructions
        self.replies = replies
        self.prompts = []

    async def respond(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0) if self.replies else json.dumps(
            {"text": "Default reply.", "emotionHint": "supportive", "tags": []})
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            return await reply()
        return reply


class FakeProvider:
    """Scriptable provider: queue replies (strings, exceptions or coroutine factories)."""

    def __init__(self, available=True, reason=None, replies=None, create_error=None):
        self.state = AvailabilityState.ready() if available else AvailabilityState.unavailable(reason)
        self.replies = list(replies or [])
        self.create_error = create_error
        self.sessions = []

    def is_available(self):
        return self.state

    def create_session(self, instructions):
        if self.create_error:
            raise self.create_error
        session = FakeSession(instructions, self.replies)
        self.sessions.append(session)
        return session


class RecordingAnalyzer:
    def __init__(self, sentiment=0.0, nouns=None):
        self._sentiment = sentiment
        self._nouns = nouns or []
        self.texts = []

    def sentiment(self, text):
        self.texts.append(text)
        return self._sentiment

    def nouns(self, text):
        self.texts.append(text)
        return list(self._nouns)


def reply(text, hint="supportive", tags=None):
    return json.dumps({"text": text, "emotionHint": hint, "tags": tags or []})


def make_orchestrator(provider, analyzer=None, **kwargs):
    return FeedbackOrchestrator(provider=provider, analyzer=analyzer or RecordingAnalyzer(),
                                rng=random.Random(3), **kwargs)


# =============================================================================
# Generative path
# =============================================================================

@pytest.mark.asyncio
async def test_generative_success():
    provider = FakeProvider(replies=[reply("What a calm evening. Try a short stretch before bed.", "supportive")])
    orchestrator = make_orchestrator(provider)

    result = await orchestrator.generate(FeedbackRequest(rating=6, text="Quiet evening reading"))

    assert result.used_generative_model is True
    assert result.text == "What a calm evening. Try a short stretch before bed."
    assert result.emotion == Emotion.SUPPORTIVE
    assert result.fallback_reason is None


@pytest.mark.asyncio
async def test_session_uses_persona_and_is_reused():
    provider = FakeProvider(replies=[reply("One."), reply("Two.")])
    orchestrator = make_orchestrator(provider)

    await orchestrator.generate(FeedbackRequest(rating=5))
    await orchestrator.generate(FeedbackRequest(rating=5))

    assert len(provider.sessions) == 1
    assert provider.sessions[0].instructions == FEEDBACK_SYSTEM_PROMPT
    assert len(provider.sessions[0].prompts) == 2


@pytest.mark.asyncio
async def test_prompt_carries_bounded_hints():
    provider = FakeProvider(replies=[reply("Nice.")])
    orchestrator = make_orchestrator(provider)
    hints = [f"previous-{i} " + "z" * 400 for i in range(6)]

    await orchestrator.generate(FeedbackRequest(rating=7, text="Good day", recent_hints=hints))

    prompt = provider.sessions[0].prompts[0]
    assert "User's emotion rating: 7/10" in prompt
    assert '"Good day"' in prompt
    assert "previous-0" in prompt and "previous-2" in prompt
    assert "previous-3" not in prompt
    assert "z" * 151 not in prompt


@pytest.mark.asyncio
async def test_malformed_json_is_recovered():
    provider = FakeProvider(replies=['{"text": "You kept going today.", "emotionHint": "enc'])
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=6))

    assert result.used_generative_model is True
    assert result.text == "You kept going today."
    assert result.emotion == Emotion.SUPPORTIVE


@pytest.mark.asyncio
async def test_markdown_is_stripped_from_model_text():
    provider = FakeProvider(replies=[reply("## Lovely\n---\nKeep it up!", "happy")])
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=9))
    assert "#" not in result.text
    assert "---" not in result.text


# =============================================================================
# Fallback paths
# =============================================================================

@pytest.mark.asyncio
async def test_unavailable_falls_back_without_session():
    provider = FakeProvider(available=False, reason="feature disabled")
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=9))

    assert result.used_generative_model is False
    assert result.fallback_reason == "feature disabled"
    assert result.emotion == Emotion.HAPPY
    assert GENERIC_TOPIC in result.text
    assert provider.sessions == []


@pytest.mark.asyncio
async def test_low_rating_fallback_personalized():
    provider = FakeProvider(available=False, reason="no API key configured")
    analyzer = RecordingAnalyzer(sentiment=-0.4, nouns=["job", "interview"])
    result = await make_orchestrator(provider, analyzer).generate(
        FeedbackRequest(rating=3, text="My job interview went badly"))

    assert result.emotion == Emotion.CONCERNED
    assert "job" in result.text
    assert result.used_generative_model is False


@pytest.mark.asyncio
async def test_invocation_error_falls_back_and_resets_session():
    provider = FakeProvider(replies=[GenerationError("APIConnectionError: refused"), reply("Back online.")])
    orchestrator = make_orchestrator(provider)

    first = await orchestrator.generate(FeedbackRequest(rating=5, text="meh"))
    assert first.used_generative_model is False
    assert first.fallback_reason.startswith("invocation failed")
    assert orchestrator.session_manager.has_session is False

    second = await orchestrator.generate(FeedbackRequest(rating=5, text="meh"))
    assert second.used_generative_model is True
    assert len(provider.sessions) == 2


@pytest.mark.asyncio
async def test_timeout_falls_back():
    async def never_finishes():
        await asyncio.sleep(5)
        return reply("too late")

    provider = FakeProvider(replies=[never_finishes])
    orchestrator = make_orchestrator(provider, generation_timeout=0.01)

    result = await orchestrator.generate(FeedbackRequest(rating=6))

    assert result.used_generative_model is False
    assert result.fallback_reason == "generation timed out"
    assert orchestrator.session_manager.has_session is False


@pytest.mark.asyncio
async def test_unparseable_reply_falls_back():
    provider = FakeProvider(replies=["---\n###"])
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=6))

    assert result.used_generative_model is False
    assert result.fallback_reason.startswith("unparseable response")


@pytest.mark.asyncio
async def test_session_creation_failure_falls_back():
    provider = FakeProvider(create_error=ModelUnavailableError("model not ready"))
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=6))

    assert result.used_generative_model is False
    assert result.fallback_reason == "model not ready"


@pytest.mark.asyncio
async def test_unexpected_error_still_returns_result():
    provider = FakeProvider(replies=[KeyError("surprise")])
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=6))

    assert result.used_generative_model is False
    assert result.fallback_reason.startswith("unexpected error: KeyError")
    assert result.text


@pytest.mark.asyncio
async def test_fallback_ignores_recent_hints():
    provider = FakeProvider(available=False, reason="feature disabled")
    analyzer = RecordingAnalyzer()
    await make_orchestrator(provider, analyzer).generate(
        FeedbackRequest(rating=5, text="entry text", recent_hints=["old reply one", "old reply two"]))

    assert analyzer.texts
    assert all(t == "entry text" for t in analyzer.texts)


# =============================================================================
# Celebratory clamp
# =============================================================================

@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [8, 9, 10])
@pytest.mark.parametrize("hint", ["concerned", "thinking", "sleeping", "neutral", "supportive", "whatever"])
async def test_high_ratings_always_celebrate_generative(rating, hint):
    provider = FakeProvider(replies=[reply("Some words.", hint)])
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=rating))
    assert result.emotion in (Emotion.HAPPY, Emotion.PROUD)


@pytest.mark.asyncio
@pytest.mark.parametrize("rating", [8, 9, 10])
async def test_high_ratings_always_celebrate_fallback(rating):
    provider = FakeProvider(available=False, reason="feature disabled")
    analyzer = RecordingAnalyzer(sentiment=-1.0)
    result = await make_orchestrator(provider, analyzer).generate(
        FeedbackRequest(rating=rating, text="awful awful awful"))
    assert result.emotion in (Emotion.HAPPY, Emotion.PROUD)


@pytest.mark.asyncio
async def test_hint_respected_below_threshold():
    provider = FakeProvider(replies=[reply("Take it slow.", "concerned")])
    result = await make_orchestrator(provider).generate(FeedbackRequest(rating=7))
    assert result.emotion == Emotion.CONCERNED


# =============================================================================
# InFlightGuard
# =============================================================================

@pytest.mark.asyncio
async def test_guard_rejects_second_call_while_busy():
    release = asyncio.Event()

    async def slow_reply():
        await release.wait()
        return reply("Finally.")

    provider = FakeProvider(replies=[slow_reply])
    orchestrator = make_orchestrator(provider)
    guard = InFlightGuard()

    first = asyncio.create_task(guard.run(orchestrator, FeedbackRequest(rating=6)))
    while not guard.in_flight:
        await asyncio.sleep(0)

    second = await guard.run(orchestrator, FeedbackRequest(rating=6))
    assert second.busy is True
    assert second.result is None

    release.set()
    outcome = await first
    assert outcome.busy is False
    assert outcome.result.text == "Finally."
    assert guard.in_flight is False


@pytest.mark.asyncio
async def test_guard_releases_after_each_call():
    provider = FakeProvider(replies=[reply("A."), reply("B.")])
    orchestrator = make_orchestrator(provider)
    guard = InFlightGuard()

    a = await guard.run(orchestrator, FeedbackRequest(rating=5))
    b = await guard.run(orchestrator, FeedbackRequest(rating=5))
    assert (a.busy, b.busy) == (False, False)
    assert (a.result.text, b.result.text) == ("A.", "B.")
