"""
# models/model_provider.py

Module Contract
- Purpose: Capability interface over the generative backend. One shape everywhere: is_available(), create_session(instructions), session.respond(prompt).
- Implementations:
  - OpenAIModelProvider: OpenAI-compatible chat completions (OpenRouter by default) over a tuned httpx client.
  - UnavailableModelProvider: stub for environments without a generative backend; always unavailable.
- Outputs:
  - Raw completion text from Session.respond (async).
- Errors:
  - ModelUnavailableError from create_session when the provider cannot serve.
  - GenerationError from Session.respond on any invocation failure.
- Side effects:
  - Maintains an HTTP client; exposes aclose() to release it.
"""
from typing import Optional, Protocol

import httpx
from openai import AsyncOpenAI, OpenAIError

from core.feedback_schema import AvailabilityState
from utils.logging_utils import get_logger, log_async_operation

logger = get_logger("model_provider")


class ModelUnavailableError(RuntimeError):
    """Raised when a session is requested from a provider that cannot serve."""


class GenerationError(RuntimeError):
    """Raised when a generative call fails (transport, API or empty completion)."""


class Session(Protocol):
    instructions: str

    async def respond(self, prompt: str) -> str:
        ...


class ModelProvider(Protocol):
    def is_available(self) -> AvailabilityState:
        ...

    def create_session(self, instructions: str) -> Session:
        ...


class ChatSession:
    """A conversational handle bound to one fixed system instruction string."""

    def __init__(self, client: AsyncOpenAI, model: str, instructions: str,
                 max_tokens: int, temperature: float, top_p: float):
        self.client = client
        self.model = model
        self.instructions = instructions
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p

    @log_async_operation
    async def respond(self, prompt: str) -> str:
        messages = [
            {"role": "system", "content": self.instructions},
            {"role": "user", "content": prompt},
        ]
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                top_p=self.top_p,
                stream=False,
            )
        except (OpenAIError, httpx.HTTPError) as e:
            raise GenerationError(f"{type(e).__name__}: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError) as e:
            raise GenerationError(f"Malformed completion: {e}") from e
        if not content or not content.strip():
            raise GenerationError("Empty completion")
        return content.strip()


class OpenAIModelProvider:
    """Generative backend reached through an OpenAI-compatible chat API."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 30.0,
        max_tokens: int = 220,
        temperature: float = 0.8,
        top_p: float = 0.95,
        enabled: bool = True,
        app_title: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or ""
        self.model = model
        self.base_url = base_url
        self.enabled = enabled
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p
        self.app_title = app_title or ""

        if client is not None:
            self.async_client = client
        elif self.enabled and self.api_key:
            async_http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(timeout),
                limits=httpx.Limits(max_connections=20, max_keepalive_connections=5),
                headers={"Connection": "keep-alive"},
            )
            self.async_client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                http_client=async_http_client,
                default_headers={"X-Title": self.app_title} if self.app_title else None,
            )
        else:
            # Disabled or no key: operate in offline mode
            self.async_client = None

    def is_available(self) -> AvailabilityState:
        if not self.enabled:
            return AvailabilityState.unavailable("feature disabled")
        if self.async_client is None:
            return AvailabilityState.unavailable("no API key configured")
        if not self.model:
            return AvailabilityState.unavailable("model not ready")
        return AvailabilityState.ready()

    def create_session(self, instructions: str) -> ChatSession:
        state = self.is_available()
        if not state.available:
            raise ModelUnavailableError(state.reason)
        logger.debug(f"[OpenAIModelProvider] New session for model {self.model}")
        return ChatSession(
            client=self.async_client,
            model=self.model,
            instructions=instructions,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
        )

    async def aclose(self):
        if self.async_client is not None:
            await self.async_client.close()


class UnavailableModelProvider:
    """Provider for runtimes with no generative backend at all."""

    def __init__(self, reason: str = "unsupported runtime"):
        self.reason = reason

    def is_available(self) -> AvailabilityState:
        return AvailabilityState.unavailable(self.reason)

    def create_session(self, instructions: str) -> Session:
        raise ModelUnavailableError(self.reason)

    async def aclose(self):
        return None
