"""
core/session_manager.py

Owns a single long-lived session with the generative backend.

The session is created lazily on first use with the fixed persona string and cached
until reset_session() is called (recovery after a systemic failure or a backend
upgrade). Creation and reset are serialized by an asyncio.Lock so two concurrent
callers never build two sessions. The lifetime owner is whoever constructs the
manager; FeedbackOrchestrator builds one per instance.
"""

import asyncio
from typing import Optional

from models.model_provider import ModelProvider, Session
from utils.logging_utils import get_logger

logger = get_logger("session_manager")


class SessionManager:
    def __init__(self, provider: ModelProvider, instructions: str):
        self.provider = provider
        self.instructions = instructions
        self._session: Optional[Session] = None
        self._lock = asyncio.Lock()
        self.sessions_created = 0

    @property
    def has_session(self) -> bool:
        return self._session is not None

    async def get_session(self) -> Session:
        if self._session is not None:
            return self._session
        async with self._lock:
            # Another caller may have built it while we waited
            if self._session is None:
                self._session = self.provider.create_session(self.instructions)
                self.sessions_created += 1
                logger.debug(f"[SessionManager] Created session #{self.sessions_created}")
            return self._session

    async def reset_session(self) -> None:
        async with self._lock:
            if self._session is not None:
                logger.info("[SessionManager] Discarding cached session")
            self._session = None
