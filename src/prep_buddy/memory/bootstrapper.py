from __future__ import annotations

from loguru import logger

from prep_buddy.memory.models import Message, new_welcome_message
from prep_buddy.memory.session_store import SessionStore


class WelcomeBootstrapper:
    """Seeds the welcome message the first time a session hydrates empty."""

    def __init__(self, store: SessionStore):
        self._store = store
        self._bootstrapped = False

    @property
    def bootstrapped(self) -> bool:
        return self._bootstrapped

    def run(self) -> Message | None:
        self._store.hydrate()
        if self._bootstrapped:
            return None
        self._bootstrapped = True

        if self._store.messages:
            return None

        welcome = new_welcome_message(self._store.welcome_text)
        if not self._store.seed(welcome):
            return None
        logger.info(f"Seeded welcome message {welcome.id}")
        return welcome
