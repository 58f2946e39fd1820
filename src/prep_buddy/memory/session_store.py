from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

from loguru import logger

from prep_buddy.memory.models import (
    Message,
    SessionRecord,
    duration_key,
    is_valid_duration,
    new_welcome_message,
)
from prep_buddy.memory.storage_bridge import StorageBridge

if TYPE_CHECKING:
    from prep_buddy.provider import CompletionClient

MAX_MESSAGE_CHARS = 2000


class SessionStatus(str, Enum):
    IDLE = "idle"
    SUBMITTED = "submitted"
    STREAMING = "streaming"
    READY = "ready"
    ERROR = "error"


class SessionPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    HYDRATED = "hydrated"


_BUSY = (SessionStatus.SUBMITTED, SessionStatus.STREAMING)


class MessageValidationError(ValueError):
    pass


class SessionBusyError(RuntimeError):
    pass


def validate_message_text(text: str, max_chars: int = MAX_MESSAGE_CHARS) -> str:
    trimmed = (text or "").strip()
    if not trimmed:
        raise MessageValidationError("Message cannot be empty.")
    if len(trimmed) > max_chars:
        raise MessageValidationError(f"Message must be at most {max_chars} characters.")
    return trimmed


class SessionStore:
    """Owns the live conversation, its generation durations and the send status.

    Nothing is written to storage until ``hydrate()`` has run once, so an early
    mutation can never overwrite the persisted record with an empty one.
    """

    def __init__(
        self,
        bridge: StorageBridge,
        client: CompletionClient,
        *,
        system_prompt_factory: Callable[[], str],
        welcome_text: str,
        max_message_chars: int = MAX_MESSAGE_CHARS,
        persist_every_fragments: int = 20,
        on_fragment: Callable[[str], None] | None = None,
        on_status_change: Callable[[SessionStatus], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._bridge = bridge
        self._client = client
        self._system_prompt_factory = system_prompt_factory
        self._welcome_text = welcome_text
        self._max_message_chars = max_message_chars
        self._persist_every_fragments = max(0, persist_every_fragments)
        self._on_fragment = on_fragment
        self._on_status_change = on_status_change
        self._clock = clock
        self._storage_available = bridge.available

        self._phase = SessionPhase.UNINITIALIZED
        self._status = SessionStatus.IDLE
        self._messages: list[Message] = []
        self._durations: dict[str, float] = {}
        self._last_error: str | None = None
        self._turn_task: asyncio.Task | None = None

    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def messages(self) -> list[Message]:
        return [m.copy() for m in self._messages]

    @property
    def durations(self) -> dict[str, float]:
        return dict(self._durations)

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def storage_available(self) -> bool:
        return self._storage_available

    @property
    def welcome_text(self) -> str:
        return self._welcome_text

    @property
    def has_conversation(self) -> bool:
        """True once the user has said something, not just the welcome message."""
        if len(self._messages) > 1:
            return True
        return len(self._messages) == 1 and self._messages[0].role == "user"

    def snapshot(self) -> SessionRecord:
        return SessionRecord(messages=self.messages, durations=self.durations)

    def hydrate(self) -> bool:
        if self._phase is SessionPhase.HYDRATED:
            logger.debug("Session already hydrated; ignoring repeated hydration")
            return False

        record = self._bridge.load()
        self._messages = list(record.messages)
        self._durations = dict(record.durations)
        self._phase = SessionPhase.HYDRATED
        logger.info(
            f"Hydrated session: {len(self._messages)} message(s), {len(self._durations)} duration(s)"
            + ("" if self._storage_available else " (storage unavailable)")
        )
        return True

    def seed(self, message: Message) -> bool:
        if self._phase is not SessionPhase.HYDRATED or self._messages:
            return False
        self._messages.append(message)
        self._persist()
        return True

    async def send(self, text: str) -> None:
        trimmed = validate_message_text(text, self._max_message_chars)
        if self._status in _BUSY:
            raise SessionBusyError(f"Cannot send while the previous reply is {self._status.value}")

        self._last_error = None
        self._messages.append(Message.user(trimmed))
        self._set_status(SessionStatus.SUBMITTED)
        self._persist()

        history = [m.copy() for m in self._messages]
        system_prompt = self._system_prompt_factory()
        task = asyncio.create_task(self._stream_reply(system_prompt, history))
        self._turn_task = task
        try:
            await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                # Our caller was cancelled, not the turn: finalize before propagating.
                self.stop()
                raise
            if self._status in _BUSY:
                # Nobody called stop(): the client cancelled its own stream.
                logger.error("Completion stream was cancelled by the client")
                self._last_error = "Reply was cancelled"
                self._set_status(SessionStatus.ERROR)
                self._persist()
        finally:
            if self._turn_task is task:
                self._turn_task = None

    def stop(self) -> bool:
        if self._status not in _BUSY:
            return False
        task = self._turn_task
        if task is not None and not task.done():
            task.cancel()
        self._set_status(SessionStatus.READY)
        self._persist()
        logger.info("Reply stopped; keeping partial content")
        return True

    def clear(self) -> bool:
        self.stop()
        self._messages = [new_welcome_message(self._welcome_text)]
        self._durations = {}
        self._last_error = None
        self._set_status(SessionStatus.IDLE)
        self._persist()
        logger.info("Chat cleared")
        return True

    def record_duration(self, key: str, duration_ms: float) -> None:
        if not is_valid_duration(duration_ms):
            raise ValueError(f"Duration must be a non-negative number of milliseconds, got {duration_ms!r}")
        known_keys = {duration_key(m.id) for m in self._messages if m.role == "assistant"}
        if key not in known_keys:
            raise ValueError(f"Unknown generation key: {key!r}")
        self._durations[key] = duration_ms
        self._persist()

    async def _stream_reply(self, system_prompt: str, history: list[Message]) -> None:
        started = self._clock()
        assistant: Message | None = None
        fragments = 0

        try:
            async for fragment in self._client.stream_reply(system_prompt, history):
                if not fragment:
                    continue
                if assistant is None:
                    assistant = Message.assistant(fragment)
                    self._messages.append(assistant)
                    self._set_status(SessionStatus.STREAMING)
                    self._persist()
                else:
                    assistant.append_text(fragment)
                fragments += 1
                if self._on_fragment is not None:
                    self._on_fragment(fragment)
                if self._persist_every_fragments and fragments % self._persist_every_fragments == 0:
                    self._persist()
        except Exception as ex:
            logger.error(f"Completion stream failed after {fragments} fragment(s): {ex}")
            self._last_error = str(ex) or type(ex).__name__
            self._set_status(SessionStatus.ERROR)
            self._persist()
            return

        self._set_status(SessionStatus.READY)
        if assistant is None:
            logger.warning("Completion stream ended without any content")
            self._persist()
            return

        elapsed_ms = round((self._clock() - started) * 1000)
        logger.debug(f"Reply {assistant.id} completed: {fragments} fragment(s) in {elapsed_ms} ms")
        self.record_duration(duration_key(assistant.id), elapsed_ms)

    def _set_status(self, status: SessionStatus) -> None:
        if status is self._status:
            return
        logger.debug(f"Session status {self._status.value} -> {status.value}")
        self._status = status
        if self._on_status_change is not None:
            self._on_status_change(status)

    def _persist(self) -> None:
        if self._phase is not SessionPhase.HYDRATED:
            logger.debug("Skipping session save before hydration")
            return
        if not self._storage_available:
            return
        self._bridge.save(SessionRecord(messages=self._messages, durations=self._durations))
