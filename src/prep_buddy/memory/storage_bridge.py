from __future__ import annotations

import json
import sqlite3

from loguru import logger
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from prep_buddy.memory.models import SessionRecord
from prep_buddy.memory.store import KeyValueStore

DEFAULT_STORAGE_KEY = "chat-messages"

_WRITE_ATTEMPTS = 3


def _on_retry(retry_state) -> None:
    attempt = retry_state.attempt_number
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    reason = type(exc).__name__ if exc else "Unknown"
    logger.warning(f"{reason} while saving session. Retrying in {wait:.2f}s (attempt {attempt}/{_WRITE_ATTEMPTS})...")


class StorageBridge:
    """Transcodes the session record to and from a single key of the store.

    The bridge never raises: an unavailable store, a missing key, or a value
    that does not parse all load as the empty record, and failed writes are
    logged and dropped so the in-memory session stays authoritative.
    """

    def __init__(self, store: KeyValueStore | None, key: str = DEFAULT_STORAGE_KEY):
        self._store = store
        self._key = key

    @property
    def available(self) -> bool:
        return self._store is not None

    def load(self) -> SessionRecord:
        if self._store is None:
            return SessionRecord.empty()
        try:
            raw = self._store.get(self._key)
        except sqlite3.Error as ex:
            logger.warning(f"Failed to read session record {self._key!r}: {ex}")
            return SessionRecord.empty()
        if not raw:
            return SessionRecord.empty()

        try:
            return SessionRecord.from_dict(json.loads(raw))
        except (ValueError, RecursionError) as ex:
            # json.JSONDecodeError is a ValueError too
            logger.warning(f"Discarding unreadable session record {self._key!r}: {ex}")
            return SessionRecord.empty()

    def save(self, record: SessionRecord) -> None:
        if self._store is None:
            return
        try:
            payload = json.dumps(record.to_dict(), ensure_ascii=True)
            self._write(payload)
        except (TypeError, ValueError, sqlite3.Error) as ex:
            logger.error(f"Failed to save session record {self._key!r}: {ex}")

    # Saves run on the event loop, so retry waits block it; keep the window short (0.05s + 0.1s).
    @retry(
        retry=retry_if_exception_type(sqlite3.OperationalError),
        wait=wait_exponential(multiplier=0.05, min=0.05, max=0.1),
        stop=stop_after_attempt(_WRITE_ATTEMPTS),
        before_sleep=_on_retry,
        reraise=True,
    )
    def _write(self, payload: str) -> None:
        assert self._store is not None
        self._store.set(self._key, payload)
