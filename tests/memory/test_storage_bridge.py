import json
import sqlite3
import time
import unittest

from prep_buddy.memory import Message, SessionRecord, StorageBridge, TextPart
from tests.memory.base import StorageTestCase


def _sample_record() -> SessionRecord:
    welcome = Message(id="welcome-1", role="assistant", parts=[TextPart("Hi there")])
    question = Message(id="msg-u1", role="user", parts=[TextPart("Who was selected at Acme? ✨")])
    answer = Message(id="msg-a1", role="assistant", parts=[TextPart("Let's look "), TextPart("it up.")])
    return SessionRecord(messages=[welcome, question, answer], durations={"msg-a1": 1532.5, "welcome-1": 0})


class StorageBridgeTests(StorageTestCase):
    def test_save_then_load_round_trips_record(self) -> None:
        record = _sample_record()
        self._bridge.save(record)
        self.assertEqual(record, self._bridge.load())

    def test_load_without_record_returns_empty(self) -> None:
        loaded = self._bridge.load()
        self.assertEqual([], loaded.messages)
        self.assertEqual({}, loaded.durations)

    def test_save_replaces_whole_record(self) -> None:
        self._bridge.save(_sample_record())
        replacement = SessionRecord(
            messages=[Message(id="welcome-2", role="assistant", parts=[TextPart("Fresh start")])],
            durations={},
        )
        self._bridge.save(replacement)
        self.assertEqual(replacement, self._bridge.load())

    def test_persisted_shape_is_messages_and_durations(self) -> None:
        self._bridge.save(_sample_record())
        stored = json.loads(self._kv.get("chat-messages"))
        self.assertEqual({"messages", "durations"}, set(stored))
        self.assertEqual(
            {"id": "msg-u1", "role": "user", "parts": [{"type": "text", "text": "Who was selected at Acme? ✨"}]},
            stored["messages"][1],
        )

    def test_unparseable_json_degrades_to_empty(self) -> None:
        self._kv.set("chat-messages", "{not json")
        self.assertEqual(SessionRecord.empty(), self._bridge.load())

    def test_deeply_nested_json_degrades_to_empty(self) -> None:
        self._kv.set("chat-messages", "[" * 100_000 + "]" * 100_000)
        self.assertEqual(SessionRecord.empty(), self._bridge.load())

    def test_wrong_shape_degrades_to_empty(self) -> None:
        bad_values = [
            json.dumps([]),
            json.dumps({"messages": [{"id": "x"}], "durations": {}}),
            json.dumps({"messages": [], "durations": {"a": -5}}),
            json.dumps({"messages": [{"id": "x", "role": "system", "parts": []}]}),
            json.dumps({"messages": "nope"}),
        ]
        for raw in bad_values:
            with self.subTest(raw=raw):
                self._kv.set("chat-messages", raw)
                self.assertEqual(SessionRecord.empty(), self._bridge.load())

    def test_missing_fields_default_to_empty(self) -> None:
        self._kv.set("chat-messages", json.dumps({}))
        self.assertEqual(SessionRecord.empty(), self._bridge.load())

    def test_records_are_isolated_by_key(self) -> None:
        other = StorageBridge(self._kv, key="other-chat")
        self._bridge.save(_sample_record())
        self.assertEqual(SessionRecord.empty(), other.load())

    def test_save_failure_is_swallowed(self) -> None:
        self._kv.close()
        self._bridge.save(_sample_record())
        self.assertEqual(SessionRecord.empty(), self._bridge.load())


class _FlakyStore:
    def __init__(self, failures: int):
        self._failures = failures
        self.set_calls = 0
        self.values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str) -> None:
        self.set_calls += 1
        if self.set_calls <= self._failures:
            raise sqlite3.OperationalError("database is locked")
        self.values[key] = value


class StorageBridgeResilienceTests(unittest.TestCase):
    def test_unavailable_storage_loads_empty_and_ignores_saves(self) -> None:
        bridge = StorageBridge(None)
        self.assertFalse(bridge.available)
        bridge.save(_sample_record())
        self.assertEqual(SessionRecord.empty(), bridge.load())

    def test_locked_database_write_is_retried(self) -> None:
        store = _FlakyStore(failures=1)
        bridge = StorageBridge(store)
        bridge.save(_sample_record())
        self.assertEqual(2, store.set_calls)
        self.assertEqual(_sample_record(), bridge.load())

    def test_persistent_lock_is_logged_not_raised(self) -> None:
        store = _FlakyStore(failures=10)
        bridge = StorageBridge(store)
        started = time.monotonic()
        bridge.save(_sample_record())
        self.assertLess(time.monotonic() - started, 0.5)
        self.assertEqual(3, store.set_calls)
        self.assertEqual(SessionRecord.empty(), bridge.load())


if __name__ == "__main__":
    unittest.main()
