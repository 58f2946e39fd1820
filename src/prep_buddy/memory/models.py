from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from uuid import uuid4

ROLES = ("user", "assistant")


@dataclass(frozen=True)
class TextPart:
    text: str
    type: str = "text"

    def to_dict(self) -> dict:
        return {"type": self.type, "text": self.text}


@dataclass
class Message:
    id: str
    role: str
    parts: list[TextPart] = field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(id=f"msg-{uuid4().hex}", role="user", parts=[TextPart(text)])

    @classmethod
    def assistant(cls, text: str = "") -> Message:
        return cls(id=f"msg-{uuid4().hex}", role="assistant", parts=[TextPart(text)])

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts)

    def append_text(self, fragment: str) -> None:
        """Grow the last text part in place (used while streaming)."""
        if not self.parts:
            self.parts.append(TextPart(fragment))
            return
        self.parts[-1] = TextPart(self.parts[-1].text + fragment)

    def copy(self) -> Message:
        return Message(id=self.id, role=self.role, parts=list(self.parts))

    def to_dict(self) -> dict:
        return {"id": self.id, "role": self.role, "parts": [p.to_dict() for p in self.parts]}

    @classmethod
    def from_dict(cls, data: object) -> Message:
        if not isinstance(data, dict):
            raise ValueError(f"Message must be an object, got {type(data).__name__}")
        message_id = data.get("id")
        role = data.get("role")
        raw_parts = data.get("parts")
        if not isinstance(message_id, str) or not message_id:
            raise ValueError("Message id must be a non-empty string")
        if role not in ROLES:
            raise ValueError(f"Unsupported message role: {role!r}")
        if not isinstance(raw_parts, list):
            raise ValueError(f"Message {message_id} has no parts list")

        parts: list[TextPart] = []
        for raw in raw_parts:
            if not isinstance(raw, dict) or raw.get("type") != "text" or not isinstance(raw.get("text"), str):
                raise ValueError(f"Message {message_id} has a malformed part: {raw!r}")
            parts.append(TextPart(raw["text"]))
        return cls(id=message_id, role=role, parts=parts)


def new_welcome_message(text: str) -> Message:
    # Timestamped like the original ids; the hex suffix keeps two clears in the same millisecond apart.
    millis = int(time.time() * 1000)
    return Message(id=f"welcome-{millis}-{uuid4().hex[:8]}", role="assistant", parts=[TextPart(text)])


def duration_key(message_id: str) -> str:
    return message_id


def is_valid_duration(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value >= 0


@dataclass
class SessionRecord:
    messages: list[Message] = field(default_factory=list)
    durations: dict[str, float] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> SessionRecord:
        return cls()

    def to_dict(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "durations": dict(self.durations),
        }

    @classmethod
    def from_dict(cls, data: object) -> SessionRecord:
        if not isinstance(data, dict):
            raise ValueError(f"Session record must be an object, got {type(data).__name__}")
        raw_messages = data.get("messages", [])
        raw_durations = data.get("durations", {})
        if not isinstance(raw_messages, list):
            raise ValueError("Session record 'messages' must be a list")
        if not isinstance(raw_durations, dict):
            raise ValueError("Session record 'durations' must be an object")

        messages = [Message.from_dict(m) for m in raw_messages]
        durations: dict[str, float] = {}
        for key, value in raw_durations.items():
            if not is_valid_duration(value):
                raise ValueError(f"Invalid duration for {key!r}: {value!r}")
            durations[key] = value
        return cls(messages=messages, durations=durations)
