from __future__ import annotations

from prep_buddy.memory.models import Message


def to_chat_turns(messages: list[Message]) -> list[dict]:
    """Flatten messages into role/content turns accepted by chat APIs.

    Chat APIs expect the first turn to come from the user, so the leading
    welcome message (and any other leading assistant text) is dropped, as are
    messages left empty by a reply stopped before its first fragment.
    """
    turns: list[dict] = []
    for message in messages:
        text = message.text
        if not text.strip():
            continue
        if not turns and message.role != "user":
            continue
        turns.append({"role": message.role, "content": text})
    return turns
