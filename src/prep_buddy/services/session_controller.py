from __future__ import annotations

from prep_buddy.memory.models import Message, duration_key

STARTER_PROMPTS = {
    "prep": "Help me prepare for a company interview",
    "selected": "Who was selected at ",
    "general": "I have a general question about placements",
}


class SessionController:
    def __init__(self, *, line_prefix: str, user_prefix: str):
        self._line_prefix = line_prefix
        self._user_prefix = user_prefix

    def format_duration(self, duration_ms: float) -> str:
        seconds = duration_ms / 1000
        if seconds < 60:
            return f"Thought for {seconds:.1f}s"
        minutes, rest = divmod(int(round(seconds)), 60)
        return f"Thought for {minutes}m {rest}s"

    def format_message_lines(self, message: Message, durations: dict[str, float]) -> list[str]:
        prefix = self._user_prefix if message.role == "user" else self._line_prefix
        text = message.text or "(no content)"
        lines = [f"{prefix}{text}"]
        duration = durations.get(duration_key(message.id))
        if message.role == "assistant" and duration is not None:
            lines.append(f"{self._line_prefix}[{self.format_duration(duration)}]")
        return lines

    def format_history_lines(self, messages: list[Message], durations: dict[str, float]) -> list[str]:
        lines: list[str] = []
        for message in messages:
            lines.extend(self.format_message_lines(message, durations))
        return lines

    def format_starter_lines(self) -> list[str]:
        lines = [f"{self._line_prefix}Try one of these (/starter <name> [more text]):"]
        for name, prompt in STARTER_PROMPTS.items():
            lines.append(f"{self._line_prefix}- {name}: {prompt.strip()}")
        return lines

    def resolve_starter(self, command: str) -> str | None:
        """Map '/starter <name> [extra text]' to the prompt text to send."""
        parts = command.split(maxsplit=2)
        if len(parts) < 2:
            return None
        prompt = STARTER_PROMPTS.get(parts[1].lower())
        if prompt is None:
            return None
        extra = parts[2] if len(parts) == 3 else ""
        if prompt.endswith(" "):
            return (prompt + extra).strip()
        return f"{prompt} {extra}".strip()
