from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_clear: Callable[[], Awaitable[None]],
        on_history: Callable[[], Awaitable[None]],
        on_status: Callable[[], Awaitable[None]],
        on_starter: Callable[[str], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_clear = on_clear
        self._on_history = on_history
        self._on_status = on_status
        self._on_starter = on_starter
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        if trimmed == "/help":
            await self._on_help()
            return True
        if trimmed == "/clear":
            await self._on_clear()
            return True
        if trimmed == "/history":
            await self._on_history()
            return True
        if trimmed == "/status":
            await self._on_status()
            return True
        if trimmed.startswith("/starter"):
            await self._on_starter(trimmed)
            return True

        self._on_unknown(trimmed)
        return True
