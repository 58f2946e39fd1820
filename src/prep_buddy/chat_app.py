from __future__ import annotations

import asyncio
import contextlib
import signal

from loguru import logger

from prep_buddy.commands.router import CommandRouter
from prep_buddy.memory.models import duration_key
from prep_buddy.memory.session_store import (
    MessageValidationError,
    SessionBusyError,
    SessionStatus,
    SessionStore,
)
from prep_buddy.services.session_controller import SessionController


class ChatApp:
    """Terminal presentation layer: routes local commands and forwards text to the session."""

    LINE_PREFIX = "assistant> "
    USER_PROMPT = "you> "

    def __init__(self, session: SessionStore, *, handle_interrupts: bool = True):
        self._session = session
        self._handle_interrupts = handle_interrupts
        self._controller = SessionController(line_prefix=self.LINE_PREFIX, user_prefix=self.USER_PROMPT)
        self._command_router = CommandRouter(
            on_help=self._on_help,
            on_clear=self._on_clear,
            on_history=self._on_history,
            on_status=self._on_status,
            on_starter=self._on_starter,
            on_unknown=self._on_unknown_command,
        )

    def print_welcome(self) -> None:
        for line in self._controller.format_history_lines(self._session.messages, self._session.durations):
            print(line)
        if not self._session.has_conversation:
            for line in self._controller.format_starter_lines():
                print(line)

    async def run(self, user_input: str) -> None:
        if await self._command_router.try_handle(user_input):
            return
        await self._send(user_input)

    async def _send(self, text: str) -> None:
        print(self.LINE_PREFIX, end="", flush=True)
        try:
            with self._stop_on_interrupt():
                await self._session.send(text)
        except (MessageValidationError, SessionBusyError) as ex:
            print(str(ex))
            return
        print()
        self._print_turn_outcome()

    def _print_turn_outcome(self) -> None:
        status = self._session.status
        if status is SessionStatus.ERROR:
            print(f"{self.LINE_PREFIX}[Error: {self._session.last_error}. Send your message again to retry.]")
            return

        messages = self._session.messages
        last = messages[-1] if messages else None
        if last is None or last.role != "assistant":
            print(f"{self.LINE_PREFIX}[No reply]")
            return
        duration = self._session.durations.get(duration_key(last.id))
        if duration is not None:
            print(f"{self.LINE_PREFIX}[{self._controller.format_duration(duration)}]")
        else:
            print(f"{self.LINE_PREFIX}[Stopped]")

    @contextlib.contextmanager
    def _stop_on_interrupt(self):
        if not self._handle_interrupts:
            yield
            return
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self._session.stop)
            installed = True
        except (NotImplementedError, RuntimeError):
            installed = False  # Windows event loops and non-main threads
        try:
            yield
        finally:
            if installed:
                loop.remove_signal_handler(signal.SIGINT)

    async def _on_help(self) -> None:
        print(f"{self.LINE_PREFIX}Available commands:")
        print(f"{self.LINE_PREFIX}- /help")
        print(f"{self.LINE_PREFIX}- /clear")
        print(f"{self.LINE_PREFIX}- /history")
        print(f"{self.LINE_PREFIX}- /status")
        print(f"{self.LINE_PREFIX}- /starters")
        print(f"{self.LINE_PREFIX}- /starter <name> [more text]")
        print(f"{self.LINE_PREFIX}Press Ctrl-C while a reply is streaming to stop it.")

    async def _on_clear(self) -> None:
        self._session.clear()
        print(f"{self.LINE_PREFIX}Chat cleared")
        self.print_welcome()

    async def _on_history(self) -> None:
        for line in self._controller.format_history_lines(self._session.messages, self._session.durations):
            print(line)

    async def _on_status(self) -> None:
        storage = "enabled" if self._session.storage_available else "unavailable"
        print(
            f"{self.LINE_PREFIX}Status: {self._session.status.value} | "
            f"Messages: {len(self._session.messages)} | Storage: {storage}"
        )

    async def _on_starter(self, command: str) -> None:
        if command.split()[0] == "/starters":
            for line in self._controller.format_starter_lines():
                print(line)
            return
        prompt = self._controller.resolve_starter(command)
        if prompt is None:
            print(f"{self.LINE_PREFIX}Usage: /starter <name> [more text]")
            for line in self._controller.format_starter_lines():
                print(line)
            return
        logger.debug(f"Sending starter prompt: {prompt!r}")
        print(f"{self.USER_PROMPT}{prompt}")
        await self._send(prompt)

    def _on_unknown_command(self, trimmed: str) -> None:
        print(f"{self.LINE_PREFIX}Unknown local command: {trimmed}")
