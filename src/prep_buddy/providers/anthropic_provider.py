from collections.abc import AsyncIterator

import anthropic
from loguru import logger

from prep_buddy.memory.models import Message
from prep_buddy.providers.common import to_chat_turns


class AnthropicProvider:
    def __init__(self, api_key: str, *, model: str, max_tokens: int, temperature: float):
        self._client = anthropic.AsyncAnthropic(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def stream_reply(self, system_prompt: str, messages: list[Message]) -> AsyncIterator[str]:
        """Stream text deltas of the assistant reply, in arrival order."""
        turns = to_chat_turns(messages)
        logger.debug(
            f"API request: model={self._model}, max_tokens={self._max_tokens}, messages={len(turns)}"
        )
        async with self._client.messages.stream(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            system=system_prompt,
            messages=turns,
        ) as stream:
            async for event in stream:
                if event.type == "content_block_delta" and event.delta.type == "text_delta":
                    yield event.delta.text

            response = await stream.get_final_message()

        usage = response.usage
        logger.debug(
            f"API response: stop_reason={response.stop_reason}, "
            f"input_tokens={usage.input_tokens}, output_tokens={usage.output_tokens}"
        )
