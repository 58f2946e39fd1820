from collections.abc import AsyncIterator

import openai
from loguru import logger

from prep_buddy.memory.models import Message
from prep_buddy.providers.common import to_chat_turns


def _to_openai_messages(system_prompt: str, messages: list[Message]) -> list[dict]:
    """Prepend the directive as a system message to the flattened chat turns."""
    out: list[dict] = []
    if system_prompt:
        out.append({"role": "system", "content": system_prompt})
    out.extend(to_chat_turns(messages))
    return out


class OpenAIProvider:
    def __init__(self, api_key: str, *, model: str, max_tokens: int, temperature: float):
        self._client = openai.AsyncOpenAI(api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def stream_reply(self, system_prompt: str, messages: list[Message]) -> AsyncIterator[str]:
        """Stream content deltas of the assistant reply, in arrival order."""
        oai_messages = _to_openai_messages(system_prompt, messages)
        logger.debug(
            f"API request: model={self._model}, max_tokens={self._max_tokens}, messages={len(oai_messages)}"
        )
        stream = await self._client.chat.completions.create(
            model=self._model,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
            messages=oai_messages,
            stream=True,
        )

        finish_reason: str | None = None
        text_len = 0
        async for chunk in stream:
            choice = chunk.choices[0] if chunk.choices else None
            if choice is None:
                continue
            if choice.finish_reason:
                finish_reason = choice.finish_reason
            delta = choice.delta
            if delta is not None and delta.content:
                text_len += len(delta.content)
                yield delta.content

        logger.debug(f"API response: finish_reason={finish_reason}, text_len={text_len}")
