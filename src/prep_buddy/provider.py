from collections.abc import AsyncIterator
from typing import Protocol, runtime_checkable

from prep_buddy.memory.models import Message


@runtime_checkable
class CompletionClient(Protocol):
    def stream_reply(
        self,
        system_prompt: str,
        messages: list[Message],
    ) -> AsyncIterator[str]:
        """Stream the assistant reply to the conversation as ordered text fragments.

        Raises whatever the backend raises; the stream ends when the reply is complete.
        """
        ...


def create_provider(
    provider_name: str,
    api_key: str,
    *,
    model: str,
    max_tokens: int,
    temperature: float,
) -> CompletionClient:
    """Factory: create a CompletionClient by name."""
    name = provider_name.strip().lower()
    if name == "anthropic":
        from prep_buddy.providers.anthropic_provider import AnthropicProvider
        return AnthropicProvider(api_key, model=model, max_tokens=max_tokens, temperature=temperature)
    if name == "openai":
        from prep_buddy.providers.openai_provider import OpenAIProvider
        return OpenAIProvider(api_key, model=model, max_tokens=max_tokens, temperature=temperature)
    raise ValueError(f"Unknown provider: {provider_name!r}. Supported: 'anthropic', 'openai'")
