import asyncio
import unittest
from types import SimpleNamespace

from prep_buddy.memory import Message, TextPart
from prep_buddy.providers.anthropic_provider import AnthropicProvider


class _FakeStreamContext:
    def __init__(self, events: list[object], final_message: object):
        self._events = events
        self._final_message = final_message

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    def __aiter__(self):
        self._iter = iter(self._events)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration

    async def get_final_message(self):
        return self._final_message


class _FakeMessages:
    def __init__(self, stream_ctx: _FakeStreamContext):
        self._stream_ctx = stream_ctx
        self.kwargs: dict | None = None

    def stream(self, **kwargs):
        self.kwargs = kwargs
        return self._stream_ctx


class _FakeClient:
    def __init__(self, stream_ctx: _FakeStreamContext):
        self.messages = _FakeMessages(stream_ctx)


def _text_delta(text: str) -> SimpleNamespace:
    return SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="text_delta", text=text))


_FINAL = SimpleNamespace(
    stop_reason="end_turn",
    usage=SimpleNamespace(input_tokens=10, output_tokens=5),
    content=[SimpleNamespace(type="text", text="Hello there")],
)


class AnthropicProviderStreamTests(unittest.TestCase):
    def _make_provider(self, stream_ctx: _FakeStreamContext) -> AnthropicProvider:
        provider = AnthropicProvider.__new__(AnthropicProvider)
        provider._client = _FakeClient(stream_ctx)
        provider._model = "m"
        provider._max_tokens = 100
        provider._temperature = 0.5
        return provider

    def _collect(self, provider: AnthropicProvider, messages: list[Message]) -> list[str]:
        async def scenario() -> list[str]:
            return [fragment async for fragment in provider.stream_reply("sys", messages)]

        return asyncio.run(scenario())

    def test_stream_reply_yields_text_deltas_in_order(self) -> None:
        events = [
            SimpleNamespace(type="message_start"),
            _text_delta("Hello"),
            SimpleNamespace(type="content_block_delta", delta=SimpleNamespace(type="input_json_delta")),
            _text_delta(" there"),
        ]
        provider = self._make_provider(_FakeStreamContext(events, _FINAL))

        fragments = self._collect(provider, [Message(id="u1", role="user", parts=[TextPart("hi")])])

        self.assertEqual(["Hello", " there"], fragments)

    def test_request_carries_directive_and_user_first_history(self) -> None:
        provider = self._make_provider(_FakeStreamContext([], _FINAL))
        history = [
            Message(id="welcome-1", role="assistant", parts=[TextPart("Welcome!")]),
            Message(id="u1", role="user", parts=[TextPart("Help me prep")]),
        ]

        self.assertEqual([], self._collect(provider, history))

        kwargs = provider._client.messages.kwargs
        self.assertEqual("sys", kwargs["system"])
        self.assertEqual("m", kwargs["model"])
        self.assertEqual([{"role": "user", "content": "Help me prep"}], kwargs["messages"])


if __name__ == "__main__":
    unittest.main()
