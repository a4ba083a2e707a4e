"""Tests for LLMOrchestrator routing, streaming and history assembly."""

from contextlib import aclosing

import pytest

from chatbroker.core.config import Settings
from chatbroker.services.llm.exceptions import (
    ProviderUnavailableError,
    StreamFault,
    UnsupportedModelError,
)
from chatbroker.services.llm.models import ChatMessage, MessageRole, Provider
from chatbroker.services.llm.orchestrator import LLMOrchestrator
from chatbroker.services.llm.registry import ProviderSet

from conftest import (
    InMemoryStore,
    StubProvider,
    alternating_turns,
    anthropic_event,
    openai_chunk,
)

MESSAGES = [ChatMessage(role=MessageRole.USER, content="Hi")]


def _orchestrator(**adapters) -> LLMOrchestrator:
    return LLMOrchestrator(
        ProviderSet(adapters={Provider(name): adapter for name, adapter in adapters.items()})
    )


async def _drain(deltas):
    async with aclosing(deltas) as stream:
        return [delta async for delta in stream]


class TestRouting:
    def test_unknown_model_fails_on_call(self):
        orchestrator = _orchestrator(openai=StubProvider(Provider.OPENAI, []))
        with pytest.raises(UnsupportedModelError):
            orchestrator.stream_chat("llama-3-70b", MESSAGES)

    def test_missing_provider_fails_on_call(self):
        openai_stub = StubProvider(Provider.OPENAI, [])
        orchestrator = _orchestrator(openai=openai_stub)

        with pytest.raises(ProviderUnavailableError) as exc_info:
            orchestrator.stream_chat("claude-3-haiku-20240307", MESSAGES)

        err = exc_info.value
        assert err.provider == "anthropic"
        assert err.model == "claude-3-haiku-20240307"
        assert err.available_providers == ["openai"]
        assert openai_stub.calls == []

    @pytest.mark.asyncio
    async def test_full_completion_errors_match_streaming(self):
        orchestrator = _orchestrator(anthropic=StubProvider(Provider.ANTHROPIC, []))
        with pytest.raises(UnsupportedModelError):
            await orchestrator.get_chat_completion("llama-3-70b", MESSAGES)
        with pytest.raises(ProviderUnavailableError):
            await orchestrator.get_chat_completion("gpt-4o", MESSAGES)

    @pytest.mark.asyncio
    async def test_prefix_inferred_model_is_sent_verbatim(self):
        stub = StubProvider(Provider.ANTHROPIC, [anthropic_event("ok")])
        orchestrator = _orchestrator(anthropic=stub)

        await _drain(orchestrator.stream_chat("claude-4-experimental", MESSAGES))

        assert stub.calls[0]["model"] == "claude-4-experimental"

    def test_from_settings_builds_configured_providers(self):
        orchestrator = LLMOrchestrator.from_settings(
            Settings(openai_api_key="sk-test", anthropic_api_key="")
        )
        assert orchestrator.providers.available == [Provider.OPENAI]
        assert orchestrator.history.summarizer.provider is orchestrator.providers.get(Provider.OPENAI)


class TestStreaming:
    @pytest.mark.asyncio
    async def test_yields_only_text_deltas_in_order(self):
        chunks = [
            {"choices": [{"delta": {"role": "assistant"}}]},
            openai_chunk("Hel"),
            {"unexpected": True},
            openai_chunk("lo"),
        ]
        orchestrator = _orchestrator(openai=StubProvider(Provider.OPENAI, chunks))

        assert await _drain(orchestrator.stream_chat("gpt-4o", MESSAGES)) == ["Hel", "lo"]

    @pytest.mark.asyncio
    async def test_stream_and_full_completion_agree(self):
        chunks = [openai_chunk("The "), openai_chunk(""), openai_chunk("answer"), {"noise": 1}]
        orchestrator = _orchestrator(openai=StubProvider(Provider.OPENAI, chunks))

        streamed = "".join(await _drain(orchestrator.stream_chat("gpt-4o", MESSAGES)))
        full = await orchestrator.get_chat_completion("gpt-4o", MESSAGES)

        assert streamed == full == "The answer"

    @pytest.mark.asyncio
    async def test_fault_arrives_after_partial_output(self):
        fault = StreamFault("anthropic", "claude-3-haiku-20240307", "overloaded")
        stub = StubProvider(Provider.ANTHROPIC, [anthropic_event("par"), anthropic_event("tial")], error=fault)
        orchestrator = _orchestrator(anthropic=stub)

        received = []
        with pytest.raises(StreamFault):
            async with aclosing(orchestrator.stream_chat("claude-3-haiku-20240307", MESSAGES)) as deltas:
                async for delta in deltas:
                    received.append(delta)

        assert received == ["par", "tial"]
        assert stub.streams[0].closed

    @pytest.mark.asyncio
    async def test_full_completion_is_all_or_nothing(self):
        fault = StreamFault("openai", "gpt-4o", "reset")
        orchestrator = _orchestrator(openai=StubProvider(Provider.OPENAI, [openai_chunk("half")], error=fault))

        with pytest.raises(StreamFault):
            await orchestrator.get_chat_completion("gpt-4o", MESSAGES)

    @pytest.mark.asyncio
    async def test_consumer_stopping_early_closes_vendor_stream(self):
        stub = StubProvider(Provider.OPENAI, [openai_chunk(c) for c in "abcdef"])
        orchestrator = _orchestrator(openai=stub)

        async with aclosing(orchestrator.stream_chat("gpt-4o", MESSAGES)) as deltas:
            async for delta in deltas:
                assert delta == "a"
                break

        assert stub.streams[0].closed


class TestCatalogAndHistory:
    def test_available_models_only_lists_initialized_providers(self):
        orchestrator = _orchestrator(anthropic=StubProvider(Provider.ANTHROPIC, []))
        available = orchestrator.get_available_models()

        assert list(available) == [Provider.ANTHROPIC]
        assert "claude-3-opus-20240229" in available[Provider.ANTHROPIC]

    @pytest.mark.asyncio
    async def test_get_message_history_summarizes_long_conversations(self):
        summarizer_stub = StubProvider(Provider.OPENAI, [openai_chunk("- they said hi")])
        orchestrator = _orchestrator(openai=summarizer_stub)
        store = InMemoryStore()
        store.add_conversation("c1", turns=alternating_turns(25))

        history = await orchestrator.get_message_history(store, "c1")

        assert len(history) == 21
        assert history[0].role == MessageRole.SYSTEM
        assert history[0].content == "Summary of previous conversation: \n- they said hi"
        assert summarizer_stub.calls[0]["model"] == "gpt-4o-mini"
