"""Tests for the fixed-model conversation summarizer."""

import pytest

from chatbroker.services.llm.exceptions import SummarizationUnavailableError, StreamFault
from chatbroker.services.llm.models import ChatMessage, MessageRole, Provider
from chatbroker.services.llm.summarizer import (
    RESOURCE_PLACEHOLDER,
    SUMMARIZATION_MODEL,
    SUMMARY_INSTRUCTION,
    Summarizer,
    build_transcript,
    scrub_resources,
)

from conftest import StubProvider, openai_chunk


def _msg(role, content):
    return ChatMessage(role=MessageRole(role), content=content)


class TestScrubResources:
    def test_markdown_image(self):
        assert scrub_resources("look ![chart](http://x/y.png) here") == f"look {RESOURCE_PLACEHOLDER} here"

    def test_html_image(self):
        assert scrub_resources('<img src="a.png" alt="a">done') == f"{RESOURCE_PLACEHOLDER}done"

    def test_base64_data_uri(self):
        text = "raw data:image/png;base64,iVBORw0KGgo= end"
        assert scrub_resources(text) == f"raw {RESOURCE_PLACEHOLDER} end"

    def test_attachment_marker(self):
        assert scrub_resources("see [attachment: report.pdf]") == f"see {RESOURCE_PLACEHOLDER}"

    def test_plain_text_untouched(self):
        text = "no [links](here) or pictures"
        assert scrub_resources(text) == text


def test_build_transcript_labels_roles_and_scrubs():
    transcript = build_transcript([
        _msg("user", "what is ![img](http://x/y.png)?"),
        _msg("assistant", "a graph"),
    ])
    assert transcript == f"user: what is {RESOURCE_PLACEHOLDER}?\n\nassistant: a graph"


class TestSummarizer:
    @pytest.mark.asyncio
    async def test_uses_fixed_model_and_scrubbed_transcript(self):
        stub = StubProvider(Provider.OPENAI, [openai_chunk("- "), openai_chunk("asked about a chart")])
        summarizer = Summarizer(stub)

        summary = await summarizer.summarize([
            _msg("user", "explain ![alt](http://x/y.png)"),
            _msg("assistant", "It shows growth."),
        ])

        assert summary == "- asked about a chart"
        call = stub.calls[0]
        assert call["model"] == SUMMARIZATION_MODEL == "gpt-4o-mini"
        assert call["options"].max_tokens == 500
        assert call["options"].temperature == 0.3

        system, user = call["messages"]
        assert system.role == MessageRole.SYSTEM
        assert system.content == SUMMARY_INSTRUCTION
        assert user.role == MessageRole.USER
        assert user.content.startswith("Please summarize the following conversation in bullet points:\n\n")
        assert "http://x/y.png" not in user.content
        assert RESOURCE_PLACEHOLDER in user.content
        assert "assistant: It shows growth." in user.content

    @pytest.mark.asyncio
    async def test_custom_limits_are_forwarded(self):
        stub = StubProvider(Provider.OPENAI, [openai_chunk("-")])
        await Summarizer(stub).summarize([_msg("user", "hi")], max_tokens=100, temperature=0.0)

        assert stub.calls[0]["options"].max_tokens == 100
        assert stub.calls[0]["options"].temperature == 0.0

    @pytest.mark.asyncio
    async def test_missing_provider_raises(self):
        with pytest.raises(SummarizationUnavailableError) as exc_info:
            await Summarizer(None).summarize([_msg("user", "hi")])

        assert exc_info.value.provider == "openai"
        assert exc_info.value.model == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_provider_fault_propagates(self):
        fault = StreamFault("openai", "gpt-4o-mini", "timeout")
        stub = StubProvider(Provider.OPENAI, [openai_chunk("- partial")], error=fault)

        with pytest.raises(StreamFault):
            await Summarizer(stub).summarize([_msg("user", "hi")])
