"""Tests for LLM client adapters with mocked SDK clients."""

import pytest
from unittest.mock import Mock

from llm.anthropic_client import AnthropicClient
from llm.base_client import Message
from llm.factory import LLMProvider, create_llm_client
from llm.openai_client import OpenAIClient
from schemas.context import ContextSegment
from schemas.responses import StructuredReply

SCHEMA = StructuredReply.model_json_schema(by_alias=True)


def openai_response(content: str, annotations=None) -> Mock:
    message = Mock(content=content, annotations=annotations or [])
    choice = Mock(message=message, finish_reason="stop")
    return Mock(
        choices=[choice],
        usage=Mock(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


class TestOpenAIClient:
    """Test OpenAI request building and response parsing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = OpenAIClient(api_key="test-key")
        self.client.client = Mock()
        self.create = self.client.client.chat.completions.create

    def test_structured_output(self):
        self.create.return_value = openai_response('{"answer": "Hi", "recommendedProductIds": ["p1"]}')

        result = self.client.generate([ContextSegment.from_text("hello")], schema=SCHEMA, temperature=0.2)

        assert result.structured == {"answer": "Hi", "recommendedProductIds": ["p1"]}
        kwargs = self.create.call_args.kwargs
        assert kwargs["response_format"]["type"] == "json_schema"
        assert kwargs["temperature"] == 0.2
        assert kwargs["model"] == "gpt-4.1"
        assert result.usage["total_tokens"] == 15

    def test_search_uses_search_model_and_collects_citations(self):
        annotation = Mock(type="url_citation", url_citation=Mock(url="https://acme.com/p/1", title="P1"))
        self.create.return_value = openai_response("See the mouse.", [annotation])

        result = self.client.generate([ContextSegment.from_text("mouse")], search_augmented=True)

        kwargs = self.create.call_args.kwargs
        assert kwargs["model"] == OpenAIClient.DEFAULT_SEARCH_MODEL
        assert "temperature" not in kwargs
        assert kwargs["web_search_options"] == {}
        assert [c.uri for c in result.citations] == ["https://acme.com/p/1"]

    def test_messages_include_system_history_and_attachments(self):
        self.create.return_value = openai_response("ok")

        self.client.generate(
            [ContextSegment.from_text("look"),
             ContextSegment.from_attachment(b"\x89PNG", "image/png", "logo.png")],
            system_instruction="Be brief.",
            history=[Message(role="user", content="hi"), Message(role="assistant", content="hello")],
        )

        messages = self.create.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be brief."}
        assert [m["role"] for m in messages] == ["system", "user", "assistant", "user"]
        parts = messages[-1]["content"]
        assert parts[1]["type"] == "image_url"
        assert parts[1]["image_url"]["url"].startswith("data:image/png;base64,")

    def test_api_errors_propagate(self):
        self.create.side_effect = RuntimeError("rate limited")
        with pytest.raises(RuntimeError):
            self.client.generate([ContextSegment.from_text("hello")])

    def test_uninitialized_client(self):
        client = OpenAIClient(api_key=None)
        client.api_key = None
        client.client = None
        with pytest.raises(RuntimeError):
            client.generate([ContextSegment.from_text("hello")])


class TestAnthropicClient:
    """Test Anthropic request building and response parsing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.client = AnthropicClient(api_key="test-key")
        self.client.client = Mock()
        self.create = self.client.client.messages.create

    def response(self, blocks) -> Mock:
        return Mock(content=blocks, usage=Mock(input_tokens=7, output_tokens=3), stop_reason="end_turn")

    def test_structured_output_via_forced_tool(self):
        tool_block = Mock(type="tool_use", input={"answer": "Hi", "recommendedProductIds": []})
        tool_block.name = AnthropicClient.STRUCTURED_TOOL_NAME
        self.create.return_value = self.response([tool_block])

        result = self.client.generate([ContextSegment.from_text("hello")], schema=SCHEMA)

        assert result.structured == {"answer": "Hi", "recommendedProductIds": []}
        kwargs = self.create.call_args.kwargs
        assert kwargs["tool_choice"] == {"type": "tool", "name": AnthropicClient.STRUCTURED_TOOL_NAME}
        assert result.usage["total_tokens"] == 10

    def test_search_collects_citations(self):
        citation = Mock(type="web_search_result_location", url="https://acme.com/a", title="A")
        text_block = Mock(type="text", text="Found it.", citations=[citation])
        result_item = Mock(url="https://acme.com/b", title="B")
        search_block = Mock(type="web_search_tool_result", content=[result_item])
        self.create.return_value = self.response([search_block, text_block])

        result = self.client.generate([ContextSegment.from_text("a")], schema=SCHEMA, search_augmented=True)

        kwargs = self.create.call_args.kwargs
        assert kwargs["tool_choice"] == {"type": "auto"}
        assert kwargs["tools"][0]["type"] == "web_search_20250305"
        assert [c.uri for c in result.citations] == ["https://acme.com/b", "https://acme.com/a"]
        assert result.text == "Found it."

    def test_pdf_attachment_is_a_document_block(self):
        self.create.return_value = self.response([Mock(type="text", text="ok", citations=None)])

        self.client.generate([ContextSegment.from_attachment(b"%PDF", "application/pdf", "c.pdf")])

        content = self.create.call_args.kwargs["messages"][-1]["content"]
        assert content[0]["type"] == "document"

    def test_text_json_fallback(self):
        self.create.return_value = self.response(
            [Mock(type="text", text='Here: {"answer": "x"}', citations=None)]
        )

        result = self.client.generate([ContextSegment.from_text("a")], schema=SCHEMA, search_augmented=True)

        assert result.structured == {"answer": "x"}


class TestFactory:
    """Test client factory."""

    def test_creates_clients(self):
        assert isinstance(create_llm_client(LLMProvider.OPENAI, api_key="k"), OpenAIClient)
        assert isinstance(create_llm_client(LLMProvider.ANTHROPIC, api_key="k"), AnthropicClient)

    def test_search_model_override(self):
        client = create_llm_client(LLMProvider.ANTHROPIC, api_key="k", search_model="claude-x")
        assert client.search_model == "claude-x"
