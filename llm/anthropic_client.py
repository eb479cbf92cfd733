"""Anthropic Claude LLM client implementation."""

import os
import logging
from typing import Optional, List, Dict, Any

from schemas.context import ContextSegment, SegmentKind
from schemas.profile import Citation
from utils.json_payload import extract_json_object
from .attachments import attachment_to_text, is_image, is_pdf, to_base64
from .base_client import BaseLLMClient, Message, GenerationResult

logger = logging.getLogger(__name__)


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    DEFAULT_MODEL = "claude-sonnet-4-20250514"
    STRUCTURED_TOOL_NAME = "emit_structured_output"
    WEB_SEARCH_TOOL = {
        "type": "web_search_20250305",
        "name": "web_search",
        "max_uses": 5,
    }

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        search_model: Optional[str] = None
    ):
        """
        Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (falls back to ANTHROPIC_API_KEY env var)
            model: Model to use (default: claude-sonnet-4-20250514)
            search_model: Model used when web search is requested (default: same as model)
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.search_model = search_model or self.model
        self.client = None

        if self.api_key:
            try:
                import anthropic
                self.client = anthropic.Anthropic(api_key=self.api_key)
                logger.info(f"Anthropic client initialized with model: {self.model}")
            except ImportError:
                logger.error("anthropic package not installed. Run: pip install anthropic")
        else:
            logger.warning("No Anthropic API key provided")

    def _build_content(self, parts: List[ContextSegment]) -> List[Dict[str, Any]]:
        """Convert prompt segments to Anthropic content blocks."""
        blocks = []
        for part in parts:
            if part.kind == SegmentKind.TEXT:
                if part.text:
                    blocks.append({"type": "text", "text": part.text})
            elif is_image(part.mime_type):
                blocks.append({
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": part.mime_type,
                        "data": to_base64(part),
                    }
                })
            elif is_pdf(part.mime_type):
                blocks.append({
                    "type": "document",
                    "source": {
                        "type": "base64",
                        "media_type": "application/pdf",
                        "data": to_base64(part),
                    }
                })
            else:
                blocks.append({"type": "text", "text": attachment_to_text(part)})
        return blocks

    def generate(
        self,
        parts: List[ContextSegment],
        schema: Optional[Dict[str, Any]] = None,
        search_augmented: bool = False,
        temperature: float = 0.7,
        system_instruction: Optional[str] = None,
        history: Optional[List[Message]] = None,
        max_tokens: int = 4000
    ) -> GenerationResult:
        """Send a messages request to Anthropic."""
        if not self.client:
            raise RuntimeError("Anthropic client not initialized. Check API key.")

        conversation_messages = [
            {"role": msg.role, "content": msg.content}
            for msg in history or []
        ]
        conversation_messages.append({"role": "user", "content": self._build_content(parts)})

        kwargs = {
            "model": self.search_model if search_augmented else self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": conversation_messages,
        }

        if system_instruction:
            kwargs["system"] = system_instruction

        tools = []
        if search_augmented:
            tools.append(dict(self.WEB_SEARCH_TOOL))
        if schema:
            tools.append({
                "name": self.STRUCTURED_TOOL_NAME,
                "description": "Return the final answer using this structure.",
                "input_schema": schema,
            })
            # A forced tool choice would prevent the search tool from running first
            if search_augmented:
                kwargs["tool_choice"] = {"type": "auto"}
            else:
                kwargs["tool_choice"] = {"type": "tool", "name": self.STRUCTURED_TOOL_NAME}
        if tools:
            kwargs["tools"] = tools

        try:
            response = self.client.messages.create(**kwargs)

            content = ""
            structured = None
            citations = []

            for block in response.content:
                if block.type == "text":
                    content += block.text
                    for ref in getattr(block, "citations", None) or []:
                        if getattr(ref, "type", None) == "web_search_result_location":
                            citations.append(Citation.from_uri(ref.url, getattr(ref, "title", None)))
                elif block.type == "tool_use" and block.name == self.STRUCTURED_TOOL_NAME:
                    structured = block.input
                elif block.type == "web_search_tool_result":
                    results = block.content if isinstance(block.content, list) else []
                    for result in results:
                        url = getattr(result, "url", None)
                        if url:
                            citations.append(Citation.from_uri(url, getattr(result, "title", None)))

            if schema and structured is None and content:
                structured = extract_json_object(content) or None

            usage = None
            if response.usage:
                usage = {
                    "prompt_tokens": response.usage.input_tokens,
                    "completion_tokens": response.usage.output_tokens,
                    "total_tokens": response.usage.input_tokens + response.usage.output_tokens,
                }

            return GenerationResult(
                text=content,
                structured=structured,
                citations=citations,
                usage=usage,
                finish_reason=response.stop_reason
            )

        except Exception as e:
            logger.error(f"Anthropic API error: {e}")
            raise

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "anthropic"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
