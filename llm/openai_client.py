"""OpenAI LLM client implementation."""

import os
import logging
from typing import Optional, List, Dict, Any

from schemas.context import ContextSegment, SegmentKind
from schemas.profile import Citation
from utils.json_payload import extract_json_object
from .attachments import attachment_to_text, is_image, is_pdf, to_data_url
from .base_client import BaseLLMClient, Message, GenerationResult

logger = logging.getLogger(__name__)


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client implementation."""

    DEFAULT_MODEL = "gpt-4.1"
    DEFAULT_SEARCH_MODEL = "gpt-4o-search-preview"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        search_model: Optional[str] = None
    ):
        """
        Initialize OpenAI client.

        Args:
            api_key: OpenAI API key (falls back to OPENAI_API_KEY env var)
            model: Model to use (default: gpt-4.1)
            search_model: Model used when web search is requested
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or self.DEFAULT_MODEL
        self.search_model = search_model or self.DEFAULT_SEARCH_MODEL
        self.client = None

        if self.api_key:
            try:
                from openai import OpenAI
                self.client = OpenAI(api_key=self.api_key)
                logger.info(f"OpenAI client initialized with model: {self.model}")
            except ImportError:
                logger.error("openai package not installed. Run: pip install openai")
        else:
            logger.warning("No OpenAI API key provided")

    def _build_content(self, parts: List[ContextSegment]) -> List[Dict[str, Any]]:
        """Convert prompt segments to OpenAI content parts."""
        content = []
        for part in parts:
            if part.kind == SegmentKind.TEXT:
                content.append({"type": "text", "text": part.text or ""})
            elif is_image(part.mime_type):
                content.append({
                    "type": "image_url",
                    "image_url": {"url": to_data_url(part)}
                })
            elif is_pdf(part.mime_type):
                content.append({
                    "type": "file",
                    "file": {
                        "filename": part.file_name or "document.pdf",
                        "file_data": to_data_url(part),
                    }
                })
            else:
                content.append({"type": "text", "text": attachment_to_text(part)})
        return content

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
        """Send chat completion request to OpenAI."""
        if not self.client:
            raise RuntimeError("OpenAI client not initialized. Check API key.")

        openai_messages = []
        if system_instruction:
            openai_messages.append({"role": "system", "content": system_instruction})
        for msg in history or []:
            openai_messages.append({"role": msg.role, "content": msg.content})
        openai_messages.append({"role": "user", "content": self._build_content(parts)})

        kwargs = {
            "model": self.search_model if search_augmented else self.model,
            "messages": openai_messages,
            "max_completion_tokens": max_tokens,
        }

        # Search models reject sampling parameters
        if search_augmented:
            kwargs["web_search_options"] = {}
        else:
            kwargs["temperature"] = temperature

        if schema:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {"name": "structured_output", "schema": schema},
            }

        try:
            response = self.client.chat.completions.create(**kwargs)

            choice = response.choices[0]
            content = choice.message.content or ""

            structured = None
            if schema and content:
                structured = extract_json_object(content) or None

            citations = []
            for annotation in getattr(choice.message, "annotations", None) or []:
                if getattr(annotation, "type", None) != "url_citation":
                    continue
                ref = annotation.url_citation
                citations.append(Citation.from_uri(ref.url, getattr(ref, "title", None)))

            usage = None
            if response.usage:
                usage = {
                    "prompt_tokens": response.usage.prompt_tokens,
                    "completion_tokens": response.usage.completion_tokens,
                    "total_tokens": response.usage.total_tokens,
                }

            return GenerationResult(
                text=content,
                structured=structured,
                citations=citations,
                usage=usage,
                finish_reason=choice.finish_reason
            )

        except Exception as e:
            logger.error(f"OpenAI API error: {e}")
            raise

    def get_provider_name(self) -> str:
        """Get the provider name."""
        return "openai"

    def get_model_name(self) -> str:
        """Get the model name."""
        return self.model
