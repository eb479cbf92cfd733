"""Base LLM client interface."""

from abc import ABC, abstractmethod
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from schemas.context import ContextSegment
from schemas.profile import Citation


class Message(BaseModel):
    """Chat message."""
    role: str  # "user" or "assistant"
    content: str


class GenerationResult(BaseModel):
    """Response from the generative backend."""
    text: str = ""
    structured: Optional[Dict[str, Any]] = None
    citations: List[Citation] = Field(default_factory=list)
    usage: Optional[Dict[str, int]] = None
    finish_reason: Optional[str] = None


class BaseLLMClient(ABC):
    """Abstract base class for LLM clients."""

    @abstractmethod
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
        """
        Generate a response for a prompt made of text and attachments.

        Args:
            parts: Ordered prompt segments for the final user message
            schema: Optional JSON schema the output must follow
            search_augmented: Allow the backend to ground on live web search
            temperature: Sampling temperature (0-1)
            system_instruction: Optional system prompt
            history: Previous conversation messages
            max_tokens: Maximum tokens in response

        Returns:
            GenerationResult with text, optional structured payload and citations
        """
        pass

    @abstractmethod
    def get_provider_name(self) -> str:
        """Get the name of the LLM provider."""
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the model being used."""
        pass
