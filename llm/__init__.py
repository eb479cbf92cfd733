"""LLM client abstraction layer."""

from .base_client import BaseLLMClient, Message, GenerationResult
from .factory import create_llm_client, LLMProvider

__all__ = [
    "BaseLLMClient",
    "Message",
    "GenerationResult",
    "create_llm_client",
    "LLMProvider",
]
