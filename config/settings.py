"""Application settings."""

import os
from typing import Optional
from pydantic import BaseModel


class Settings(BaseModel):
    """Application configuration settings."""

    # LLM Provider settings
    llm_provider: str = "openai"  # "openai" or "anthropic"
    llm_model: Optional[str] = None  # Override default model
    search_model: Optional[str] = None  # Model used for search-augmented calls

    # API Keys
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Persistence
    db_path: str = "data/agent_console.db"
    blob_dir: str = "data/blobs"
    autosave_delay_seconds: float = 1.0

    # Localization
    default_language: str = "en"  # "en" or "es"

    # Profile synthesis
    synthesis_strategy: str = "structured"  # "structured" or "two_phase"
    synthesis_max_attempts: int = 3
    synthesis_backoff_seconds: float = 2.0
    synthesis_temperature: float = 0.1

    # Ingestion
    fetch_url_content: bool = False
    url_fetch_timeout: int = 10
    max_ingestion_workers: int = 4

    # Chat resolution
    response_strategy: str = "structured"  # "structured" or "text_scrubbing"
    live_search_enabled: bool = True
    sparse_memory_threshold: int = 2  # Fewer memory hits than this triggers live search
    max_search_results: int = 5
    max_product_cards: int = 6
    chat_temperature: float = 0.4

    # Rule tables
    search_rules_path: Optional[str] = None
    escalation_triggers_path: Optional[str] = None

    # Embed widget
    widget_script_url: str = "https://cdn.brandagent.chat/widget/v1/bundle.js"

    # Logging
    verbose: bool = False

    def __init__(self, **data):
        # Auto-load API keys from environment if not provided
        if "openai_api_key" not in data or data["openai_api_key"] is None:
            data["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

        if "anthropic_api_key" not in data or data["anthropic_api_key"] is None:
            data["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

        super().__init__(**data)

    def get_llm_api_key(self) -> Optional[str]:
        """Get the API key for the configured LLM provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        elif self.llm_provider == "anthropic":
            return self.anthropic_api_key
        return None
