"""Context ingestion and catalog retrieval."""

from .context_ingestor import ContextIngestor
from .inventory_index import InventoryIndex, normalize_text
from .search_rules import SearchRules, ExclusionRule

__all__ = [
    "ContextIngestor",
    "InventoryIndex",
    "normalize_text",
    "SearchRules",
    "ExclusionRule",
]
