"""Curated search and grounding rule tables loaded from YAML."""

import re
import yaml
from pathlib import Path
from urllib.parse import unquote
from typing import List, Optional
from pydantic import BaseModel, Field

DEFAULT_RULES_PATH = Path(__file__).parent.parent / "config" / "search_rules.yaml"


def keyword_pattern(keyword: str) -> re.Pattern:
    """Match keyword at the start of a word ("funda" also hits "fundas")."""
    return re.compile(r"(?<!\w)" + re.escape(keyword.lower()))


def phrase_pattern(phrase: str) -> re.Pattern:
    """Match a whole word or phrase only ("roto" does not hit "rotor")."""
    return re.compile(r"(?<!\w)" + re.escape(phrase.lower()) + r"(?!\w)")


def path_segments(path: str) -> List[str]:
    """Lowercased url path and query segments without file extensions."""
    parts = re.split(r"[/?&=#;]", unquote(path or "").lower())
    return [part.split(".")[0] for part in parts if part]


class ExclusionRule(BaseModel):
    """Suppress accessory names when the query asks for a primary item."""
    name: str
    intents: List[str] = Field(default_factory=list)
    excluded: List[str] = Field(default_factory=list)

    def applies_to(self, normalized_query: str) -> bool:
        return any(keyword_pattern(i).search(normalized_query) for i in self.intents)

    def excludes(self, normalized_name: str) -> bool:
        return any(keyword_pattern(k).search(normalized_name) for k in self.excluded)


class SearchRules(BaseModel):
    """
    Replaceable heuristics shared by search and grounding.

    The default table is a small curated list, not a taxonomy. Inject a
    different instance (or YAML file) for catalogs it does not fit.
    """
    exclusion_rules: List[ExclusionRule] = Field(default_factory=list)
    placeholder_tokens: List[str] = Field(default_factory=list)
    blocked_path_patterns: List[str] = Field(default_factory=list)
    category_url_patterns: List[str] = Field(default_factory=list)
    product_url_patterns: List[str] = Field(default_factory=list)
    price_pattern: str = r"(\d+[.,]\d{2})\s?€"

    @classmethod
    def from_yaml(cls, path: Optional[str] = None) -> "SearchRules":
        """Load rules from YAML (defaults to config/search_rules.yaml)."""
        path = Path(path) if path else DEFAULT_RULES_PATH
        with open(path, "r", encoding="utf-8") as f:
            return cls.model_validate(yaml.safe_load(f) or {})

    def active_exclusions(self, normalized_query: str) -> List[ExclusionRule]:
        """Rules whose intents appear in the query."""
        return [r for r in self.exclusion_rules if r.applies_to(normalized_query)]

    def find_price(self, text: str) -> Optional[str]:
        match = re.search(self.price_pattern, text or "")
        return match.group(0).strip() if match else None

    def blocked_path_pattern(self, path: str) -> Optional[str]:
        """
        Return the denylist entry a url path hits, if any.

        An entry matches a whole segment, or a segment it starts with
        followed by "-" or "_". Slugs that merely contain the word pass.
        """
        segments = path_segments(path)
        for pattern in self.blocked_path_patterns:
            entry = pattern.lower().strip("/")
            for segment in segments:
                if segment == entry or segment.startswith((entry + "-", entry + "_")):
                    return pattern
        return None
