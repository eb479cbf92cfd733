"""In-memory inventory index over an agent profile's catalog."""

import logging
import re
from typing import List, Optional

from schemas.profile import Category, Product, ProductKind
from .search_rules import SearchRules

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]|_")

CATEGORY_CARD_LABELS = {
    "en": ("View {name}", "Explore all {name}"),
    "es": ("Ver {name}", "Explora toda la sección de {name}"),
}


def normalize_text(text: Optional[str]) -> str:
    """Keep letters (accented included), digits and single spaces; lowercase."""
    cleaned = _NON_WORD.sub("", text or "").lower()
    return " ".join(cleaned.split())


class InventoryIndex:
    """
    Fuzzy lookup of catalog products by free-text query.

    Matching order:
    1. Exact substring of the product name (never excluded)
    2. Token matches against name and tags, filtered by exclusion rules
    3. Category fallback when nothing matched
    """

    MIN_TOKEN_LENGTH = 2
    MIN_REVERSE_CATEGORY_QUERY = 3

    def __init__(self, rules: Optional[SearchRules] = None, max_results: int = 5):
        """
        Initialize the index.

        Args:
            rules: Exclusion rules (defaults to config/search_rules.yaml)
            max_results: Cap on returned matches
        """
        self.rules = rules if rules is not None else SearchRules.from_yaml()
        self.max_results = max_results

    def search(
        self,
        query: str,
        catalog: List[Product],
        categories: Optional[List[Category]] = None,
        language: str = "en"
    ) -> List[Product]:
        """
        Search the catalog.

        Args:
            query: Raw user text
            catalog: Products to search
            categories: Navigation entries used when no product matches
            language: Language for synthesized category cards

        Returns:
            At most max_results products, exact matches first
        """
        normalized_query = normalize_text(query)
        if not normalized_query:
            return []

        tokens = self._tokenize(normalized_query)
        required_matches = 1 if len(tokens) <= 2 else 2
        exclusions = self.rules.active_exclusions(normalized_query)

        exact = []
        scored = []
        for product in catalog:
            name = normalize_text(product.name)

            if normalized_query in name:
                exact.append(product)
                continue

            if not tokens:
                continue

            if any(rule.excludes(name) for rule in exclusions):
                logger.debug(f"Excluded '{product.name}' for query '{normalized_query}'")
                continue

            tags = [normalize_text(tag) for tag in product.tags]
            matches = sum(
                1 for token in tokens
                if token in name or any(token in tag for tag in tags)
            )
            if matches >= required_matches:
                scored.append((matches, product))

        # Stable sort keeps catalog order among equal scores
        scored.sort(key=lambda x: x[0], reverse=True)
        results = (exact + [p for _, p in scored])[:self.max_results]

        if not results and categories:
            results = self._category_fallback(normalized_query, categories, language)

        return results

    def _tokenize(self, normalized_query: str) -> List[str]:
        tokens = []
        for token in normalized_query.split(" "):
            if len(token) >= self.MIN_TOKEN_LENGTH and token not in tokens:
                tokens.append(token)
        return tokens

    def _category_fallback(
        self,
        normalized_query: str,
        categories: List[Category],
        language: str
    ) -> List[Product]:
        """Turn matching navigation entries into LINK cards."""
        name_template, description_template = CATEGORY_CARD_LABELS.get(
            language, CATEGORY_CARD_LABELS["en"]
        )
        cards = []
        seen_urls = set()
        for category in categories:
            category_name = normalize_text(category.name)
            if not category_name or category.url in seen_urls:
                continue

            contained = category_name in normalized_query
            contains = (
                len(normalized_query) >= self.MIN_REVERSE_CATEGORY_QUERY
                and normalized_query in category_name
            )
            if not (contained or contains):
                continue

            seen_urls.add(category.url)
            cards.append(Product(
                id=f"nav-{category_name.replace(' ', '-')}",
                name=name_template.format(name=category.name),
                description=description_template.format(name=category.name),
                price=None,
                buy_url=category.url,
                kind=ProductKind.LINK,
            ))

        if cards:
            logger.info(f"Category fallback matched {len(cards)} section(s)")
        return cards[:self.max_results]
