"""Provenance filtering for product cards and citation links."""

import hashlib
import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from retrieval.inventory_index import normalize_text
from retrieval.search_rules import SearchRules
from schemas.profile import Citation, Product, ProductKind
from schemas.responses import FilterRejection

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 50
_TITLE_SEPARATORS = re.compile(r"\s[-|–]\s|\|")


def root_domain(url: Optional[str]) -> Optional[str]:
    """
    Extract the brand label of a website's host.

    Strips a leading "www." and returns the first remaining label, so
    "https://www.acme.co.uk" gives "acme". Multi-label suffixes are not
    resolved against a public suffix list.
    """
    if not url or not url.strip():
        return None
    url = url.strip()
    if "://" not in url:
        url = f"https://{url}"
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    label = host.split(".")[0] if host else ""
    return label or None


def clean_title(title: str) -> str:
    """Keep the part before a site-name separator and cap the length."""
    title = _TITLE_SEPARATORS.split(title or "")[0].strip()
    if len(title) > MAX_TITLE_LENGTH:
        title = title[:MAX_TITLE_LENGTH - 3].rstrip() + "..."
    return title


class GroundingFilter:
    """
    Decides which urls may be surfaced to a customer.

    A url passes when it uses http(s), carries no placeholder token,
    belongs to the site's root domain (when known), is not on the path
    denylist and was not already selected in the same turn.
    """

    def __init__(self, website_url: Optional[str] = None, rules: Optional[SearchRules] = None):
        """
        Initialize the filter.

        Args:
            website_url: Canonical site url; its root domain scopes every url
            rules: Placeholder tokens, denylist and url patterns
        """
        self.rules = rules if rules is not None else SearchRules.from_yaml()
        self.website_url = website_url
        self.root = root_domain(website_url)

        site = (website_url or "").lower()
        # A placeholder token that is part of the real site name is not a placeholder
        self.placeholder_tokens = [
            token.lower() for token in self.rules.placeholder_tokens
            if token.lower() not in site
        ]

    def check(self, url: Optional[str], seen: Optional[set] = None) -> Optional[str]:
        """Return the rejection reason for a url, or None if it is acceptable."""
        if not url or not url.strip():
            return "missing url"

        lowered = url.strip().lower()
        parsed = urlparse(lowered)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            return "unsupported scheme"

        if any(token in lowered for token in self.placeholder_tokens):
            return "placeholder url"

        if self.root and self.root not in parsed.hostname:
            return f"outside root domain '{self.root}'"

        path = parsed.path + ("?" + parsed.query if parsed.query else "")
        blocked = self.rules.blocked_path_pattern(path)
        if blocked:
            return f"denied path pattern '{blocked}'"

        if seen is not None and url.strip() in seen:
            return "duplicate url"

        return None

    def apply(self, candidates: List[Product]) -> Tuple[List[Product], List[FilterRejection]]:
        """
        Filter candidate cards in order.

        Returns:
            (kept cards, rejections) where kept urls are unique
        """
        kept = []
        rejections = []
        seen = set()

        for card in candidates:
            reason = self.check(card.buy_url, seen)
            if reason:
                logger.debug(f"Rejected card '{card.name}' ({card.buy_url}): {reason}")
                rejections.append(FilterRejection(url=card.buy_url or "", reason=reason))
                continue
            seen.add(card.buy_url.strip())
            kept.append(card)

        if rejections:
            logger.info(f"Grounding filter kept {len(kept)} of {len(candidates)} candidates")
        return kept, rejections

    def card_from_citation(self, citation: Citation, query: str = "") -> Product:
        """
        Derive a card from a search citation.

        A detected price makes a PRODUCT card. Without a price, category
        urls become LINK cards, while product-like paths or urls containing
        a query token become PRODUCT cards. Anything else is a LINK.
        """
        uri = citation.uri.strip()
        parsed = urlparse(uri.lower())
        path = parsed.path + ("?" + parsed.query if parsed.query else "")
        title = clean_title(citation.title) or parsed.hostname or uri
        price = self.rules.find_price(citation.title)

        if price:
            kind = ProductKind.PRODUCT
        elif any(pattern.lower() in path for pattern in self.rules.category_url_patterns):
            kind = ProductKind.LINK
        elif any(pattern.lower() in path for pattern in self.rules.product_url_patterns):
            kind = ProductKind.PRODUCT
        elif any(token in uri.lower() for token in self._query_tokens(query)):
            kind = ProductKind.PRODUCT
        else:
            kind = ProductKind.LINK

        return Product(
            id=f"live-{hashlib.md5(uri.encode('utf-8')).hexdigest()[:10]}",
            name=title,
            description=parsed.hostname or "",
            price=price if kind == ProductKind.PRODUCT else None,
            buy_url=uri,
            kind=kind,
        )

    @staticmethod
    def _query_tokens(query: str) -> List[str]:
        # Short tokens would match almost any url
        return [token for token in normalize_text(query).split() if len(token) >= 4]
