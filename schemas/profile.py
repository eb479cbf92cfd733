"""Agent profile schemas."""

import re
from enum import Enum
from typing import ClassVar, List, Optional
from urllib.parse import urlparse

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_BRAND_COLOR = "#0ea5e9"

_HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


class CamelModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProductKind(str, Enum):
    """What a catalog entry represents."""
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"
    LINK = "LINK"


class Product(CamelModel):
    """A catalog entry shown to customers as a card."""
    id: str = ""
    name: str
    description: str = ""
    price: Optional[str] = None
    buy_url: Optional[str] = None
    image_url: Optional[str] = None
    kind: ProductKind = Field(
        ProductKind.PRODUCT,
        validation_alias=AliasChoices("kind", "type"),
    )
    tags: List[str] = Field(default_factory=list)

    @field_validator("price", mode="before")
    @classmethod
    def _coerce_price(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("kind", mode="before")
    @classmethod
    def _coerce_kind(cls, value):
        if value is None or value == "":
            return ProductKind.PRODUCT
        if isinstance(value, str):
            value = value.strip().upper()
            if value not in ProductKind.__members__:
                return ProductKind.PRODUCT
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _coerce_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return [t.strip() for t in value.split(",") if t.strip()]
        return [str(t) for t in value if str(t).strip()]


class Category(CamelModel):
    """A navigation entry detected on the business website."""
    name: str
    url: str
    description: Optional[str] = None


class ContactInfo(CamelModel):
    """Escalation and sales contact channels."""
    sales: Optional[str] = None
    support: Optional[str] = None
    technical: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.sales or self.support or self.technical)


class Citation(CamelModel):
    """A grounding source returned by search-augmented generation."""
    title: str = ""
    uri: str

    @classmethod
    def from_uri(cls, uri: str, title: Optional[str] = None) -> "Citation":
        """Build a citation, falling back to the hostname as title."""
        if not title:
            title = urlparse(uri).hostname or uri
        return cls(title=title, uri=uri)


def dedupe_citations(citations: List[Citation]) -> List[Citation]:
    """Drop citations whose uri was already seen, preserving order."""
    seen = set()
    unique = []
    for citation in citations:
        if citation.uri in seen:
            continue
        seen.add(citation.uri)
        unique.append(citation)
    return unique


class ProfileDraft(CamelModel):
    """
    Fields the generative backend is asked to produce.

    This is also the output schema handed to schema-constrained generation.
    """
    agent_name: Optional[str] = None
    system_instruction: str = ""
    summary: str = ""
    suggested_greeting: str = ""
    brand_color: Optional[str] = None
    website_url: Optional[str] = None
    key_topics: List[str] = Field(default_factory=list)
    navigation_tree: List[Category] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    contact_info: Optional[ContactInfo] = None


class AgentProfile(CamelModel):
    """Synthesized sales agent configuration, persisted per access token."""
    agent_name: str
    brand_color: str = DEFAULT_BRAND_COLOR
    summary: str = ""
    system_instruction: str = ""
    suggested_greeting: str = ""
    key_topics: List[str] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    navigation_tree: List[Category] = Field(default_factory=list)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    sources: List[Citation] = Field(default_factory=list)
    website_url: Optional[str] = None

    @field_validator("brand_color", mode="before")
    @classmethod
    def _coerce_brand_color(cls, value):
        if isinstance(value, str) and _HEX_COLOR.match(value.strip()):
            return value.strip()
        return DEFAULT_BRAND_COLOR

    # Only operator-facing branding fields can be patched in place
    PATCHABLE_FIELDS: ClassVar[tuple] = ("brand_color", "agent_name")

    def with_patch(self, **changes) -> "AgentProfile":
        """Return a copy with branding fields replaced."""
        unknown = set(changes) - set(self.PATCHABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be patched: {sorted(unknown)}")
        return AgentProfile.model_validate({**self.model_dump(), **changes})

    def get_product(self, product_id: str) -> Optional[Product]:
        for product in self.products:
            if product.id == product_id:
                return product
        return None
