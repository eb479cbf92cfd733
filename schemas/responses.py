"""Chat turn and synthesis progress schemas."""

from typing import List, Optional

from pydantic import BaseModel, Field

from .profile import CamelModel, Product


class StructuredReply(CamelModel):
    """Schema-constrained chat output: prose separated from recommendations."""
    answer: str = Field("", description="Short conversational answer, no URLs or product lists")
    recommended_product_ids: List[str] = Field(
        default_factory=list,
        description="Ids of catalog products to show as cards"
    )


class FilterRejection(BaseModel):
    """A candidate url dropped by the grounding filter."""
    url: str
    reason: str


class ChatResponse(BaseModel):
    """Final text plus product cards for one chat turn."""
    text: str
    product_cards: List[Product] = Field(default_factory=list)
    escalated: bool = False
    failed: bool = False
    rejections: List[FilterRejection] = Field(default_factory=list)


class ProgressEvent(BaseModel):
    """One step reported while synthesizing a profile."""
    phase: str
    percent: float = Field(0.0, ge=0.0, le=100.0)
    terminal: bool = False
    failed: bool = False
    detail: Optional[str] = None
