"""Pydantic schemas for the brand agent console."""

from .profile import (
    AgentProfile,
    Category,
    Citation,
    ContactInfo,
    Product,
    ProductKind,
    ProfileDraft,
)
from .context import (
    ContextBundle,
    ContextItem,
    ContextKind,
    ContextSegment,
    ContextTag,
    IngestionWarning,
    SegmentKind,
)
from .responses import ChatResponse, FilterRejection, ProgressEvent, StructuredReply

__all__ = [
    "AgentProfile",
    "Category",
    "Citation",
    "ContactInfo",
    "Product",
    "ProductKind",
    "ProfileDraft",
    "ContextBundle",
    "ContextItem",
    "ContextKind",
    "ContextSegment",
    "ContextTag",
    "IngestionWarning",
    "SegmentKind",
    "ChatResponse",
    "FilterRejection",
    "ProgressEvent",
    "StructuredReply",
]
