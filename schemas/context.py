"""Operator context and ingestion bundle schemas."""

from enum import Enum
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from .profile import CamelModel, ContactInfo


class ContextKind(str, Enum):
    """Kind of operator-supplied knowledge."""
    TEXT = "TEXT"
    URL = "URL"
    FILE = "FILE"


class ContextTag(str, Enum):
    """Reserved prefixes that turn a TEXT item into a structured record."""
    CONTACT_SUPPORT = "[CONTACT_SUPPORT]"
    CONTACT_SALES = "[CONTACT_SALES]"
    CONTACT_TECHNICAL = "[CONTACT_TECHNICAL]"
    BUSINESS_RULE = "[BUSINESS_RULE]"


class ContextItem(CamelModel):
    """One unit of operator-supplied knowledge."""
    id: str
    kind: ContextKind = Field(validation_alias=AliasChoices("kind", "type"))
    content: str = ""
    file_name: Optional[str] = None
    file_binary: Optional[bytes] = None
    mime_type: Optional[str] = None


class SegmentKind(str, Enum):
    TEXT = "text"
    ATTACHMENT = "attachment"


class ContextSegment(BaseModel):
    """A prompt part: either prose or a binary attachment."""
    kind: SegmentKind
    text: Optional[str] = None
    data: Optional[bytes] = None
    mime_type: Optional[str] = None
    file_name: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> "ContextSegment":
        return cls(kind=SegmentKind.TEXT, text=text)

    @classmethod
    def from_attachment(
        cls,
        data: bytes,
        mime_type: str,
        file_name: Optional[str] = None
    ) -> "ContextSegment":
        return cls(
            kind=SegmentKind.ATTACHMENT,
            data=data,
            mime_type=mime_type,
            file_name=file_name,
        )


class IngestionWarning(BaseModel):
    """A context item that could not be read; the rest of the bundle is intact."""
    item_id: str
    reason: str


class ContextBundle(BaseModel):
    """Ordered prompt segments plus metadata extracted during ingestion."""
    segments: List[ContextSegment] = Field(default_factory=list)
    seed_urls: List[str] = Field(default_factory=list)
    contact_info: ContactInfo = Field(default_factory=ContactInfo)
    business_rules: List[str] = Field(default_factory=list)
    warnings: List[IngestionWarning] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.segments
