"""Helpers for editing the operator's context item list."""

import uuid
from typing import List, Optional, Tuple

from schemas.context import ContextItem, ContextKind, ContextTag
from schemas.profile import ContactInfo
from utils.embed_snippet import normalize_site_url

CONTACT_TAGS = {
    "support": ContextTag.CONTACT_SUPPORT,
    "sales": ContextTag.CONTACT_SALES,
    "technical": ContextTag.CONTACT_TECHNICAL,
}

# Tags with exactly one active item; business rules may repeat
SINGLETON_TAGS = set(CONTACT_TAGS.values())


def parse_tag(item: ContextItem) -> Tuple[Optional[ContextTag], str]:
    """Split a tagged TEXT item into (tag, value); untagged items return (None, content)."""
    if item.kind != ContextKind.TEXT:
        return None, item.content
    content = item.content.strip()
    for tag in ContextTag:
        if content.startswith(tag.value):
            return tag, content[len(tag.value):].lstrip(":").strip()
    return None, item.content


def set_contact_channel(items: List[ContextItem], channel: str, value: str) -> List[ContextItem]:
    """Replace the contact item for a channel; an empty value removes it."""
    if channel not in CONTACT_TAGS:
        raise ValueError(f"Unknown contact channel: {channel}")
    tag = CONTACT_TAGS[channel]

    kept = [item for item in items if parse_tag(item)[0] != tag]
    if value and value.strip():
        kept.append(ContextItem(
            id=f"contact-{channel}",
            kind=ContextKind.TEXT,
            content=f"{tag.value}: {value.strip()}",
        ))
    return kept


def add_business_rule(items: List[ContextItem], text: str) -> List[ContextItem]:
    if not text or not text.strip():
        return list(items)
    return [*items, ContextItem(
        id=uuid.uuid4().hex,
        kind=ContextKind.TEXT,
        content=f"{ContextTag.BUSINESS_RULE.value}: {text.strip()}",
    )]


def add_text(items: List[ContextItem], text: str) -> List[ContextItem]:
    if not text or not text.strip():
        return list(items)
    return [*items, ContextItem(id=uuid.uuid4().hex, kind=ContextKind.TEXT, content=text.strip())]


def add_url(items: List[ContextItem], url: str) -> List[ContextItem]:
    url = normalize_site_url(url)
    if not url:
        return list(items)
    return [*items, ContextItem(id=uuid.uuid4().hex, kind=ContextKind.URL, content=url)]


def add_file(
    items: List[ContextItem],
    file_name: str,
    data: Optional[bytes] = None,
    mime_type: Optional[str] = None
) -> List[ContextItem]:
    """Append a FILE item; bytes may be filled in later by the ingestor."""
    return [*items, ContextItem(
        id=uuid.uuid4().hex,
        kind=ContextKind.FILE,
        content=f"File: {file_name}",
        file_name=file_name,
        file_binary=data,
        mime_type=mime_type,
    )]


def remove_item(items: List[ContextItem], item_id: str) -> List[ContextItem]:
    return [item for item in items if item.id != item_id]


def contact_info_from_items(items: List[ContextItem]) -> ContactInfo:
    """Read contact channels from tagged items (last one wins)."""
    values = {}
    for channel, tag in CONTACT_TAGS.items():
        for item in items:
            item_tag, value = parse_tag(item)
            if item_tag == tag and value:
                values[channel] = value
    return ContactInfo(**values)
