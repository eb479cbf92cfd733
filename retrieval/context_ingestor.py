"""Normalizes operator context items into an ordered prompt bundle."""

import logging
import mimetypes
import re
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional, Tuple

import requests

from schemas.context import (
    ContextBundle,
    ContextItem,
    ContextKind,
    ContextSegment,
    ContextTag,
    IngestionWarning,
)
from .context_items import CONTACT_TAGS, SINGLETON_TAGS, parse_tag

logger = logging.getLogger(__name__)

TAG_LABELS = {
    ContextTag.CONTACT_SUPPORT: "[PRIORITY CONTACT - SUPPORT/WARRANTY]",
    ContextTag.CONTACT_SALES: "[PRIORITY CONTACT - SALES]",
    ContextTag.CONTACT_TECHNICAL: "[PRIORITY CONTACT - TECHNICAL SERVICE]",
    ContextTag.BUSINESS_RULE: "[PRIORITY BUSINESS RULE]",
}

MAX_PAGE_EXCERPT = 4000

_SCRIPT_OR_STYLE = re.compile(r"<(script|style)\b.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]+>")


class ContextIngestor:
    """
    Builds a ContextBundle from ContextItems.

    Consecutive text is coalesced into one segment; each file flushes the
    text buffer and becomes its own attachment segment. A bad item is
    reported as an IngestionWarning and skipped.
    """

    def __init__(
        self,
        fetch_urls: bool = False,
        timeout: int = 10,
        max_workers: int = 4
    ):
        """
        Initialize ingestor.

        Args:
            fetch_urls: Append a text excerpt of each seed URL
            timeout: Request timeout in seconds for URL fetching
            max_workers: Threads used to read file items
        """
        self.fetch_urls = fetch_urls
        self.timeout = timeout
        self.max_workers = max_workers

    def ingest(self, items: List[ContextItem]) -> ContextBundle:
        """Convert items into an ordered bundle; never raises for a single item."""
        bundle = ContextBundle()
        files = self._read_files(
            [item for item in items if item.kind == ContextKind.FILE],
            bundle.warnings
        )
        last_singleton = self._last_singleton_positions(items)

        buffer = []
        contact_values = {}

        for position, item in enumerate(items):
            if item.kind == ContextKind.TEXT:
                tag, value = parse_tag(item)
                if not value or not value.strip():
                    continue
                if tag is None:
                    buffer.append(f"[BUSINESS INFO]: {value.strip()}")
                    continue
                if tag in SINGLETON_TAGS and last_singleton[tag] != position:
                    logger.debug(f"Skipping superseded {tag.value} item {item.id}")
                    continue
                buffer.append(f"{TAG_LABELS[tag]}: {value}")
                if tag == ContextTag.BUSINESS_RULE:
                    bundle.business_rules.append(value)
                else:
                    contact_values[self._channel_for(tag)] = value

            elif item.kind == ContextKind.URL:
                url = item.content.strip()
                if not url:
                    continue
                bundle.seed_urls.append(url)
                buffer.append(f"[SEED URL]: {url}")
                if self.fetch_urls:
                    excerpt = self._fetch_excerpt(item, url, bundle.warnings)
                    if excerpt:
                        buffer.append(f"[PAGE CONTENT {url}]: {excerpt}")

            elif item.kind == ContextKind.FILE:
                read = files.get(item.id)
                if read is None:
                    continue
                data, mime_type = read
                if buffer:
                    bundle.segments.append(ContextSegment.from_text("\n".join(buffer)))
                    buffer = []
                bundle.segments.append(
                    ContextSegment.from_attachment(data, mime_type, item.file_name)
                )

        if buffer:
            bundle.segments.append(ContextSegment.from_text("\n".join(buffer)))

        bundle.contact_info = bundle.contact_info.model_copy(update=contact_values)

        if bundle.warnings:
            logger.warning(f"Ingestion skipped {len(bundle.warnings)} item(s)")
        logger.info(f"Ingested {len(items)} items into {len(bundle.segments)} segments")
        return bundle

    def _last_singleton_positions(self, items: List[ContextItem]) -> dict:
        positions = {}
        for position, item in enumerate(items):
            tag, _ = parse_tag(item)
            if tag in SINGLETON_TAGS:
                positions[tag] = position
        return positions

    def _channel_for(self, tag: ContextTag) -> str:
        for channel, channel_tag in CONTACT_TAGS.items():
            if channel_tag == tag:
                return channel
        raise ValueError(f"Not a contact tag: {tag}")

    def _read_files(
        self,
        file_items: List[ContextItem],
        warnings: List[IngestionWarning]
    ) -> dict:
        """Read file payloads concurrently; failures become warnings."""
        if not file_items:
            return {}

        results = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {item.id: executor.submit(self.read_file, item) for item in file_items}
            for item in file_items:
                try:
                    results[item.id] = futures[item.id].result()
                except (OSError, ValueError) as e:
                    logger.warning(f"Could not read file item {item.id}: {e}")
                    warnings.append(IngestionWarning(item_id=item.id, reason=str(e)))
        return results

    @staticmethod
    def read_file(item: ContextItem) -> Tuple[bytes, str]:
        """
        Resolve a FILE item's bytes and mime type.

        Falls back to reading file_name from disk when no bytes are attached.

        Raises:
            ValueError: If no data or mime type can be determined
            OSError: If the file cannot be read
        """
        data = item.file_binary
        if data is None and item.file_name and Path(item.file_name).is_file():
            data = Path(item.file_name).read_bytes()
        if not data:
            raise ValueError("file item has no readable data")

        mime_type = item.mime_type or mimetypes.guess_type(item.file_name or "")[0]
        if not mime_type:
            raise ValueError(f"unknown mime type for {item.file_name or item.id}")
        return data, mime_type

    def hydrate(self, item: ContextItem) -> ContextItem:
        """Return a FILE item carrying its bytes and mime type."""
        if item.kind != ContextKind.FILE:
            return item
        data, mime_type = self.read_file(item)
        return item.model_copy(update={"file_binary": data, "mime_type": mime_type})

    def _fetch_excerpt(
        self,
        item: ContextItem,
        url: str,
        warnings: List[IngestionWarning]
    ) -> Optional[str]:
        """Fetch a page and reduce it to plain text."""
        try:
            response = requests.get(
                url,
                timeout=self.timeout,
                headers={"User-Agent": "BrandAgentConsole/1.0"}
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Could not fetch {url}: {e}")
            warnings.append(IngestionWarning(item_id=item.id, reason=f"fetch failed: {e}"))
            return None

        if response.status_code != 200:
            warnings.append(IngestionWarning(
                item_id=item.id,
                reason=f"fetch returned status {response.status_code}"
            ))
            return None

        text = _SCRIPT_OR_STYLE.sub(" ", response.text)
        text = " ".join(_TAG.sub(" ", text).split())
        return text[:MAX_PAGE_EXCERPT]
