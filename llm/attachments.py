"""Conversion of binary attachments into backend-friendly parts."""

import base64
import io
import logging

import pandas as pd

from schemas.context import ContextSegment

logger = logging.getLogger(__name__)

MAX_TABLE_ROWS = 500

TABULAR_READERS = {
    "text/csv": pd.read_csv,
    "application/csv": pd.read_csv,
    "application/vnd.ms-excel": pd.read_excel,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": pd.read_excel,
}

TEXT_MIME_TYPES = {"application/json", "application/xml"}


def is_image(mime_type: str) -> bool:
    return (mime_type or "").startswith("image/")


def is_pdf(mime_type: str) -> bool:
    return mime_type == "application/pdf"


def to_base64(segment: ContextSegment) -> str:
    return base64.b64encode(segment.data or b"").decode("ascii")


def to_data_url(segment: ContextSegment) -> str:
    return f"data:{segment.mime_type};base64,{to_base64(segment)}"


def attachment_to_text(segment: ContextSegment) -> str:
    """
    Render a non-native attachment as prompt text.

    Spreadsheets are flattened to CSV with pandas; text-like files are
    decoded as UTF-8. Anything else becomes a short placeholder line.
    """
    mime_type = segment.mime_type or ""
    label = segment.file_name or "attachment"

    reader = TABULAR_READERS.get(mime_type)
    if reader is not None:
        try:
            df = reader(io.BytesIO(segment.data or b""))
        except Exception as e:
            logger.warning(f"Could not read tabular attachment {label}: {e}")
            return f"[FILE {label}: unreadable {mime_type}]"
        if len(df) > MAX_TABLE_ROWS:
            logger.info(f"Truncating {label} from {len(df)} to {MAX_TABLE_ROWS} rows")
            df = df.head(MAX_TABLE_ROWS)
        return f"[FILE {label}]\n{df.to_csv(index=False)}"

    if mime_type.startswith("text/") or mime_type in TEXT_MIME_TYPES:
        return f"[FILE {label}]\n{(segment.data or b'').decode('utf-8', errors='replace')}"

    logger.warning(f"Unsupported attachment type for {label}: {mime_type}")
    return f"[FILE {label}: unsupported format {mime_type}]"
