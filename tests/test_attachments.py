"""Tests for attachment rendering and JSON extraction."""

import io
import pandas as pd
import pytest

from llm.attachments import MAX_TABLE_ROWS, attachment_to_text
from schemas.context import ContextSegment
from utils.json_payload import extract_json_object, strip_code_fences


class TestAttachments:
    """Test attachment to text conversion."""

    def test_csv_is_rendered(self):
        segment = ContextSegment.from_attachment(b"name,price\nMouse,20\n", "text/csv", "catalog.csv")

        text = attachment_to_text(segment)

        assert text.startswith("[FILE catalog.csv]")
        assert "Mouse,20" in text

    def test_excel_is_rendered(self):
        buffer = io.BytesIO()
        pd.DataFrame({"name": ["Keyboard"], "price": [35]}).to_excel(buffer, index=False)
        segment = ContextSegment.from_attachment(
            buffer.getvalue(),
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "catalog.xlsx",
        )

        assert "Keyboard,35" in attachment_to_text(segment)

    def test_large_tables_are_truncated(self):
        rows = "\n".join(f"item{i},{i}" for i in range(MAX_TABLE_ROWS + 50))
        segment = ContextSegment.from_attachment(f"name,price\n{rows}\n".encode(), "text/csv")

        text = attachment_to_text(segment)

        assert f"item{MAX_TABLE_ROWS - 1}," in text
        assert f"item{MAX_TABLE_ROWS}," not in text

    def test_plain_text(self):
        segment = ContextSegment.from_attachment("Horario 9-18".encode(), "text/plain", "notes.txt")
        assert "Horario 9-18" in attachment_to_text(segment)

    def test_unsupported(self):
        segment = ContextSegment.from_attachment(b"\x00", "application/zip", "a.zip")
        assert "unsupported" in attachment_to_text(segment)


class TestJsonPayload:
    """Test best-effort JSON extraction."""

    def test_code_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_embedded_object(self):
        assert extract_json_object('Sure! {"a": {"b": 2}} hope it helps') == {"a": {"b": 2}}

    def test_garbage_is_empty(self):
        assert extract_json_object("no json here") == {}
        assert extract_json_object("{broken") == {}
        assert extract_json_object("[1, 2]") == {}
