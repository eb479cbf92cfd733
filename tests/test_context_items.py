"""Tests for context item helpers."""

import pytest
from retrieval import context_items
from schemas.context import ContextItem, ContextKind, ContextTag


class TestContextItems:
    """Test tag parsing and list editing."""

    def test_parse_tag(self):
        item = ContextItem(id="1", kind=ContextKind.TEXT, content="[CONTACT_SUPPORT]: help@acme.com")
        assert context_items.parse_tag(item) == (ContextTag.CONTACT_SUPPORT, "help@acme.com")

    def test_parse_untagged(self):
        item = ContextItem(id="1", kind=ContextKind.TEXT, content="plain text")
        assert context_items.parse_tag(item) == (None, "plain text")

    def test_urls_are_never_tagged(self):
        item = ContextItem(id="1", kind=ContextKind.URL, content="[BUSINESS_RULE] x")
        assert context_items.parse_tag(item)[0] is None

    def test_set_contact_replaces(self):
        items = context_items.set_contact_channel([], "support", "a@acme.com")
        items = context_items.set_contact_channel(items, "support", "b@acme.com")

        assert len(items) == 1
        assert items[0].id == "contact-support"
        assert items[0].content == "[CONTACT_SUPPORT]: b@acme.com"

    def test_empty_value_removes_contact(self):
        items = context_items.set_contact_channel([], "sales", "a@acme.com")
        items = context_items.set_contact_channel(items, "sales", "  ")
        assert items == []

    def test_unknown_channel(self):
        with pytest.raises(ValueError):
            context_items.set_contact_channel([], "billing", "x@acme.com")

    def test_business_rules_repeat(self):
        items = context_items.add_business_rule([], "rule one")
        items = context_items.add_business_rule(items, "rule two")
        items = context_items.add_business_rule(items, "   ")

        assert len(items) == 2
        assert items[0].id != items[1].id

    def test_helpers_return_new_lists(self):
        original = []
        updated = context_items.add_text(original, "hello")
        assert original == []
        assert len(updated) == 1

    def test_add_url_adds_scheme(self):
        items = context_items.add_url([], "acme.com")
        assert items[0].content == "https://acme.com"
        assert items[0].kind == ContextKind.URL

    def test_remove_item(self):
        items = context_items.add_text([], "a")
        items = context_items.add_text(items, "b")
        remaining = context_items.remove_item(items, items[0].id)
        assert [i.content for i in remaining] == ["b"]

    def test_contact_info_from_items(self):
        items = context_items.set_contact_channel([], "technical", "tech@acme.com")
        items = context_items.set_contact_channel(items, "sales", "sales@acme.com")

        info = context_items.contact_info_from_items(items)

        assert info.technical == "tech@acme.com"
        assert info.sales == "sales@acme.com"
        assert info.support is None
