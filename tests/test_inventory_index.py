"""Tests for the Inventory Index."""

import pytest
from retrieval.inventory_index import InventoryIndex, normalize_text
from agents.escalation import DEFAULT_TRIGGERS_PATH
from retrieval.search_rules import DEFAULT_RULES_PATH, ExclusionRule, SearchRules
from schemas.profile import Category, Product, ProductKind


class TestNormalizeText:
    """Test query/name normalization."""

    def test_strips_punctuation_and_lowercases(self):
        assert normalize_text("  Wireless-Mouse, PRO!  ") == "wirelessmouse pro"

    def test_keeps_accented_letters_and_digits(self):
        assert normalize_text("Portátil 15\" Ñandú") == "portátil 15 ñandú"

    def test_none_is_empty(self):
        assert normalize_text(None) == ""


class TestInventoryIndex:
    """Test fuzzy catalog search."""

    def setup_method(self):
        """Set up test fixtures."""
        self.index = InventoryIndex()
        self.mouse = Product(id="p1", name="Wireless Mouse", price="$20")
        self.keyboard = Product(id="p2", name="Mechanical Keyboard", tags=["gaming", "rgb"])
        self.gaming_mouse = Product(id="p3", name="Gaming Mouse")
        self.catalog = [self.mouse, self.keyboard, self.gaming_mouse]

    def test_single_word_query_finds_product(self):
        """A query contained in a product name returns that product."""
        assert self.index.search("mouse", [self.mouse]) == [self.mouse]

    def test_exact_substring_matches_come_first(self):
        results = self.index.search("gaming mouse", self.catalog)

        assert results[0] == self.gaming_mouse
        assert self.keyboard in results  # "gaming" tag

    def test_any_substring_of_name_matches(self):
        """Substrings, including mid-word ones, always hit the product."""
        for query in ["Wire", "less Mo", "mouse", "Wireless Mouse"]:
            assert self.mouse in self.index.search(query, self.catalog)

    def test_tag_match(self):
        results = self.index.search("rgb", self.catalog)
        assert results == [self.keyboard]

    def test_long_queries_need_two_matching_tokens(self):
        """With more than two tokens a single common word is not enough."""
        results = self.index.search("cheap red gaming thing", self.catalog)
        assert results == []

        results = self.index.search("red gaming mouse please", self.catalog)
        assert results == [self.gaming_mouse]

    def test_short_tokens_are_ignored(self):
        results = self.index.search("a b", self.catalog)
        assert results == []

    def test_result_cap(self):
        catalog = [Product(id=f"m{i}", name=f"Mouse model {i}") for i in range(20)]
        results = self.index.search("mouse", catalog)

        assert len(results) == 5
        assert [p.id for p in results] == ["m0", "m1", "m2", "m3", "m4"]

    def test_custom_cap(self):
        index = InventoryIndex(max_results=3)
        catalog = [Product(id=f"m{i}", name=f"Mouse model {i}") for i in range(10)]
        assert len(index.search("mouse", catalog)) == 3

    def test_search_is_idempotent(self):
        first = self.index.search("gaming mouse", self.catalog)
        second = self.index.search("gaming mouse", self.catalog)
        assert first == second

    def test_empty_query(self):
        assert self.index.search("!!!", self.catalog) == []


class TestExclusionRules:
    """Test negative-keyword exclusion."""

    def setup_method(self):
        """Set up test fixtures."""
        self.index = InventoryIndex()
        self.laptop = Product(id="l1", name="Laptop Pro 14")
        self.sleeve = Product(id="l2", name="Laptop Sleeve 14")
        self.charger = Product(id="l3", name="Laptop Charger 65W")
        self.catalog = [self.sleeve, self.charger, self.laptop]

    def test_accessories_suppressed_for_device_query(self):
        results = self.index.search("laptop 14", self.catalog)
        assert results == [self.laptop]

    def test_exact_match_is_never_excluded(self):
        results = self.index.search("laptop sleeve", self.catalog)
        assert self.sleeve in results

    def test_spanish_intent(self):
        catalog = [
            Product(id="f1", name="Funda para portátil"),
            Product(id="f2", name="Portátil Lenovo IdeaPad"),
        ]
        results = self.index.search("portátil lenovo", catalog)
        assert [p.id for p in results] == ["f2"]

    def test_injected_rules_replace_defaults(self):
        rules = SearchRules(exclusion_rules=[
            ExclusionRule(name="coffee", intents=["coffee"], excluded=["filter"])
        ])
        index = InventoryIndex(rules=rules)
        catalog = [
            Product(id="c1", name="Paper Filter for coffee machines"),
            Product(id="c2", name="Arabica coffee beans"),
        ]
        assert [p.id for p in index.search("coffee", catalog)] == ["c1", "c2"]
        assert [p.id for p in index.search("coffee beans now", catalog)] == ["c2"]

    def test_keyword_matches_at_word_start(self):
        """An excluded keyword does not hit the middle of a word."""
        rules = SearchRules(exclusion_rules=[
            ExclusionRule(name="t", intents=["tablet"], excluded=["case"])
        ])
        index = InventoryIndex(rules=rules)
        catalog = [Product(id="t1", name="Tablet showcase edition")]
        assert index.search("tablet edition", catalog) == catalog


class TestCategoryFallback:
    """Test fallback to navigation entries."""

    def setup_method(self):
        """Set up test fixtures."""
        self.index = InventoryIndex()
        self.tablets = Category(name="Tablets", url="https://x.com/tablets")

    def test_category_link_when_catalog_empty(self):
        results = self.index.search("busco tablets", [], [self.tablets])

        assert len(results) == 1
        card = results[0]
        assert card.kind == ProductKind.LINK
        assert card.buy_url == "https://x.com/tablets"
        assert card.price is None

    def test_query_contained_in_category_name(self):
        results = self.index.search("tab", [], [self.tablets])
        assert len(results) == 1

    def test_very_short_query_does_not_match_reverse(self):
        assert self.index.search("ta", [], [self.tablets]) == []

    def test_localized_card(self):
        results = self.index.search("tablets", [], [self.tablets], language="es")
        assert results[0].name == "Ver Tablets"

    def test_not_used_when_products_match(self):
        catalog = [Product(id="t1", name="Tablets stand")]
        results = self.index.search("tablets", catalog, [self.tablets])
        assert results == catalog

    def test_category_ids_are_stable(self):
        first = self.index.search("tablets", [], [self.tablets])
        second = self.index.search("tablets", [], [self.tablets])
        assert first[0].id == second[0].id == "nav-tablets"

    def test_duplicate_category_urls_collapse(self):
        categories = [self.tablets, Category(name="Tablets y más", url="https://x.com/tablets")]
        assert len(self.index.search("tablets", [], categories)) == 1


class TestRuleTables:
    """Test that the shipped rule tables live inside an installable package."""

    def test_tables_are_package_data(self):
        for path in (DEFAULT_RULES_PATH, DEFAULT_TRIGGERS_PATH):
            assert path.exists()
            assert (path.parent / "__init__.py").exists()

    def test_default_rules_load(self):
        rules = SearchRules.from_yaml()
        assert "cart" in rules.blocked_path_patterns
        assert "cookies" not in rules.blocked_path_patterns
