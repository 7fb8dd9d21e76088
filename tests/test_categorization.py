"""Tests for keyword categorization."""

import json

import pytest

from receipt_extraction.core.categorization import Categorizer, load_rules
from receipt_extraction.core.models import LineItem, ReceiptDraft


@pytest.fixture
def categorizer():
    return Categorizer()


@pytest.mark.parametrize("description, category", [
    ("LECHE ENTERA", "Dairy"),
    ("PAN DE MOLDE", "Bakery"),
    ("PLÁTANO CANARIAS", "Fruit & Vegetables"),
    ("PLATANO CANARIAS", "Fruit & Vegetables"),
    ("PAPEL HIGIENICO", "Personal Care"),
    ("PAPEL COCINA", "Household"),
    ("PIENSO PERRO", "Pets"),
    ("XKZQ", "Uncategorized"),
    ("", "Uncategorized"),
])
def test_default_keywords(categorizer, description, category):
    assert categorizer.categorize(description) == category


def test_short_keywords_need_whole_words(categorizer):
    assert categorizer.categorize("PANCETA") == "Meat"
    assert categorizer.categorize("PANTALLA") == "Uncategorized"


def test_categorize_draft_returns_new_draft(categorizer):
    draft = ReceiptDraft(merchant="MERCADONA", date="2024-02-01", total=1.39,
                         items=(LineItem("LECHE", 0.89), LineItem("PAN", 0.50)))
    categorized = categorizer.categorize_draft(draft)

    assert [i.category for i in categorized.items] == ["Dairy", "Bakery"]
    assert [i.category for i in draft.items] == ["Uncategorized", "Uncategorized"]
    assert categorized.total == draft.total
    assert categorized.merchant == draft.merchant


def test_matchers_run_before_keywords():
    rules = {
        "matchers": [
            {"name": "IKEA", "any": [{"vendor_re": "IKEA"}], "category": "Household"},
            {"name": "Pet food", "all": [{"text_re": "PIENSO"}, {"text_re": "GATO"}],
             "category": "Pets"},
        ]
    }
    c = Categorizer(rules)
    assert c.match("VELA PERFUMADA", merchant="IKEA") == ("Household", "IKEA")
    assert c.match("PIENSO GATO ADULTO") == ("Pets", "Pet food")
    assert c.match("LECHE") == ("Dairy", None)


def test_rules_categories_replace_keyword_table():
    c = Categorizer({"categories": {"Coffee": ["cafe", "espresso"]}})
    assert c.categorize("CAFÉ MOLIDO") == "Coffee"
    assert c.categorize("LECHE") == "Uncategorized"
    assert c.categories() == ["Coffee", "Household", "Personal Care", "Uncategorized"]


def test_categories_is_closed_set(categorizer):
    labels = categorizer.categories()
    assert labels[-1] == "Uncategorized"
    assert "Dairy" in labels
    assert labels[:-1] == sorted(labels[:-1])


def test_load_rules_missing_file(tmp_path):
    assert load_rules(tmp_path / "nope.json") == {"categories": {}, "matchers": []}
    assert load_rules(None) == {"categories": {}, "matchers": []}


def test_load_rules_from_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"categories": {"Bebidas": ["agua"]}}), encoding="utf-8")
    c = Categorizer(load_rules(path))
    assert c.categorize("AGUA MINERAL") == "Bebidas"


def test_load_rules_malformed_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(json.JSONDecodeError):
        load_rules(path)


def test_any_entry_matches_on_either_pattern():
    rules = {"matchers": [
        {"name": "Bakery chain", "any": [{"vendor_re": "PANISHOP", "text_re": "CROISSANT"}],
         "category": "Bakery"},
    ]}
    c = Categorizer(rules)
    assert c.match("CROISSANT MANTEQUILLA", merchant="MERCADONA") == ("Bakery", "Bakery chain")
    assert c.match("CAFE SOLO", merchant="PANISHOP") == ("Bakery", "Bakery chain")
    assert c.match("LECHE", merchant="MERCADONA") == ("Dairy", None)


def test_all_entry_needs_every_pattern():
    rules = {"matchers": [
        {"name": "IKEA food", "all": [{"vendor_re": "IKEA", "text_re": "ALBONDIGAS"}],
         "category": "Frozen"},
    ]}
    c = Categorizer(rules)
    assert c.match("ALBONDIGAS", merchant="IKEA") == ("Frozen", "IKEA food")
    assert c.match("ALBONDIGAS", merchant="MERCADONA") == ("Meat", None)


def test_rules_overrides_run_before_builtin_ones():
    c = Categorizer({"overrides": [["pan rallado", "Pantry"], ["papel higienico", "Household"]]})
    assert c.categorize("PAN RALLADO 500G") == "Pantry"
    assert c.categorize("PAPEL HIGIÉNICO DOBLE") == "Household"
    assert c.categorize("PAPEL COCINA") == "Household"
    assert c.categorize("PAN DE MOLDE") == "Bakery"


def test_override_labels_are_listed():
    c = Categorizer({"categories": {"Coffee": ["cafe"]}, "overrides": [["te verde", "Tea"]]})
    assert c.categorize("TÉ VERDE") == "Tea"
    assert c.categories() == ["Coffee", "Household", "Personal Care", "Tea", "Uncategorized"]


def test_category_label_list_keeps_keyword_table():
    c = Categorizer({"categories": ["Hotel", "Meals"], "matchers": []})
    assert c.categorize("LECHE ENTERA") == "Dairy"
    assert "Hotel" in c.categories()
    assert "Dairy" in c.categories()
