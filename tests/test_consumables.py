import pytest

from wikifacts.inference.consumables import (
    FOOD_INDEX_PAGE,
    consumable_titles,
    food_index_titles,
    is_consumable,
    mainspace_titles,
)
from wikifacts.transform.entities import EntityKind
from wikifacts.transform.extract_facts import store_record


def item(options):
    return "{{Infobox Item\n|name=x\n|options = " + options + "\n}}"


@pytest.fixture
def items(tables):
    return tables[EntityKind.ITEM]


@pytest.fixture
def populated(store, tables, items, extractor):
    store_record(store, items, extractor.extract_item("Meat pie", item("Eat, Drop")))
    store_record(store, items, extractor.extract_item("Jug of wine", item("Drink, Empty, Drop")))
    store_record(store, items, extractor.extract_item("Bronze sword", item("Wield, Drop")))
    store_record(store, items, extractor.extract_item("Pot", "{{Infobox Item\n|name=Pot\n}}"))
    store_record(store, tables[EntityKind.MONSTER], extractor.extract_monster("Cow", "{{Infobox Monster\n|combat=2\n}}"))
    return store


class TestFoodIndex:
    def test_mainspace_only_deduped(self):
        links = [
            {"ns": 0, "title": "Meat pie", "exists": True},
            {"ns": 14, "title": "Category:Food"},
            {"ns": 0, "title": "Meat pie"},
            {"ns": 0, "title": "Jug of wine"},
            {"ns": 0},
        ]
        assert mainspace_titles(links) == ["Meat pie", "Jug of wine"]

    def test_food_index_titles(self, make_client):
        client = make_client(rendered_links={FOOD_INDEX_PAGE: [{"ns": 0, "title": "Meat pie"}]})
        assert food_index_titles(client) == ["Meat pie"]
        assert client.calls == [("page_links", FOOD_INDEX_PAGE)]


class TestConsumable:
    def test_eat_and_drink(self, populated, items):
        assert is_consumable(populated, items, "Meat pie")
        assert is_consumable(populated, items, "Jug of wine")

    def test_other_items(self, populated, items):
        assert not is_consumable(populated, items, "Bronze sword")
        assert not is_consumable(populated, items, "Pot")

    def test_not_an_item(self, populated, items):
        assert not is_consumable(populated, items, "Cow")
        assert not is_consumable(populated, items, "Unknown page")

    def test_filter_keeps_candidate_order(self, populated, items):
        candidates = ["Jug of wine", "Bronze sword", "Cow", "Meat pie", "Jug of wine"]
        assert consumable_titles(populated, items, candidates) == ["Jug of wine", "Meat pie"]
