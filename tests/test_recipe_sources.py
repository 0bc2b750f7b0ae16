import pytest

from wikifacts.errors import CollaboratorFailure
from wikifacts.inference.recipe_sources import (
    RecipeGraph,
    RecipeSources,
    direct_droppers,
    snippet,
    source_summary,
    top_strongest,
    top_weakest,
)
from wikifacts.transform.title_index import TitleIndex

MEAT_PIE = """{{Infobox Item
|name = Meat pie
}}
'''Meat pie''' is a [[pie]] made with the [[Cooking]] skill.

==Creation==
{{Recipe
|skill1 = Cooking
|mat1 = Uncooked meat pie
}}
Add {{plink|Cooked meat}} to a {{plink|Pie shell}}, then bake it on a [[range]].
[[File:Meat pie detail.png]] [[Category:Pies]] Released on [[4 January]] [[2001]].
"""

DROPS = {
    "Raw beef": ["Cow", "Cow calf", "Combat level", "Hunter"],
    "Raw bear meat": ["Grizzly bear", "Raging Echoes League/Tasks"],
    "Meat pie": ["Dwarf", "Unlisted thing"],
}

MONSTERS = ["Cow", "Grizzly bear", "Dwarf", "Hunter"]


@pytest.fixture
def graph():
    return RecipeGraph.load()


@pytest.fixture
def sources(make_client, graph):
    client = make_client(drop_sources=DROPS)
    return RecipeSources({"Meat pie": MEAT_PIE}.get, client, TitleIndex.build(MONSTERS), graph)


class TestSnippet:
    def test_around_marker(self):
        text = "a" * 10 + "==Creation==" + "b" * 10
        assert snippet(text, "==Creation==", 5) == "aaaaa==Cre"

    def test_clamped_to_text(self):
        assert snippet("x==Creation==y", "==Creation==", 2000) == "x==Creation==y"

    def test_absent(self):
        assert snippet("no marker", "==Creation==", 10) is None
        assert snippet(None, "==Creation==", 10) is None


class TestRecipeGraph:
    def test_loaded(self, graph):
        assert graph.creation_marker == "==Creation=="
        assert graph.snippet_radius == 2000
        assert len(graph.implied_edges) == 4

    @pytest.mark.parametrize("title", ["Pie dish", "Cooked meat", "Pie shell"])
    def test_ingredient(self, graph, title):
        assert graph.is_ingredient(title)

    @pytest.mark.parametrize("title", ["File:Pie.png", "Category:Pies", "2001", "4 January", "Cooking", "range", "", None])
    def test_not_ingredient(self, graph, title):
        assert not graph.is_ingredient(title)

    def test_drop_source_filter(self, graph):
        assert graph.is_drop_source("Cow")
        assert not graph.is_drop_source("Hunter")
        assert not graph.is_drop_source("Raging Echoes League/Tasks")


class TestRelations:
    def test_ingredients_of(self, sources):
        assert sources.ingredients_of("Meat pie") == ["Cooked meat", "Pie shell"]

    def test_no_creation_section(self, sources):
        assert sources.ingredients_of("Raw beef") == []

    def test_drop_sources_query(self, sources):
        assert sources.drop_sources("Raw beef") == ["Cow", "Cow calf", "Combat level", "Hunter"]
        assert ("parse", "{{Drop sources|Raw beef}}") in sources.client.calls

    def test_droppers_filtered_to_known_monsters(self, sources):
        assert sources.droppers_of("Raw beef") == ["Cow"]
        assert sources.droppers_of("Raw bear meat") == ["Grizzly bear"]

    def test_lookup_failure_wrapped(self, make_client, graph):
        client = make_client(drop_sources={"Egg": ConnectionError("down")})
        broken = RecipeSources({}.get, client, TitleIndex.build(MONSTERS), graph)
        with pytest.raises(CollaboratorFailure) as e:
            broken.droppers_of("Egg")
        assert e.value.title == "Egg"


class TestSourceClosure:
    def test_meat_pie(self, sources):
        result = sources.closure("Meat pie", 1)
        assert {"Meat pie", "Cooked meat", "Pie shell", "Raw beef", "Pastry dough", "Pie dish"} <= result.reached
        assert result.terminals == {"Cow", "Grizzly bear"}
        assert result.failed == []

    def test_summary(self, sources):
        summary = source_summary(sources, ["Meat pie"], 1)
        assert summary["ingredient_monsters"] == {"Meat pie": ["Cow", "Grizzly bear"]}
        assert summary["direct_droppers"] == ["Dwarf"]
        assert summary["all_monsters"] == ["Cow", "Grizzly bear", "Dwarf"]
        assert summary["failed"] == []

    def test_direct_droppers_failures(self, make_client, graph):
        client = make_client(drop_sources={"Meat pie": ["Dwarf"], "Bad pie": RuntimeError("500")})
        s = RecipeSources({}.get, client, TitleIndex.build(MONSTERS), graph)
        assert direct_droppers(s, ["Meat pie", "Bad pie"]) == (["Dwarf"], ["Bad pie"])


class TestRankings:
    RANKED = [("Dragon", 79), ("Dwarf", 7), ("Cow", 2), ("Imp", 2)]

    def test_top_strongest(self):
        assert top_strongest(self.RANKED, 2) == [("Dragon", 79), ("Dwarf", 7)]

    def test_top_weakest(self):
        assert top_weakest(self.RANKED, 3) == [("Cow", 2), ("Imp", 2), ("Dwarf", 7)]
