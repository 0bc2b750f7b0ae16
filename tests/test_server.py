import pytest

from wikifacts.inference.closure import ImpliedEdges, closure
from wikifacts.server import create_app
from wikifacts.transform.entities import EntityKind
from wikifacts.transform.extract_facts import store_record

MONSTER = "{{Infobox Monster\n|combat=2\n|hitpoints=8\n|members=No\n}}"


@pytest.fixture
def populated(store, tables, extractor):
    store_record(store, tables[EntityKind.MONSTER], extractor.extract_monster("Cow", MONSTER))
    store.set_infobox_tag("Cow", "Infobox Monster", {"combat": "2"})
    return store


@pytest.fixture
def closure_fn():
    implied = ImpliedEdges({"cooked meat": ["Raw beef"]})
    edges = {"Meat pie": ["cooked meat"]}
    drops = {"Raw beef": ["Cow"]}
    return lambda title, depth: closure(title, depth, lambda t: edges.get(t, []), lambda t: drops.get(t, []), implied)


@pytest.fixture
def client(populated, tables, closure_fn):
    app = create_app(populated, closure_fn=closure_fn, tables=tables)
    app.config["TESTING"] = True
    return app.test_client()


class TestFacts:
    def test_json(self, client):
        resp = client.get("/facts/Cow")
        assert resp.status_code == 200
        data = resp.get_json()
        assert data["kinds"] == ["monster"]
        assert data["infobox"] == "Infobox Monster"
        assert data["facts"]["monster"] == {"combat_level": 2, "hitpoints": 8, "members": False}

    def test_unknown(self, client):
        assert client.get("/facts/Pig").status_code == 404

    def test_turtle(self, client):
        resp = client.get("/facts/Cow", headers={"Accept": "text/turtle"})
        assert resp.status_code == 200
        assert resp.mimetype == "text/turtle"
        assert "combat_level" in resp.get_data(as_text=True)


class TestKinds:
    def test_titles(self, client):
        data = client.get("/kinds/monster").get_json()
        assert data == {"kind": "monster", "count": 1, "titles": ["Cow"]}

    def test_unknown_kind(self, client):
        assert client.get("/kinds/dragon").status_code == 404

    def test_stats(self, client):
        data = client.get("/api/stats").get_json()
        assert data["kinds"] == {"item": 0, "monster": 1, "quest": 0}
        assert data["total_triples"] > 0


class TestClosure:
    def test_closure(self, client):
        data = client.get("/closure/Meat%20pie?depth=2").get_json()
        assert data["root"] == "Meat pie"
        assert data["terminals"] == ["Cow"]
        assert "Raw beef" in data["reached"]

    def test_bad_depth(self, client):
        assert client.get("/closure/Meat%20pie?depth=deep").status_code == 400
        assert client.get("/closure/Meat%20pie?depth=99").status_code == 400

    def test_not_configured(self, populated, tables):
        app = create_app(populated, tables=tables)
        assert app.test_client().get("/closure/Meat%20pie").status_code == 501
