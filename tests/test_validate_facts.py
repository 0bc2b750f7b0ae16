import pytest
from rdflib import Literal

from wikifacts.shacl.validate_facts import analyze_violations, load_shapes, validate_facts
from wikifacts.transform.entities import EntityKind
from wikifacts.transform.extract_facts import store_record
from wikifacts.transform.fact_graph import WF, resource_uri

MONSTER = "{{Infobox Monster\n|combat=50\n|hitpoints=80\n|members=Yes\n|immunepoison=Immune\n|attributes=demon\n}}"
ITEM = "{{Infobox Item\n|id=2327\n|name=Meat pie\n|weight=0.25\n|members=No\n}}"


@pytest.fixture(scope="module")
def shapes():
    return load_shapes()


@pytest.fixture
def populated(store, tables, extractor):
    store_record(store, tables[EntityKind.MONSTER], extractor.extract_monster("Imp", MONSTER))
    store_record(store, tables[EntityKind.ITEM], extractor.extract_item("Meat pie", ITEM))
    return store


class TestValidateFacts:
    def test_extracted_facts_conform(self, populated, shapes):
        result = validate_facts(populated, shapes)
        assert result.conforms, result.report_text

    def test_wrong_datatype_reported(self, populated, shapes):
        populated.graph.add((resource_uri("Imp"), WF.combat_level, Literal("high")))
        result = validate_facts(populated, shapes)
        assert not result.conforms
        stats = analyze_violations(result.report_graph)
        assert any(key.startswith("combat_level") for key in stats)
        assert all(data["count"] >= 1 for data in stats.values())

    def test_unknown_immunity_reported(self, populated, shapes):
        populated.replace_multivalued("Imp", "immunity", ["Poison", "Magic"])
        result = validate_facts(populated, shapes)
        assert not result.conforms
        assert "immunity (In)" in analyze_violations(result.report_graph)
