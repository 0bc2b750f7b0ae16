"""
SHACL validation of the fact graph.

- Loads the fact graph (data/kg/facts.ttl)
- Loads the shapes (configs/fact_shapes.ttl), rebased onto the configured vocab
- Runs pySHACL and groups violations per (property, constraint)
- Writes the full report to data/kg/shacl_report.txt
"""

from __future__ import annotations

import logging
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, NamedTuple

from pyshacl import validate
from rdflib import Graph

from configs.settings import FACT_SHAPES_PATH, FACTS_PATH, SHACL_REPORT_PATH, configure_logging
from wikifacts.transform.fact_graph import WF, FactGraph

logger = logging.getLogger(__name__)

# vocab IRI the shapes file is written against
SHAPES_VOCAB = "http://localhost:5000/vocab/"


class ValidationResult(NamedTuple):
    conforms: bool
    report_graph: Graph
    report_text: str


def load_shapes(path: str = FACT_SHAPES_PATH) -> Graph:
    text = Path(path).read_text(encoding="utf-8")
    if str(WF) != SHAPES_VOCAB:
        text = text.replace(SHAPES_VOCAB, str(WF))
    g = Graph()
    g.parse(data=text, format="turtle")
    return g


def validate_facts(store: FactGraph, shapes: Graph) -> ValidationResult:
    conforms, report_graph, report_text = validate(
        data_graph=store.graph,
        shacl_graph=shapes,
        inference="rdfs",
        abort_on_first=False,
        allow_infos=True,
        allow_warnings=True,
    )
    return ValidationResult(bool(conforms), report_graph, report_text)


def analyze_violations(report_graph: Graph) -> Dict[str, Dict[str, Any]]:
    """'<property> (<constraint>)' -> {count, entities}."""
    stats: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"count": 0, "entities": set()})

    query = """
    PREFIX sh: <http://www.w3.org/ns/shacl#>

    SELECT ?focusNode ?path ?constraint
    WHERE {
        ?result a sh:ValidationResult ;
                sh:focusNode ?focusNode .
        OPTIONAL { ?result sh:resultPath ?path }
        OPTIONAL { ?result sh:sourceConstraintComponent ?constraint }
    }
    """
    for row in report_graph.query(query):
        prop = str(row.path).split("/")[-1].split("#")[-1] if row.path else "unknown_property"
        if row.constraint:
            constraint = str(row.constraint).split("#")[-1].replace("ConstraintComponent", "")
        else:
            constraint = "unknown_constraint"

        key = f"{prop} ({constraint})"
        stats[key]["count"] += 1
        stats[key]["entities"].add(str(row.focusNode).split("/")[-1])
    return dict(stats)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--facts", default=FACTS_PATH)
    parser.add_argument("--shapes", default=FACT_SHAPES_PATH)
    parser.add_argument("--report", default=SHACL_REPORT_PATH)
    args = parser.parse_args()

    configure_logging()
    store = FactGraph.load(args.facts)
    shapes = load_shapes(args.shapes)
    logger.info("Shapes graph loaded (%d triples)", len(shapes))

    result = validate_facts(store, shapes)

    Path(args.report).parent.mkdir(parents=True, exist_ok=True)
    with open(args.report, "w", encoding="utf-8") as f:
        f.write(result.report_text)

    stats = analyze_violations(result.report_graph)
    for key, data in sorted(stats.items(), key=lambda kv: -kv[1]["count"])[:10]:
        print(f"  {key}: {data['count']} violations, {len(data['entities'])} entities")

    print(f"Done. conforms={result.conforms}, violation_types={len(stats)}, report={args.report}")
