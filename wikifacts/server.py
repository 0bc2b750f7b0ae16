from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, jsonify, request
from rdflib import Graph

from configs.settings import CACHE_DIR_PAGES, FACTS_PATH, configure_logging
from wikifacts.inference.closure import ClosureResult
from wikifacts.transform.entities import EntityKind, FieldTable, load_field_tables
from wikifacts.transform.fact_graph import FactGraph, add_prefixes, resource_uri

logger = logging.getLogger(__name__)

ClosureFn = Callable[[str, int], ClosureResult]

DEFAULT_DEPTH = 3
MAX_DEPTH = 10


# ---------------------------
# Content negotiation
# ---------------------------
def wants_turtle() -> bool:
    accept = (request.headers.get("Accept") or "").lower()
    return ("text/turtle" in accept) or request.args.get("format") == "turtle"


def resource_graph(store: FactGraph, title: str) -> Graph:
    g = Graph()
    add_prefixes(g)
    for triple in store.graph.triples((resource_uri(title), None, None)):
        g.add(triple)
    return g


def entity_json(store: FactGraph, tables: Dict[EntityKind, FieldTable], title: str) -> Dict[str, Any]:
    facts: Dict[str, Any] = {}
    for kind in store.kinds_of(title):
        record = store.fact_record(title, tables[kind])
        if record is not None:
            facts[kind.value] = record.fields
    return {
        "title": title,
        "kinds": [k.value for k in store.kinds_of(title)],
        "infobox": store.infobox_name(title),
        "facts": facts,
    }


def create_app(
    store: FactGraph,
    closure_fn: Optional[ClosureFn] = None,
    tables: Optional[Dict[EntityKind, FieldTable]] = None,
) -> Flask:
    """Read-only JSON API over a fact graph and, when given, a closure function."""
    tables = tables if tables is not None else load_field_tables()
    app = Flask(__name__)

    @app.route("/api/stats")
    def api_stats():
        return jsonify({
            "total_triples": len(store),
            "kinds": {k.value: len(store.titles_of_kind(k)) for k in EntityKind},
        })

    @app.route("/facts/<path:title>")
    def facts(title: str):
        if not store.has_title(title):
            return jsonify({"error": f"Unknown title: {title}"}), 404
        if wants_turtle():
            data = resource_graph(store, title).serialize(format="turtle")
            return Response(data, mimetype="text/turtle")
        return jsonify(entity_json(store, tables, title))

    @app.route("/kinds/<kind>")
    def titles_of_kind(kind: str):
        try:
            k = EntityKind(kind)
        except ValueError:
            return jsonify({"error": f"Unknown kind: {kind}"}), 404
        titles = store.titles_of_kind(k)
        return jsonify({"kind": k.value, "count": len(titles), "titles": titles})

    @app.route("/closure/<path:title>")
    def title_closure(title: str):
        if closure_fn is None:
            return jsonify({"error": "Closure queries are not configured"}), 501
        try:
            depth = int(request.args.get("depth", DEFAULT_DEPTH))
        except ValueError:
            return jsonify({"error": "depth must be an integer"}), 400
        if depth > MAX_DEPTH:
            return jsonify({"error": f"depth must be <= {MAX_DEPTH}"}), 400
        return jsonify(closure_fn(title, depth).to_dict())

    return app


if __name__ == "__main__":
    import argparse

    from wikifacts.crawl.mw_client import MediaWikiClient
    from wikifacts.crawl.page_cache import PageCache
    from wikifacts.inference.recipe_sources import RecipeSources
    from wikifacts.transform.title_index import TitleIndex

    parser = argparse.ArgumentParser()
    parser.add_argument("--facts", default=FACTS_PATH)
    parser.add_argument("--pages", default=CACHE_DIR_PAGES)
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=5000)
    parser.add_argument("--debug", action="store_true")
    args = parser.parse_args()

    configure_logging()
    store = FactGraph.load(args.facts)
    tables = load_field_tables()
    monsters = TitleIndex.from_store(store, tables[EntityKind.MONSTER])
    sources = RecipeSources(PageCache(args.pages).get_markup, MediaWikiClient(), monsters)

    app = create_app(store, closure_fn=sources.closure, tables=tables)
    app.run(host=args.host, port=args.port, debug=args.debug)
