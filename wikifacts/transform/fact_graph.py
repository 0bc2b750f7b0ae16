from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence
from urllib.parse import quote

from rdflib import Graph, Literal, Namespace, URIRef
from rdflib.namespace import RDF, RDFS

from configs.settings import KG_BASE, WIKI_BASE
from wikifacts.transform.entities import EntityKind, FactRecord, FieldTable

logger = logging.getLogger(__name__)

# -------------------------
# Namespaces
# -------------------------
SCHEMA = Namespace("http://schema.org/")
RES = Namespace(KG_BASE.rstrip("/") + "/resource/")
WF = Namespace(KG_BASE.rstrip("/") + "/vocab/")

KIND_CLASSES = {
    EntityKind.ITEM: WF.Item,
    EntityKind.MONSTER: WF.Monster,
    EntityKind.QUEST: WF.Quest,
}
CLASS_KINDS = {v: k for k, v in KIND_CLASSES.items()}


class ReplaceResult(NamedTuple):
    title: str
    field: str
    old_count: int
    new_count: int


class MultiValueDiff(NamedTuple):
    retract: List[str]
    add: List[str]


def add_prefixes(g: Graph) -> None:
    g.bind("schema", SCHEMA)
    g.bind("rdfs", RDFS)
    g.bind("wf", WF)


def uri_escape_title(title: str) -> str:
    """
    Percent-encode titles so URIs are always safe.
    """
    t = title.strip().replace(" ", "_")
    return quote(t, safe="ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_.~-")


def resource_uri(title: str) -> URIRef:
    return URIRef(str(RES) + uri_escape_title(title))


def wiki_url(title: str) -> URIRef:
    return URIRef(WIKI_BASE + uri_escape_title(title))


def clean_values(values: Optional[Iterable[Any]]) -> List[str]:
    out: List[str] = []
    for v in values or []:
        if not isinstance(v, str):
            continue
        t = v.strip()
        if t and t not in out:
            out.append(t)
    return out


def diff_multivalued(old: Sequence[str], new: Sequence[str]) -> MultiValueDiff:
    """Full-replace diff: retract old - new, add new - old (new order kept)."""
    old_set = set(old)
    new_set = set(new)
    return MultiValueDiff(
        retract=sorted(old_set - new_set),
        add=[v for v in new if v not in old_set],
    )


class FactGraph:
    """
    Fact store over an rdflib Graph.

    One resource per page title; typed facts hang off it as wf:<field>
    literals. Scalars are single-valued (replaced on upsert), multi-valued
    fields are replaced wholesale so stale values never accumulate.
    """

    def __init__(self, graph: Optional[Graph] = None):
        self.graph = graph if graph is not None else Graph()
        add_prefixes(self.graph)

    @classmethod
    def load(cls, path: str) -> "FactGraph":
        g = Graph()
        if os.path.exists(path):
            g.parse(path, format="turtle")
            logger.info("Loaded %s (triples=%d)", path, len(g))
        return cls(g)

    def save(self, path: str) -> str:
        parent = os.path.dirname(path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        self.graph.serialize(destination=path, format="turtle")
        logger.info("Wrote %s (triples=%d)", path, len(self.graph))
        return path

    def __len__(self) -> int:
        return len(self.graph)

    # -------------------------
    # Core triples
    # -------------------------
    def ensure_resource(self, title: str) -> URIRef:
        r = resource_uri(title)
        self.graph.set((r, WF.title, Literal(title)))
        self.graph.set((r, RDFS.label, Literal(title, lang="en")))
        self.graph.set((r, SCHEMA.url, wiki_url(title)))
        return r

    def has_title(self, title: str) -> bool:
        return (resource_uri(title), WF.title, None) in self.graph

    def kinds_of(self, title: str) -> List[EntityKind]:
        r = resource_uri(title)
        return sorted(
            (CLASS_KINDS[c] for c in self.graph.objects(r, RDF.type) if c in CLASS_KINDS),
            key=lambda k: k.value,
        )

    def titles_of_kind(self, kind: EntityKind) -> List[str]:
        return sorted(
            str(t)
            for r in self.graph.subjects(RDF.type, KIND_CLASSES[kind])
            for t in self.graph.objects(r, WF.title)
        )

    # -------------------------
    # Persistence contract
    # -------------------------
    def upsert_fact_record(self, record: FactRecord, table: Optional[FieldTable] = None) -> URIRef:
        """
        Write the scalar facts of a record. With a field table, declared
        scalars missing from the record are removed, so the stored state
        matches the latest extraction.
        """
        r = self.ensure_resource(record.title)
        self.graph.add((r, RDF.type, KIND_CLASSES[record.kind]))

        declared = table.scalar_fields if table is not None else []
        multivalued = set(table.multivalued_fields) if table is not None else set()

        for name in declared:
            if name not in record.fields:
                self.graph.remove((r, WF[name], None))

        for name, value in record.fields.items():
            if name in multivalued or isinstance(value, (list, tuple)):
                continue
            self.graph.set((r, WF[name], Literal(value)))
        return r

    def multivalued_values(self, title: str, field: str) -> List[str]:
        r = resource_uri(title)
        return sorted(str(o) for o in self.graph.objects(r, WF[field]))

    def replace_multivalued(self, title: str, field: str, new_values: Optional[Iterable[Any]]) -> ReplaceResult:
        r = self.ensure_resource(title)
        old = self.multivalued_values(title, field)
        new = clean_values(new_values)
        diff = diff_multivalued(old, new)

        for v in diff.retract:
            self.graph.remove((r, WF[field], Literal(v)))
        for v in diff.add:
            self.graph.add((r, WF[field], Literal(v)))

        return ReplaceResult(title=title, field=field, old_count=len(old), new_count=len(new))

    # -------------------------
    # Reads
    # -------------------------
    def value(self, title: str, field: str) -> Any:
        v = self.graph.value(resource_uri(title), WF[field])
        return v.toPython() if isinstance(v, Literal) else v

    def fact_record(self, title: str, table: FieldTable) -> Optional[FactRecord]:
        r = resource_uri(title)
        if (r, RDF.type, KIND_CLASSES[table.kind]) not in self.graph:
            return None

        fields: Dict[str, Any] = {}
        multivalued = table.multivalued_fields
        for name in [f.name for f in table.fields] + list(table.derived_fields):
            if name in multivalued:
                values = self.multivalued_values(title, name)
                if values:
                    fields[name] = values
            else:
                v = self.value(title, name)
                if v is not None:
                    fields[name] = v
        return FactRecord(title=title, kind=table.kind, fields=fields)

    # -------------------------
    # Infobox tags
    # -------------------------
    def set_infobox_tag(self, title: str, infobox_name: str, params: Dict[str, str]) -> None:
        r = self.ensure_resource(title)
        self.graph.set((r, WF.infobox, Literal(infobox_name)))
        self.graph.set((r, WF.infoboxParams, Literal(json.dumps(params, ensure_ascii=False))))

    def infobox_name(self, title: str) -> Optional[str]:
        v = self.graph.value(resource_uri(title), WF.infobox)
        return str(v) if v is not None else None

    def infobox_params(self, title: str) -> Optional[Dict[str, str]]:
        v = self.graph.value(resource_uri(title), WF.infoboxParams)
        if v is None:
            return None
        try:
            data = json.loads(str(v))
        except ValueError:
            logger.warning("Bad infobox params literal on %s", title)
            return None
        return data if isinstance(data, dict) else None

    def titles_with_infobox(self, infobox_name: str) -> List[str]:
        q = """
        PREFIX wf: <%s>
        SELECT DISTINCT ?title
        WHERE {
            ?r wf:infobox ?name ;
               wf:title ?title .
        }
        """ % str(WF)
        rows = self.graph.query(q, initBindings={"name": Literal(infobox_name)})
        return sorted(str(row[0]) for row in rows)

    def monsters_with_combat(self, titles: Iterable[str]) -> List[tuple]:
        """[(title, combat_level), ...] for titles with a known combat level, strongest first."""
        rows = []
        for t in dict.fromkeys(titles):
            c = self.value(t, "combat_level")
            if isinstance(c, int):
                rows.append((t, c))
        return sorted(rows, key=lambda row: (-row[1], row[0]))
