from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

from configs.settings import CACHE_DIR_PAGES, FACTS_PATH, configure_logging
from wikifacts.errors import MalformedTemplate, TemplateNotFound
from wikifacts.transform.entities import EntityKind, FactRecord, FieldTable, load_field_tables
from wikifacts.transform.fact_graph import (
    FactGraph,
    MultiValueDiff,
    ReplaceResult,
    clean_values,
    diff_multivalued,
)
from wikifacts.transform.template_parsing import find_template, parse_params
from wikifacts.transform.title_index import TitleIndex

logger = logging.getLogger(__name__)

STORED = "stored"
SKIPPED = "skipped"
ERROR = "error"

# skip reasons
NO_MARKUP = "no-markup"
NO_TEMPLATE = "no-template"
MALFORMED = "malformed-template"


class Outcome(NamedTuple):
    title: str
    status: str
    reason: Optional[str] = None
    record: Optional[FactRecord] = None


class FactExtractor:
    """
    Per-kind extraction: template block -> params -> typed FactRecord.

    Pure: the same (title, markup) always yields an identical record.
    """

    def __init__(self, tables: Optional[Dict[EntityKind, FieldTable]] = None):
        self.tables = tables if tables is not None else load_field_tables()

    def table(self, kind: EntityKind) -> FieldTable:
        return self.tables[kind]

    def scan(self, kind: EntityKind, title: str, markup: Optional[str]) -> Tuple[Optional[FactRecord], Optional[str]]:
        """(record, None) on success, (None, skip reason) otherwise."""
        if not isinstance(markup, str) or not markup.strip():
            return None, NO_MARKUP

        table = self.table(kind)
        try:
            block = find_template(markup, table.template)
        except MalformedTemplate as e:
            logger.warning("%s: %s", title, e)
            return None, MALFORMED
        except TemplateNotFound:
            logger.debug("%s: no {{%s}}", title, table.template)
            return None, NO_TEMPLATE

        params = parse_params(block.text)
        fields = {}
        for spec in table.fields:
            value = spec.normalize(params)
            if value is not None:
                fields[spec.name] = value
        return FactRecord(title=title, kind=kind, fields=fields), None

    def extract(self, kind: EntityKind, title: str, markup: Optional[str]) -> Optional[FactRecord]:
        record, _ = self.scan(kind, title, markup)
        return record

    def extract_item(self, title: str, markup: Optional[str]) -> Optional[FactRecord]:
        return self.extract(EntityKind.ITEM, title, markup)

    def extract_monster(self, title: str, markup: Optional[str]) -> Optional[FactRecord]:
        return self.extract(EntityKind.MONSTER, title, markup)

    def extract_quest(self, title: str, markup: Optional[str]) -> Optional[FactRecord]:
        return self.extract(EntityKind.QUEST, title, markup)


def resolve_quest_links(
    record: FactRecord,
    item_index: TitleIndex,
    quest_index: TitleIndex,
) -> FactRecord:
    """
    Add the link-derived quest facts:
      required_item / recommended_item -> canonical item titles
      prerequisite_quest               -> canonical quest titles
    Links that resolve to no known page are dropped.
    """
    fields = dict(record.fields)

    def canonical(index: TitleIndex, links: List[str]) -> List[str]:
        out: List[str] = []
        for link in links:
            t = index.canonical(link)
            if t is not None and t not in out:
                out.append(t)
        return out

    required = canonical(item_index, record.get("required_link", []))
    recommended = canonical(item_index, record.get("recommended_link", []))
    prerequisites = canonical(quest_index, record.get("prerequisite_link", []))

    if required:
        fields["required_item"] = required
    if recommended:
        fields["recommended_item"] = recommended
    if prerequisites:
        fields["prerequisite_quest"] = prerequisites
    return FactRecord(title=record.title, kind=record.kind, fields=fields)


def multivalued_diffs(store: FactGraph, table: FieldTable, record: FactRecord) -> Dict[str, MultiValueDiff]:
    """What a store_record call would retract and add, per multi-valued field."""
    return {
        name: diff_multivalued(store.multivalued_values(record.title, name), clean_values(record.get(name, [])))
        for name in table.multivalued_fields
    }


def store_record(store: FactGraph, table: FieldTable, record: FactRecord) -> List[ReplaceResult]:
    """
    Upsert scalars, then full-replace every multi-valued field of the kind
    (an omitted field replaces with nothing, retracting stale values).
    """
    store.upsert_fact_record(record, table)
    return [
        store.replace_multivalued(record.title, name, record.get(name, []))
        for name in table.multivalued_fields
    ]


def iter_outcomes(
    extractor: FactExtractor,
    kind: EntityKind,
    titles: Iterable[str],
    get_markup: Callable[[str], Optional[str]],
    store: FactGraph,
    resolve: Optional[Callable[[FactRecord], FactRecord]] = None,
) -> Iterator[Outcome]:
    """
    Lazily extract and store one title at a time. A failing title becomes an
    "error" outcome; the run always continues.
    """
    table = extractor.table(kind)
    for title in titles:
        try:
            record, reason = extractor.scan(kind, title, get_markup(title))
            if record is None:
                yield Outcome(title, SKIPPED, reason)
                continue
            if resolve is not None:
                record = resolve(record)
            store_record(store, table, record)
            yield Outcome(title, STORED, None, record)
        except Exception as e:
            logger.warning("%s: extraction failed: %s", title, e)
            yield Outcome(title, ERROR, str(e))


def log_progress(outcomes: Iterable[Outcome], total: Optional[int] = None, every: int = 100) -> Iterator[Outcome]:
    """Pass-through observer that logs running counts every N outcomes."""
    counts: Counter = Counter()
    i = 0
    for outcome in outcomes:
        i += 1
        counts[outcome.status] += 1
        if i == 1 or i == total or (every > 0 and i % every == 0):
            logger.info(
                "[%d/%s] %-35s | stored=%d skipped=%d errors=%d",
                i, total if total is not None else "?", outcome.title,
                counts[STORED], counts[SKIPPED], counts[ERROR],
            )
        yield outcome


def summarize(outcomes: Iterable[Outcome]) -> Dict[str, int]:
    counts = Counter(o.status for o in outcomes)
    return {STORED: counts[STORED], SKIPPED: counts[SKIPPED], ERROR: counts[ERROR]}


if __name__ == "__main__":
    import argparse

    from wikifacts.crawl.page_cache import PageCache, read_titles

    parser = argparse.ArgumentParser()
    parser.add_argument("--kind", choices=[k.value for k in EntityKind], required=True)
    parser.add_argument("--titles", help="Titles file; default is every page tagged with the kind's infobox")
    parser.add_argument("--pages", default=CACHE_DIR_PAGES)
    parser.add_argument("--facts", default=FACTS_PATH)
    parser.add_argument("--print_every", type=int, default=100)
    args = parser.parse_args()

    configure_logging()
    kind = EntityKind(args.kind)
    extractor = FactExtractor()
    store = FactGraph.load(args.facts)
    pages = PageCache(args.pages)

    table = extractor.table(kind)
    titles = read_titles(args.titles) if args.titles else store.titles_with_infobox(table.infobox)

    resolve = None
    if kind is EntityKind.QUEST:
        item_index = TitleIndex.from_store(store, extractor.table(EntityKind.ITEM))
        quest_index = TitleIndex.from_store(store, table)
        resolve = lambda r: resolve_quest_links(r, item_index, quest_index)  # noqa: E731

    outcomes = iter_outcomes(extractor, kind, titles, pages.get_markup, store, resolve=resolve)
    summary = summarize(log_progress(outcomes, total=len(titles), every=args.print_every))
    store.save(args.facts)

    print(f"Done. kind={kind.value}, titles={len(titles)}, stored={summary[STORED]}, "
          f"skipped={summary[SKIPPED]}, errors={summary[ERROR]}")
