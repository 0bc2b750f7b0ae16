"""
Food and drink discovery.

Candidates are the mainspace links of the wiki's food index page; a
candidate is consumable when its item facts have an "Eat" or "Drink"
inventory option. Item facts come from the fact graph, so candidates have to
be mirrored and extracted (kind=item) first.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List

from configs.settings import CACHE_DIR_LISTS, FACTS_PATH, configure_logging
from wikifacts.crawl.mw_client import MediaWikiClient
from wikifacts.transform.entities import FieldTable
from wikifacts.transform.fact_graph import FactGraph
from wikifacts.transform.value_parsing import dedupe

logger = logging.getLogger(__name__)

FOOD_INDEX_PAGE = "Food/All food"
CONSUME_OPTIONS = ("Eat", "Drink")


def mainspace_titles(links: Iterable[Dict[str, Any]]) -> List[str]:
    return dedupe(link.get("title") for link in links if link.get("ns") == 0 and link.get("title"))


def food_index_titles(client: MediaWikiClient, page: str = FOOD_INDEX_PAGE) -> List[str]:
    return mainspace_titles(client.page_links(page))


def is_consumable(store: FactGraph, items: FieldTable, title: str) -> bool:
    record = store.fact_record(title, items)
    if record is None:
        return False
    options = record.get("options")
    return isinstance(options, str) and any(o in options for o in CONSUME_OPTIONS)


def consumable_titles(store: FactGraph, items: FieldTable, titles: Iterable[str]) -> List[str]:
    out: List[str] = []
    for t in dedupe(titles):
        if is_consumable(store, items, t):
            out.append(t)
        else:
            logger.debug("not consumable: %s", t)
    return out


if __name__ == "__main__":
    import argparse
    import os

    from wikifacts.crawl.page_cache import save_titles
    from wikifacts.transform.entities import EntityKind, load_field_tables

    parser = argparse.ArgumentParser()
    parser.add_argument("--page", default=FOOD_INDEX_PAGE, help="Page whose links are the candidates")
    parser.add_argument("--facts", default=FACTS_PATH)
    parser.add_argument("--out", default=os.path.join(CACHE_DIR_LISTS, "consumables.txt"))
    args = parser.parse_args()

    configure_logging()
    store = FactGraph.load(args.facts)
    candidates = food_index_titles(MediaWikiClient(), args.page)
    found = consumable_titles(store, load_field_tables()[EntityKind.ITEM], candidates)
    n = save_titles(found, args.out)

    print(f"Done. candidates={len(candidates)}, consumables={n}, out={args.out}")
