from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from configs.settings import CACHE_DIR_PAGES, FACTS_PATH, RECIPE_GRAPH_PATH, configure_logging
from wikifacts.errors import CollaboratorFailure
from wikifacts.inference.closure import ClosureResult, ImpliedEdges, closure
from wikifacts.transform.fact_graph import FactGraph
from wikifacts.transform.title_index import TitleIndex
from wikifacts.transform.value_parsing import dedupe, plinks_in_text, wikilinks_in_text

logger = logging.getLogger(__name__)

# numbers, years and "12 March"-style dates show up as links around ==Creation==
JUNK_TOKEN_RES = (
    re.compile(r"\d+"),
    re.compile(r"\d{1,2}\s+[A-Za-z]+"),
)


@dataclass(frozen=True)
class RecipeGraph:
    creation_marker: str
    snippet_radius: int
    implied_edges: ImpliedEdges
    ingredient_stoplist: FrozenSet[str]
    ingredient_prefix_stoplist: Tuple[str, ...]
    drop_source_stoplist: FrozenSet[str]
    drop_source_prefix_stoplist: Tuple[str, ...]

    @classmethod
    def load(cls, path: str = RECIPE_GRAPH_PATH) -> "RecipeGraph":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(
            creation_marker=data.get("creation_marker", "==Creation=="),
            snippet_radius=int(data.get("snippet_radius", 2000)),
            implied_edges=ImpliedEdges(data.get("implied_edges", {})),
            ingredient_stoplist=frozenset(data.get("ingredient_stoplist", [])),
            ingredient_prefix_stoplist=tuple(data.get("ingredient_prefix_stoplist", [])),
            drop_source_stoplist=frozenset(data.get("drop_source_stoplist", [])),
            drop_source_prefix_stoplist=tuple(data.get("drop_source_prefix_stoplist", [])),
        )

    def is_ingredient(self, title: Optional[str]) -> bool:
        if not isinstance(title, str) or not title.strip():
            return False
        if title.startswith(self.ingredient_prefix_stoplist):
            return False
        if any(r.fullmatch(title) for r in JUNK_TOKEN_RES):
            return False
        return title not in self.ingredient_stoplist

    def is_drop_source(self, title: Optional[str]) -> bool:
        if not isinstance(title, str) or not title.strip():
            return False
        if title.startswith(self.drop_source_prefix_stoplist):
            return False
        return title not in self.drop_source_stoplist


def snippet(markup: Optional[str], marker: str, radius: int) -> Optional[str]:
    """Text within radius characters of the first occurrence of marker."""
    if not isinstance(markup, str) or not markup.strip():
        return None
    i = markup.find(marker)
    if i < 0:
        return None
    return markup[max(0, i - radius) : min(len(markup), i + radius)]


class RecipeSources:
    """
    The two relations the source closure walks:
      ingredients_of(title) -> ingredient titles, read from the ==Creation== area
      droppers_of(title)    -> monsters dropping it, via the wiki's {{Drop sources}}
    """

    def __init__(
        self,
        get_markup: Callable[[str], Optional[str]],
        client: Any,
        monsters: TitleIndex,
        graph: Optional[RecipeGraph] = None,
    ):
        self.get_markup = get_markup
        self.client = client
        self.monsters = monsters
        self.graph = graph if graph is not None else RecipeGraph.load()

    def ingredients_of(self, title: str) -> List[str]:
        s = snippet(self.get_markup(title), self.graph.creation_marker, self.graph.snippet_radius)
        if s is None:
            return []
        tokens = plinks_in_text(s) + wikilinks_in_text(s, excluded_prefixes=())
        return dedupe(t.strip() for t in tokens if self.graph.is_ingredient(t.strip()))

    def drop_sources(self, title: str) -> List[str]:
        """Mainspace titles the wiki lists under {{Drop sources|title}}."""
        try:
            links = self.client.parse_links("{{Drop sources|%s}}" % title)
        except Exception as e:
            raise CollaboratorFailure(title, e) from e
        return dedupe(
            link["title"] for link in links
            if isinstance(link, dict) and link.get("ns") == 0 and link.get("title")
        )

    def droppers_of(self, title: str) -> List[str]:
        """Drop sources that are monsters known to the fact graph (canonical titles)."""
        out: List[str] = []
        for t in self.drop_sources(title):
            if not self.graph.is_drop_source(t):
                continue
            m = self.monsters.canonical(t)
            if m is not None and m not in out:
                out.append(m)
        return out

    def closure(self, root: str, max_depth: int) -> ClosureResult:
        return closure(root, max_depth, self.ingredients_of, self.droppers_of, self.graph.implied_edges)


# -------------------------
# Analysis over many roots
# -------------------------
def closures_for(sources: RecipeSources, titles: Iterable[str], max_depth: int) -> Dict[str, ClosureResult]:
    out: Dict[str, ClosureResult] = {}
    for t in dict.fromkeys(titles):
        out[t] = sources.closure(t, max_depth)
        logger.info("%s: reached=%d terminals=%d failed=%d",
                    t, len(out[t].reached), len(out[t].terminals), len(out[t].failed))
    return out


def ingredient_monsters(closures: Dict[str, ClosureResult]) -> Dict[str, List[str]]:
    return {t: sorted(cl.terminals) for t, cl in closures.items()}


def direct_droppers(sources: RecipeSources, titles: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Monsters dropping any of the titles themselves; (droppers, failed titles)."""
    droppers: List[str] = []
    failed: List[str] = []
    for t in dict.fromkeys(titles):
        try:
            found = sources.droppers_of(t)
        except CollaboratorFailure as e:
            logger.warning("%s", e)
            failed.append(t)
            continue
        droppers.extend(m for m in found if m not in droppers)
    return droppers, failed


def source_summary(sources: RecipeSources, titles: Iterable[str], max_depth: int) -> Dict[str, Any]:
    """Ingredient-graph monsters per title, direct droppers, and their union."""
    titles = list(dict.fromkeys(titles))
    closures = closures_for(sources, titles, max_depth)
    per_title = ingredient_monsters(closures)
    via_ingredients = dedupe(m for ms in per_title.values() for m in ms)
    direct, direct_failed = direct_droppers(sources, titles)
    failed = dedupe([f for cl in closures.values() for f in cl.failed] + direct_failed)
    return {
        "closures": closures,
        "ingredient_monsters": per_title,
        "ingredient_monster_union": via_ingredients,
        "direct_droppers": direct,
        "all_monsters": dedupe(via_ingredients + direct),
        "failed": failed,
    }


def top_strongest(ranked: List[Tuple[str, int]], n: int) -> List[Tuple[str, int]]:
    """ranked is FactGraph.monsters_with_combat output (strongest first)."""
    return list(ranked[:n])


def top_weakest(ranked: List[Tuple[str, int]], n: int) -> List[Tuple[str, int]]:
    return sorted(ranked, key=lambda row: (row[1], row[0]))[:n]


if __name__ == "__main__":
    import argparse

    from wikifacts.crawl.list_pages import iter_category_members
    from wikifacts.crawl.mw_client import MediaWikiClient
    from wikifacts.crawl.page_cache import PageCache
    from wikifacts.transform.entities import EntityKind, load_field_tables

    parser = argparse.ArgumentParser()
    parser.add_argument("--category", default="Pies", help="Roots are the members of this category")
    parser.add_argument("--title", help="Single root instead of a category")
    parser.add_argument("--depth", type=int, default=3)
    parser.add_argument("--top", type=int, default=10)
    parser.add_argument("--pages", default=CACHE_DIR_PAGES)
    parser.add_argument("--facts", default=FACTS_PATH)
    args = parser.parse_args()

    configure_logging()
    store = FactGraph.load(args.facts)
    client = MediaWikiClient()
    monsters = TitleIndex.from_store(store, load_field_tables()[EntityKind.MONSTER])
    sources = RecipeSources(PageCache(args.pages).get_markup, client, monsters)

    roots = [args.title] if args.title else list(iter_category_members(client, args.category))
    summary = source_summary(sources, roots, args.depth)
    ranked = store.monsters_with_combat(summary["all_monsters"])

    print(json.dumps({
        "ingredient_monsters": summary["ingredient_monsters"],
        "direct_droppers": summary["direct_droppers"],
        "strongest": top_strongest(ranked, args.top),
        "weakest": top_weakest(ranked, args.top),
        "failed": summary["failed"],
    }, indent=2, ensure_ascii=False))
    print(f"Done. roots={len(roots)}, monsters={len(summary['all_monsters'])}, "
          f"ranked={len(ranked)}, failed={len(summary['failed'])}")
