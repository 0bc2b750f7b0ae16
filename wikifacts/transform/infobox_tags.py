from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional

import mwparserfromhell

from configs.settings import CACHE_DIR_PAGES, FACTS_PATH, configure_logging
from wikifacts.crawl.page_cache import PageCache
from wikifacts.transform.extract_facts import ERROR, SKIPPED, STORED, log_progress, summarize
from wikifacts.transform.fact_graph import FactGraph
from wikifacts.transform.template_parsing import parse_params

logger = logging.getLogger(__name__)

NO_INFOBOX = "no-infobox"

TRAILING_DIGITS_RE = re.compile(r"\d+$")


class TagOutcome(NamedTuple):
    title: str
    status: str
    reason: Optional[str] = None  # infobox name when stored, skip reason otherwise


def normalize_template_name(name: str) -> str:
    return " ".join(name.replace("_", " ").split())


def first_infobox(markup: Optional[str]) -> Optional[Any]:
    """First Infobox* template node on the page (document order)."""
    if not isinstance(markup, str) or not markup.strip():
        return None
    code = mwparserfromhell.parse(markup)
    for t in code.filter_templates(recursive=True):
        if normalize_template_name(str(t.name)).lower().startswith("infobox"):
            return t
    return None


def first_infobox_name(markup: Optional[str]) -> Optional[str]:
    t = first_infobox(markup)
    return normalize_template_name(str(t.name)) if t is not None else None


def parse_first_infobox(markup: Optional[str]) -> Optional[Dict[str, Any]]:
    """{"infobox": name, "params": {...}} or None."""
    t = first_infobox(markup)
    if t is None:
        return None
    # same line-based params as fact extraction, over the node's own text
    return {"infobox": normalize_template_name(str(t.name)), "params": parse_params(str(t))}


def tag_page(store: FactGraph, title: str, markup: Optional[str]) -> TagOutcome:
    parsed = parse_first_infobox(markup)
    if parsed is None:
        return TagOutcome(title, SKIPPED, NO_INFOBOX)
    store.set_infobox_tag(title, parsed["infobox"], parsed["params"])
    return TagOutcome(title, STORED, parsed["infobox"])


def titles_missing_tags(store: FactGraph, pages: PageCache) -> List[str]:
    return sorted(t for t in pages.titles() if store.infobox_name(t) is None)


def iter_tag_outcomes(store: FactGraph, pages: PageCache, titles: Iterable[str]) -> Iterator[TagOutcome]:
    for title in titles:
        try:
            yield tag_page(store, title, pages.get_markup(title))
        except Exception as e:
            logger.warning("%s: tagging failed: %s", title, e)
            yield TagOutcome(title, ERROR, str(e))


# -------------------------
# Key analysis
# -------------------------
def top_infobox_keys(store: FactGraph, infobox_name: str, sample_n: int = 5000, top_n: int = 50) -> Dict[str, Any]:
    """Parameter key frequencies over (a sample of) the pages tagged with an infobox."""
    sample = store.titles_with_infobox(infobox_name)[:sample_n]
    maps = [p for p in (store.infobox_params(t) for t in sample) if p is not None]
    freqs = Counter(k for m in maps for k in m)
    top = sorted(freqs.items(), key=lambda kv: (-kv[1], kv[0]))[:top_n]
    return {
        "sampled": len(sample),
        "parsed": len(maps),
        "bad": len(sample) - len(maps),
        "top": [[k, n] for k, n in top],
    }


def base_key(key: str) -> str:
    """name12 -> name, bucketname3 -> bucketname, name -> name."""
    return TRAILING_DIGITS_RE.sub("", key)


def key_variants(keys: Iterable[str]) -> Dict[str, List[str]]:
    """Group numbered key spellings under their base key."""
    out: Dict[str, List[str]] = {}
    for k in sorted(set(keys)):
        out.setdefault(base_key(k), []).append(k)
    return out


if __name__ == "__main__":
    import argparse
    import json

    parser = argparse.ArgumentParser()
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_tag = sub.add_parser("tag", help="Tag mirrored pages with their first infobox")
    p_tag.add_argument("--all", action="store_true", help="Re-tag every page, not only untagged ones")
    p_tag.add_argument("--print_every", type=int, default=1000)

    p_keys = sub.add_parser("keys", help="Most frequent parameter keys for an infobox")
    p_keys.add_argument("--infobox", default="Infobox Item")
    p_keys.add_argument("--sample", type=int, default=5000)
    p_keys.add_argument("--top", type=int, default=50)

    for p in (p_tag, p_keys):
        p.add_argument("--pages", default=CACHE_DIR_PAGES)
        p.add_argument("--facts", default=FACTS_PATH)
    args = parser.parse_args()

    configure_logging()
    store = FactGraph.load(args.facts)

    if args.cmd == "tag":
        pages = PageCache(args.pages)
        titles = pages.titles() if args.all else titles_missing_tags(store, pages)
        outcomes = iter_tag_outcomes(store, pages, titles)
        summary = summarize(log_progress(outcomes, total=len(titles), every=args.print_every))
        store.save(args.facts)
        print(f"Done. titles={len(titles)}, stored={summary[STORED]}, "
              f"skipped={summary[SKIPPED]}, errors={summary[ERROR]}")
    else:
        report = top_infobox_keys(store, args.infobox, sample_n=args.sample, top_n=args.top)
        report["variants"] = {
            k: v for k, v in key_variants(k for k, _ in report["top"]).items() if len(v) > 1
        }
        print(json.dumps(report, indent=2, ensure_ascii=False))
