from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, NamedTuple, Optional

from configs.settings import CACHE_DIR_PAGES, configure_logging
from wikifacts.crawl.mw_client import MediaWikiClient
from wikifacts.crawl.page_cache import Page, PageCache, read_titles
from wikifacts.transform.extract_facts import ERROR, SKIPPED, STORED, log_progress, summarize

logger = logging.getLogger(__name__)


class FetchResult(NamedTuple):
    title: str
    status: str  # stored | skipped | error
    revision_id: Optional[int] = None
    error: Optional[str] = None


def now_iso8601() -> str:
    return datetime.now(timezone.utc).isoformat()


def first_page(data: Dict[str, Any]) -> Dict[str, Any]:
    # formatversion=2 gives a list, older formats a dict keyed by pageid
    pages = (data.get("query") or {}).get("pages") or []
    if isinstance(pages, dict):
        pages = list(pages.values())
    return pages[0] if pages else {}


def page_from_response(title: str, data: Dict[str, Any]) -> Page:
    page = first_page(data)
    if not page or page.get("missing") or page.get("invalid"):
        return Page(title=page.get("title") or title, error="missing", ingested_at=now_iso8601())

    revisions = page.get("revisions") or []
    rev = revisions[0] if revisions else {}
    main = (rev.get("slots") or {}).get("main") or {}
    markup = main.get("content") or main.get("*") or rev.get("*")

    categories = [c.get("title") for c in page.get("categories") or [] if isinstance(c, dict) and c.get("title")]

    return Page(
        title=page.get("title") or title,
        markup=markup,
        page_id=page.get("pageid"),
        ns=page.get("ns"),
        revision_id=rev.get("revid"),
        parent_id=rev.get("parentid"),
        timestamp=rev.get("timestamp"),
        categories=categories,
        ingested_at=now_iso8601(),
    )


def record_error(cache: PageCache, title: str, error: str) -> None:
    # keep previously mirrored markup; only flag the failed fetch
    page = cache.get_page(title) or Page(title=title)
    page.error = error
    page.ingested_at = now_iso8601()
    cache.put_page(page)


def fetch_one(client: MediaWikiClient, cache: PageCache, title: str, force: bool = False) -> FetchResult:
    try:
        data = client.fetch_latest_revision(title)
    except Exception as e:
        logger.warning("[FAIL] %s: %s", title, e)
        record_error(cache, title, str(e))
        return FetchResult(title, ERROR, error=str(e))

    page = page_from_response(title, data)
    if page.error:
        record_error(cache, page.title, page.error)
        return FetchResult(page.title, ERROR, error=page.error)

    existing = cache.get_page(page.title)
    if (not force) and existing is not None and existing.revision_id == page.revision_id and existing.markup:
        return FetchResult(page.title, SKIPPED, revision_id=page.revision_id)

    cache.put_page(page)
    return FetchResult(page.title, STORED, revision_id=page.revision_id)


def fetch_all(
    client: MediaWikiClient,
    cache: PageCache,
    titles: Iterable[str],
    force: bool = False,
) -> Iterator[FetchResult]:
    """Fetch each distinct title once, in first-seen order, lazily."""
    for t in dict.fromkeys(titles):
        yield fetch_one(client, cache, t, force=force)


if __name__ == "__main__":
    import argparse

    from wikifacts.crawl.list_pages import iter_category_members

    parser = argparse.ArgumentParser()
    parser.add_argument("--titles", help="Titles file, one per line")
    parser.add_argument("--category", help="Mirror every member of this category instead")
    parser.add_argument("--pages", default=CACHE_DIR_PAGES)
    parser.add_argument("--start", type=int, default=0)
    parser.add_argument("--limit", type=int, default=0, help="0 means unlimited")
    parser.add_argument("--force", action="store_true")
    parser.add_argument("--print_every", type=int, default=100)
    args = parser.parse_args()

    if not args.titles and not args.category:
        raise SystemExit("Provide --titles or --category")

    configure_logging()
    client = MediaWikiClient()
    cache = PageCache(args.pages)

    all_titles = read_titles(args.titles) if args.titles else list(iter_category_members(client, args.category))
    titles = all_titles[args.start : (args.start + args.limit) if args.limit else None]

    results = fetch_all(client, cache, titles, force=args.force)
    summary = summarize(log_progress(results, total=len(titles), every=args.print_every))

    print(f"Done. start={args.start}, fetched={len(titles)}, ok={summary[STORED]}, "
          f"skipped={summary[SKIPPED]}, fail={summary[ERROR]}")
    print(f"Index: {cache.index_path}")
