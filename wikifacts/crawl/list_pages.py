from __future__ import annotations

import os
import re
from typing import Any, Dict, Iterable, Optional

from configs.settings import CACHE_DIR_LISTS, configure_logging
from wikifacts.crawl.mw_client import MediaWikiClient
from wikifacts.crawl.page_cache import save_titles


def list_filename(s: str) -> str:
    s = s.strip().lower()
    s = re.sub(r"[^\w\-. ]+", "_", s, flags=re.UNICODE)
    s = s.replace(" ", "_")
    return s[:200]


def with_namespace(title: str, namespace: str) -> str:
    prefix = namespace + ":"
    if title.lower().startswith(prefix.lower()):
        return title
    return prefix + title


def iter_list(
    client: MediaWikiClient,
    list_name: str,
    continue_key: str,
    params: Dict[str, Any],
    limit: Optional[int] = None,
) -> Iterable[str]:
    """
    MediaWiki: action=query + list=<list_name>, following continue tokens.
    limit=None means unlimited.
    """
    token: Optional[str] = None
    yielded = 0

    while True:
        q: Dict[str, Any] = {"action": "query", "list": list_name}
        q.update(params)
        if token:
            q[continue_key] = token

        data = client.get_json(q)
        rows = data.get("query", {}).get(list_name, []) or []
        for row in rows:
            title = row.get("title")
            if title:
                yield title
                yielded += 1
                if limit is not None and yielded >= limit:
                    return

        cont = data.get("continue", {}) or {}
        token = cont.get(continue_key)
        if not token:
            return


def iter_category_members(
    client: MediaWikiClient,
    category: str,
    limit: Optional[int] = None,
    namespace: Optional[int] = 0,
) -> Iterable[str]:
    params: Dict[str, Any] = {"cmtitle": with_namespace(category, "Category"), "cmlimit": 500}
    if namespace is not None:
        params["cmnamespace"] = namespace
    return iter_list(client, "categorymembers", "cmcontinue", params, limit=limit)


def iter_embeddedin(
    client: MediaWikiClient,
    template_title: str,
    limit: Optional[int] = None,
    namespace: int = 0,
) -> Iterable[str]:
    """Pages that transclude the template."""
    params = {"eititle": with_namespace(template_title, "Template"), "eilimit": 500, "einamespace": namespace}
    return iter_list(client, "embeddedin", "eicontinue", params, limit=limit)


def iter_all_pages(client: MediaWikiClient, limit: Optional[int] = None, namespace: int = 0) -> Iterable[str]:
    params = {"aplimit": 500, "apnamespace": namespace}
    return iter_list(client, "allpages", "apcontinue", params, limit=limit)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", choices=["category", "template", "allpages"], required=True)
    parser.add_argument("--name", help="Category or template name (mode=category / template)")
    parser.add_argument("--limit", type=int, default=0, help="0 means unlimited")
    parser.add_argument("--out", help="Output file; default is derived from mode and name under the lists dir")
    args = parser.parse_args()

    if args.mode != "allpages" and not args.name:
        raise SystemExit(f"For --mode {args.mode} you must provide --name")

    configure_logging()
    lim = None if args.limit == 0 else args.limit
    client = MediaWikiClient()

    if args.mode == "category":
        titles_iter = iter_category_members(client, args.name, limit=lim)
    elif args.mode == "template":
        titles_iter = iter_embeddedin(client, args.name, limit=lim)
    else:
        titles_iter = iter_all_pages(client, limit=lim)

    out_path = args.out or os.path.join(CACHE_DIR_LISTS, f"{args.mode}_{list_filename(args.name or 'all')}.txt")
    n = save_titles(titles_iter, out_path)
    print(f"Done. Wrote {n} titles to {out_path}")
