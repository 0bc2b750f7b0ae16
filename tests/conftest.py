"""
Shared pytest fixtures. Nothing here touches the network.
"""

import re

import pytest

from wikifacts.crawl.page_cache import PageCache
from wikifacts.transform.entities import load_field_tables
from wikifacts.transform.extract_facts import FactExtractor
from wikifacts.transform.fact_graph import FactGraph

DROP_SOURCES_RE = re.compile(r"\{\{Drop sources\|(.+)\}\}")


class FakeClient:
    """
    Stands in for MediaWikiClient.

    revisions: title -> revision dict ({"revid", "content", ...}) or an Exception
    drop_sources: title -> list of mainspace titles (or an Exception)
    lists: list name -> list of response dicts returned in order by get_json
    rendered_links: page -> link dicts returned by page_links
    """

    def __init__(self, revisions=None, drop_sources=None, lists=None, rendered_links=None):
        self.rendered_links = rendered_links or {}
        self.revisions = revisions or {}
        self.drop_sources = drop_sources or {}
        self.lists = {k: list(v) for k, v in (lists or {}).items()}
        self.calls = []

    def fetch_latest_revision(self, title):
        self.calls.append(("revision", title))
        rev = self.revisions.get(title)
        if isinstance(rev, Exception):
            raise rev
        if rev is None:
            return {"query": {"pages": [{"title": title, "missing": True}]}}
        return {
            "query": {
                "pages": [{
                    "pageid": rev.get("pageid", 1),
                    "ns": 0,
                    "title": rev.get("title", title),
                    "revisions": [{
                        "revid": rev["revid"],
                        "parentid": rev.get("parentid", 0),
                        "timestamp": "2024-01-01T00:00:00Z",
                        "slots": {"main": {"content": rev["content"]}},
                    }],
                    "categories": [{"ns": 14, "title": c} for c in rev.get("categories", [])],
                }]
            }
        }

    def parse_links(self, wikitext):
        self.calls.append(("parse", wikitext))
        m = DROP_SOURCES_RE.fullmatch(wikitext)
        title = m.group(1) if m else wikitext
        found = self.drop_sources.get(title, [])
        if isinstance(found, Exception):
            raise found
        return [{"ns": 0, "title": t, "exists": True} for t in found]

    def page_links(self, page):
        self.calls.append(("page_links", page))
        return list(self.rendered_links.get(page, []))

    def get_json(self, params):
        self.calls.append(("get_json", dict(params)))
        return self.lists[params["list"]].pop(0)


@pytest.fixture
def tables():
    return load_field_tables()


@pytest.fixture
def extractor(tables):
    return FactExtractor(tables)


@pytest.fixture
def store():
    return FactGraph()


@pytest.fixture
def page_cache(tmp_path):
    return PageCache(str(tmp_path / "pages"))


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def make_client():
    return FakeClient
