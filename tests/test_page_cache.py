import json
import os

from wikifacts.crawl.page_cache import Page, PageCache, read_titles, safe_filename, save_titles


class TestSafeFilename:
    def test_readable_prefix(self):
        assert safe_filename("Meat pie").startswith("Meat_pie.")

    def test_collisions_kept_apart(self):
        assert safe_filename("A/B") != safe_filename("A?B")

    def test_stable(self):
        assert safe_filename("Cook's Assistant") == safe_filename("Cook's Assistant")


class TestPageCache:
    def test_put_and_get(self, page_cache):
        page = Page(title="Cow", markup="{{Infobox Monster}}", revision_id=10, categories=["Category:Cattle"])
        path = page_cache.put_page(page)
        assert os.path.exists(path)
        loaded = page_cache.get_page("Cow")
        assert loaded == page
        assert page_cache.get_markup("Cow") == "{{Infobox Monster}}"

    def test_missing(self, page_cache):
        assert page_cache.get_page("Nope") is None
        assert page_cache.get_markup("Nope") is None

    def test_error_page_has_no_markup(self, page_cache):
        page_cache.put_page(Page(title="Gone", error="missing"))
        assert page_cache.get_markup("Gone") is None

    def test_refetch_replaces_and_indexes_once(self, page_cache):
        page_cache.put_page(Page(title="Cow", markup="old", revision_id=1))
        page_cache.put_page(Page(title="Cow", markup="new", revision_id=2))
        page_cache.put_page(Page(title="Imp", markup="x", revision_id=3))
        assert page_cache.get_markup("Cow") == "new"
        assert page_cache.titles() == ["Cow", "Imp"]
        with open(page_cache.index_path, encoding="utf-8") as f:
            assert [json.loads(line)["title"] for line in f] == ["Cow", "Imp"]

    def test_iter_pages(self, page_cache):
        page_cache.put_page(Page(title="Cow", markup="a"))
        page_cache.put_page(Page(title="Imp", markup="b"))
        assert [p.title for p in page_cache.iter_pages()] == ["Cow", "Imp"]

    def test_unknown_keys_ignored(self):
        assert Page.from_dict({"title": "Cow", "extra": 1}).title == "Cow"

    def test_empty_index(self, page_cache):
        assert page_cache.titles() == []


class TestTitleFiles:
    def test_roundtrip(self, tmp_path):
        path = str(tmp_path / "lists" / "pies.txt")
        assert save_titles(["Meat pie", " ", "Apple pie\n"], path) == 2
        assert read_titles(path) == ["Meat pie", "Apple pie"]
