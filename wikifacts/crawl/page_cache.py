from __future__ import annotations

import hashlib
import json
import os
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from configs.settings import CACHE_DIR_PAGES, PAGES_INDEX_PATH


@dataclass
class Page:
    title: str
    markup: Optional[str] = None
    page_id: Optional[int] = None
    ns: Optional[int] = None
    revision_id: Optional[int] = None
    parent_id: Optional[int] = None
    timestamp: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    ingested_at: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Page":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def safe_filename(title: str) -> str:
    s = title.strip()
    s = re.sub(r"[^\w\-. ]+", "_", s, flags=re.UNICODE).replace(" ", "_")
    # "A/B" and "A?B" both flatten to "A_B"; a short hash keeps them apart
    digest = hashlib.sha1(title.encode("utf-8")).hexdigest()[:8]
    return f"{s[:180]}.{digest}"


def read_titles(path: str) -> List[str]:
    titles: List[str] = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            t = line.strip()
            if t:
                titles.append(t)
    return titles


def save_titles(titles: Iterable[str], out_path: str) -> int:
    parent = os.path.dirname(out_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    n = 0
    with open(out_path, "w", encoding="utf-8") as f:
        for t in titles:
            t = t.strip().replace("\n", " ")
            if t:
                f.write(t + "\n")
                n += 1
    return n


class PageCache:
    """
    Local page mirror: one JSON file per title plus an append-only jsonl index.
    A re-fetch replaces the page file.
    """

    def __init__(self, root: str = CACHE_DIR_PAGES, index_path: Optional[str] = None):
        self.root = root
        self.index_path = index_path or (
            PAGES_INDEX_PATH if root == CACHE_DIR_PAGES else os.path.join(root, "_index.jsonl")
        )

    def ensure_dirs(self) -> None:
        os.makedirs(self.root, exist_ok=True)
        parent = os.path.dirname(self.index_path)
        if parent:
            os.makedirs(parent, exist_ok=True)

    def path_for(self, title: str) -> str:
        return os.path.join(self.root, safe_filename(title) + ".json")

    def get_page(self, title: str) -> Optional[Page]:
        path = self.path_for(title)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return Page.from_dict(json.load(f))

    def get_markup(self, title: str) -> Optional[str]:
        """Markup source contract: None means no mirrored content."""
        page = self.get_page(title)
        if page is None or not isinstance(page.markup, str):
            return None
        return page.markup

    def put_page(self, page: Page) -> str:
        self.ensure_dirs()
        path = self.path_for(page.title)
        is_new = not os.path.exists(path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(page.to_dict(), f, ensure_ascii=False, indent=2)
        if is_new:
            # append-only jsonl (fast, no locking complexity)
            with open(self.index_path, "a", encoding="utf-8") as f:
                f.write(json.dumps({"title": page.title, "page_id": page.page_id}, ensure_ascii=False) + "\n")
        return path

    def titles(self) -> List[str]:
        if not os.path.exists(self.index_path):
            return []
        out: Dict[str, None] = {}
        with open(self.index_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                title = json.loads(line).get("title")
                if title:
                    out[title] = None
        return list(out)

    def iter_pages(self) -> Iterator[Page]:
        for title in self.titles():
            page = self.get_page(title)
            if page is not None:
                yield page
