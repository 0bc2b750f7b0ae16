from __future__ import annotations

from typing import Dict, Iterable, Optional

from wikifacts.transform.entities import FieldTable
from wikifacts.transform.fact_graph import FactGraph


class TitleIndex:
    """
    Case-insensitive title lookup (link target -> canonical page title).

    Built explicitly and passed around; call refresh() after new pages of
    the indexed kind have been tagged or extracted.
    """

    def __init__(self, titles: Iterable[str] = ()):
        self._index: Dict[str, str] = {}
        self._fill(titles)

    @staticmethod
    def _key(title: str) -> str:
        return title.strip().lower()

    @classmethod
    def build(cls, titles: Iterable[str]) -> "TitleIndex":
        return cls(titles)

    @classmethod
    def from_store(cls, store: FactGraph, table: FieldTable) -> "TitleIndex":
        index = cls()
        index.refresh(store, table)
        return index

    def _fill(self, titles: Iterable[str]) -> None:
        index: Dict[str, str] = {}
        for t in sorted(set(titles)):
            index.setdefault(self._key(t), t)
        self._index = index

    def refresh(self, store: FactGraph, table: FieldTable) -> int:
        """Pages tagged with the kind's infobox plus pages already extracted as that kind."""
        titles = set(store.titles_with_infobox(table.infobox))
        titles.update(store.titles_of_kind(table.kind))
        self._fill(titles)
        return len(self._index)

    def canonical(self, link_target: Optional[str]) -> Optional[str]:
        if not isinstance(link_target, str):
            return None
        return self._index.get(self._key(link_target))

    def __contains__(self, title: object) -> bool:
        return isinstance(title, str) and self._key(title) in self._index

    def __len__(self) -> int:
        return len(self._index)
