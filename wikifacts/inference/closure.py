from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set

from configs.settings import RECIPE_GRAPH_PATH

logger = logging.getLogger(__name__)

EdgeFn = Callable[[str], Iterable[str]]


class ImpliedEdges:
    """
    Fixed substitution table: title -> extra related titles that the markup
    leaves implicit (e.g. "cooked meat" -> the raw meats). Keys match
    case-insensitively. Read-only after construction.
    """

    def __init__(self, table: Optional[Mapping[str, Iterable[str]]] = None):
        self._table: Dict[str, List[str]] = {}
        for k, v in (table or {}).items():
            self._table[self._key(k)] = list(dict.fromkeys(t.strip() for t in v if t and t.strip()))

    @staticmethod
    def _key(title: str) -> str:
        return title.strip().lower()

    @classmethod
    def load(cls, path: str = RECIPE_GRAPH_PATH) -> "ImpliedEdges":
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls(data.get("implied_edges", {}))

    def for_title(self, title: str) -> List[str]:
        return list(self._table.get(self._key(title), []))

    def expand(self, titles: Iterable[str]) -> List[str]:
        """Each title followed by its implied titles, first-seen order, no repeats."""
        out: Dict[str, None] = {}
        for t in titles:
            out[t] = None
            for implied in self.for_title(t):
                out[implied] = None
        return list(out)

    def __len__(self) -> int:
        return len(self._table)


@dataclass
class ClosureResult:
    root: str
    max_depth: int
    reached: Set[str] = field(default_factory=set)
    terminals: Set[str] = field(default_factory=set)
    failed: List[str] = field(default_factory=list)

    def add_failure(self, title: str) -> None:
        if title not in self.failed:
            self.failed.append(title)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": self.root,
            "max_depth": self.max_depth,
            "reached": sorted(self.reached),
            "terminals": sorted(self.terminals),
            "failed": list(self.failed),
        }


def closure(
    root: str,
    max_depth: int,
    edge_fn: EdgeFn,
    terminal_fn: EdgeFn,
    implied_edges: Optional[ImpliedEdges] = None,
) -> ClosureResult:
    """
    Bounded expansion from root over edge_fn, collecting terminal_fn results.

    The budget counts rounds: each round expands the whole frontier, then the
    budget drops by one; the walk stops once it goes negative or nothing is
    left to expand. Expanding a title marks it reached, takes its related
    titles from edge_fn plus the implied-edge table (for the title itself and
    for each related title) and collects terminal_fn of every related title.

    A raising edge_fn / terminal_fn only empties that title's contribution;
    the title is listed in result.failed.
    """
    result = ClosureResult(root=root, max_depth=max_depth)
    implied = implied_edges if implied_edges is not None else ImpliedEdges()
    terminal_cache: Dict[str, List[str]] = {}

    def related_of(title: str) -> List[str]:
        try:
            direct = [t.strip() for t in edge_fn(title) or [] if isinstance(t, str) and t.strip()]
        except Exception as e:
            logger.warning("%s: edge lookup failed: %s", title, e)
            result.add_failure(title)
            direct = []
        related = implied.expand(implied.for_title(title) + direct)
        return [t for t in related if t != title]

    def terminals_of(title: str) -> List[str]:
        if title not in terminal_cache:
            try:
                terminal_cache[title] = [t for t in terminal_fn(title) or [] if isinstance(t, str) and t]
            except Exception as e:
                logger.warning("%s: terminal lookup failed: %s", title, e)
                result.add_failure(title)
                terminal_cache[title] = []
        return terminal_cache[title]

    frontier: Set[str] = {root}
    remaining = max_depth
    while frontier and remaining >= 0:
        next_frontier: Set[str] = set()
        # sorted so logs and failure order are reproducible
        for title in sorted(frontier):
            if title in result.reached:
                continue
            result.reached.add(title)
            for rel in related_of(title):
                result.terminals.update(terminals_of(rel))
                if rel not in result.reached:
                    next_frontier.add(rel)
        logger.debug("%s: round depth=%d expanded=%d next=%d", root, remaining, len(frontier), len(next_frontier))
        frontier = next_frontier
        remaining -= 1

    return result
