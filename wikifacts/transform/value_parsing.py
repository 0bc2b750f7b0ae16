from __future__ import annotations

import re
from typing import Iterable, List, Optional, Sequence

SPLITPOINT = "&&SPLITPOINT&&"
DEFAULT_SEPARATORS = (",", SPLITPOINT, "\n")

TRUE_TOKENS = frozenset({"yes", "true", "1"})
FALSE_TOKENS = frozenset({"no", "false", "0"})

# Link targets living outside the main namespace are never facts.
NON_ARTICLE_PREFIXES = (
    "File:",
    "Category:",
    "Help:",
    "Special:",
    "Template:",
    "Module:",
    "RuneScape:",
    "Update:",
    "Poll:",
)

PIPED_LINK_RE = re.compile(r"\[\[[^\|\]]+\|([^\]]+)\]\]")
PLAIN_LINK_RE = re.compile(r"\[\[([^\]]+)\]\]")
LINK_TARGET_RE = re.compile(r"\[\[([^\]|#]+)")
PLINK_RE = re.compile(r"\{\{plink\|([^}]+)\}\}")

INT_RE = re.compile(r"[-+]?\d+")
FIRST_DIGITS_RE = re.compile(r"\d+")
FLOAT_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def nonblank(s: Optional[str]) -> Optional[str]:
    if not isinstance(s, str):
        return None
    t = s.strip()
    return t or None


def _numeric_text(raw: Optional[str]) -> Optional[str]:
    t = nonblank(raw)
    if t is None:
        return None
    t = t.replace(",", "")
    if t.startswith("+"):
        t = t[1:]
    return t


def to_int(raw: Optional[str]) -> Optional[int]:
    """'1,000' -> 1000, '+5' -> 5, anything else that is not an integer -> None."""
    t = _numeric_text(raw)
    if t is None or not INT_RE.fullmatch(t):
        return None
    return int(t)


def to_first_int(raw: Optional[str]) -> Optional[int]:
    """
    Lenient: the first run of digits in noisy text.
    '50 (level 2)' -> 50, 'varies' -> None.
    """
    t = _numeric_text(raw)
    if t is None:
        return None
    m = FIRST_DIGITS_RE.search(t)
    return int(m.group(0)) if m else None


def to_float(raw: Optional[str]) -> Optional[float]:
    t = _numeric_text(raw)
    if t is None or not FLOAT_RE.fullmatch(t):
        return None
    return float(t)


def to_bool(raw: Optional[str]) -> Optional[bool]:
    """
    yes/true/1 -> True, no/false/0 -> False, anything else -> None.
    None means "unknown" and must not be read as False.
    """
    t = nonblank(raw)
    if t is None:
        return None
    t = t.lower()
    if t in TRUE_TOKENS:
        return True
    if t in FALSE_TOKENS:
        return False
    return None


def to_yes_no(raw: Optional[str]) -> Optional[bool]:
    """to_bool that also accepts the Y/N shorthand used on monster pages."""
    t = nonblank(raw)
    if t is None:
        return None
    t = t.lower()
    if t == "y":
        return True
    if t == "n":
        return False
    return to_bool(t)


def strip_markup_links(raw: Optional[str]) -> Optional[str]:
    """
    [[Target|Label]] -> Label
    [[Target]]       -> Target
    """
    if not isinstance(raw, str):
        return None
    t = PIPED_LINK_RE.sub(r"\1", raw)
    return PLAIN_LINK_RE.sub(r"\1", t)


def link_text(raw: Optional[str]) -> Optional[str]:
    return nonblank(strip_markup_links(raw))


def dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for v in values:
        if v not in seen:
            seen.add(v)
            out.append(v)
    return out


def to_token_list(raw: Optional[str], separators: Sequence[str] = DEFAULT_SEPARATORS) -> List[str]:
    """
    Split a list-ish field into trimmed, non-blank, de-duplicated tokens,
    first-seen order kept. Absent input gives [].
    """
    t = nonblank(raw)
    if t is None:
        return []
    pattern = "|".join(re.escape(s) for s in separators)
    parts = re.split(pattern, t) if pattern else [t]
    return dedupe(p.strip() for p in parts if p.strip())


def immune_flag(raw: Optional[str]) -> bool:
    """
    True only for clearly-immune values.

    "Immune", "immune (weak)", "Yes", "Y" -> True
    "Not immune", "No", "N", "" -> False
    """
    t = nonblank(raw)
    if t is None:
        return False
    t = t.lower()
    if "not immune" in t or t in ("no", "n"):
        return False
    return t.startswith("immune") or t in ("yes", "y")


def wikilinks_in_text(text: Optional[str], excluded_prefixes: Sequence[str] = NON_ARTICLE_PREFIXES) -> List[str]:
    """
    Left-hand targets of [[Target]] / [[Target|label]] / [[Target#section]].
    """
    if not isinstance(text, str):
        return []
    targets = (m.group(1).strip() for m in LINK_TARGET_RE.finditer(text))
    return dedupe(
        t for t in targets
        if t and not t.startswith(tuple(excluded_prefixes))
    )


def plinks_in_text(text: Optional[str]) -> List[str]:
    """Targets of {{plink|Target}}."""
    if not isinstance(text, str):
        return []
    return dedupe(m.group(1).split("|")[0].strip() for m in PLINK_RE.finditer(text))

