from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from configs.settings import ENTITY_FIELDS_PATH
from wikifacts.transform.value_parsing import (
    immune_flag,
    link_text,
    nonblank,
    strip_markup_links,
    to_bool,
    to_first_int,
    to_float,
    to_int,
    to_token_list,
    to_yes_no,
    wikilinks_in_text,
)


class EntityKind(Enum):
    ITEM = "item"
    MONSTER = "monster"
    QUEST = "quest"


# Normalizer kind -> (raw -> typed value | None). List kinds return [] for "nothing".
SCALAR_NORMALIZERS: Dict[str, Callable[[Optional[str]], Any]] = {
    "int": to_int,
    "first_int": to_first_int,
    "float": to_float,
    "bool": to_bool,
    "yes_no": to_yes_no,
    "text": nonblank,
    "link_text": link_text,
}

LIST_NORMALIZERS: Dict[str, Callable[[Optional[str]], List[str]]] = {
    "token_list": lambda raw: to_token_list(strip_markup_links(raw)),
    "wikilinks": wikilinks_in_text,
}

FLAG_KINDS = ("immunity_flags",)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    keys: Tuple[str, ...] = ()
    flags: Tuple[Tuple[str, str], ...] = ()

    @property
    def multivalued(self) -> bool:
        return self.kind in LIST_NORMALIZERS or self.kind in FLAG_KINDS

    def normalize(self, params: Mapping[str, str]) -> Any:
        """
        Typed value for this field, or None when absent.

        Aliases are tried in priority order; the first one that normalizes
        to something wins.
        """
        if self.kind in FLAG_KINDS:
            labels = [label for label, key in self.flags if immune_flag(params.get(key))]
            return labels or None

        if self.kind in LIST_NORMALIZERS:
            fn = LIST_NORMALIZERS[self.kind]
            for k in self.keys:
                values = fn(params.get(k))
                if values:
                    return values
            return None

        fn = SCALAR_NORMALIZERS[self.kind]
        for k in self.keys:
            value = fn(params.get(k))
            if value is not None:
                return value
        return None


@dataclass(frozen=True)
class FieldTable:
    kind: EntityKind
    template: str
    infobox: str
    fields: Tuple[FieldSpec, ...] = field(default_factory=tuple)
    # multi-valued fields filled in after extraction (e.g. resolved quest links)
    derived_fields: Tuple[str, ...] = ()

    @property
    def multivalued_fields(self) -> List[str]:
        return [f.name for f in self.fields if f.multivalued] + list(self.derived_fields)

    @property
    def scalar_fields(self) -> List[str]:
        return [f.name for f in self.fields if not f.multivalued]


def parse_field_spec(name: str, raw: Mapping[str, Any]) -> FieldSpec:
    kind = raw.get("kind", "text")
    if kind not in SCALAR_NORMALIZERS and kind not in LIST_NORMALIZERS and kind not in FLAG_KINDS:
        raise ValueError(f"Unknown normalizer kind '{kind}' for field '{name}'")
    return FieldSpec(
        name=name,
        kind=kind,
        keys=tuple(raw.get("keys", ())),
        flags=tuple((label, key) for label, key in (raw.get("flags") or {}).items()),
    )


def load_field_tables(path: str = ENTITY_FIELDS_PATH) -> Dict[EntityKind, FieldTable]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    tables: Dict[EntityKind, FieldTable] = {}
    for kind in EntityKind:
        spec = data.get(kind.value)
        if not spec:
            raise ValueError(f"Missing field table for '{kind.value}' in {path}")
        tables[kind] = FieldTable(
            kind=kind,
            template=spec["template"],
            infobox=spec.get("infobox", spec["template"]),
            fields=tuple(parse_field_spec(n, r) for n, r in spec.get("fields", {}).items()),
            derived_fields=tuple(spec.get("derived_fields", ())),
        )
    return tables


@dataclass
class FactRecord:
    title: str
    kind: EntityKind
    fields: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "kind": self.kind.value, **self.fields}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, sort_keys=True)
