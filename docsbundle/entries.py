"""Documentation entries and the index that collects them across a crawl.

The index output must be diff-stable between runs, so every ordering goes
through :func:`compare_names`. Its handling of version-looking names is kept
as it has always behaved: multi-segment names are *not* compared numerically.
"""

from __future__ import annotations

import json
import locale
import re
import unicodedata
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Dict, Iterable, List, Set

from .errors import InvalidEntryError

_SLUG_STRIP = re.compile(r"[^a-z0-9-]")
_VERSION_SEPARATORS = re.compile(r"[.-]")


@dataclass(frozen=True, slots=True)
class Entry:
    """One named documentation item found on a page."""

    name: str
    path: str
    type: str

    def __post_init__(self) -> None:
        for field_name in ("name", "path", "type"):
            value = (getattr(self, field_name) or "").strip()
            if not value:
                raise InvalidEntryError(field_name)
            object.__setattr__(self, field_name, value)

    @property
    def is_root(self) -> bool:
        return self.path == "index"

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "path": self.path, "type": self.type}


@dataclass(slots=True)
class EntryType:
    """Aggregate of all entries sharing one type label."""

    name: str
    count: int = 0

    @property
    def slug(self) -> str:
        return _SLUG_STRIP.sub("", self.name.lower().replace(" ", "-"))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "count": self.count, "slug": self.slug}


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFKD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _sign(value: int) -> int:
    return (value > 0) - (value < 0)


def _compare_text(a: str, b: str) -> int:
    # Base letters first, then accents, then exact code points. The
    # first two levels collate under LC_COLLATE (set by the CLI).
    folded_a, folded_b = a.casefold(), b.casefold()
    for key_a, key_b in (
        (_strip_accents(folded_a), _strip_accents(folded_b)),
        (folded_a, folded_b),
    ):
        result = locale.strcoll(key_a, key_b)
        if result:
            return _sign(result)
    return (a > b) - (a < b)


def _starts_with_digit(value: str) -> bool:
    return bool(value) and value[0] in "0123456789"


def compare_names(a: str, b: str) -> int:
    """Three-way comparison used for both entry and type ordering."""
    if _starts_with_digit(a) or _starts_with_digit(b):
        a_single = len(_VERSION_SEPARATORS.split(a)) == 1
        b_single = len(_VERSION_SEPARATORS.split(b)) == 1
        if a_single and not b_single:
            return -1
        if b_single and not a_single:
            return 1
    return _compare_text(a, b)


name_key = cmp_to_key(compare_names)


def _entry_sort_key(entry: Entry):
    return (name_key(entry.name), entry.path, entry.type)


@dataclass
class EntryIndex:
    """Deduplicated set of entries accumulated over a whole crawl."""

    _entries: Set[Entry] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entry: object) -> bool:
        return entry in self._entries

    def add(self, entry: Entry) -> None:
        if entry.is_root:
            return
        self._entries.add(entry)

    def add_all(self, entries: Iterable[Entry]) -> None:
        for entry in entries:
            self.add(entry)

    def entries(self) -> List[Entry]:
        return sorted(self._entries, key=_entry_sort_key)

    def types(self) -> List[EntryType]:
        return self._types_for(self.entries())

    @staticmethod
    def _types_for(sorted_entries: List[Entry]) -> List[EntryType]:
        grouped: Dict[str, EntryType] = {}
        for entry in sorted_entries:
            key = entry.type.casefold()
            if key not in grouped:
                grouped[key] = EntryType(name=entry.type)
            grouped[key].count += 1
        return sorted(grouped.values(), key=lambda t: name_key(t.name))

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        sorted_entries = self.entries()
        return {
            "entries": [entry.to_dict() for entry in sorted_entries],
            "types": [t.to_dict() for t in self._types_for(sorted_entries)],
        }

    def to_json(self, indent: int | None = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
