"""Processed page records and the collector that keeps their content."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .entries import Entry


@dataclass(frozen=True, slots=True)
class Page:
    """One fetched and processed documentation page."""

    path: str
    store_path: str
    content: str
    entries: Tuple[Entry, ...] = ()
    internal_urls: Tuple[str, ...] = ()


@dataclass
class PageDatabase:
    """Map of page path to final page content."""

    pages: Dict[str, str] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.pages

    def __len__(self) -> int:
        return len(self.pages)

    def add(self, path: str, content: str) -> None:
        self.pages[path] = content

    def get(self, path: str) -> Optional[str]:
        return self.pages.get(path)

    def paths(self) -> List[str]:
        return sorted(self.pages)

    def to_dict(self) -> Dict[str, str]:
        return {path: self.pages[path] for path in self.paths()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)
