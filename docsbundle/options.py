"""Per-scraper crawl options."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Pattern, Union

from .errors import InvalidConfigurationError

LOGGER = logging.getLogger(__name__)

ENV_PREFIX = "DOCSBUNDLE_"

PatternLike = Union[str, Pattern[str]]


def _compile(patterns: List[PatternLike]) -> List[Pattern[str]]:
    compiled = []
    for pattern in patterns:
        if isinstance(pattern, str):
            try:
                pattern = re.compile(pattern)
            except re.error as exc:
                raise InvalidConfigurationError(
                    f"Invalid pattern {pattern!r}: {exc}"
                ) from exc
        compiled.append(pattern)
    return compiled


def _normalize_path(path: str) -> str:
    return path.lstrip("/")


@dataclass
class ScraperOptions:
    """Crawl scope, politeness and retry settings for one scraper."""

    skip: List[str] = field(default_factory=list)
    skip_patterns: List[PatternLike] = field(default_factory=list)
    only: List[str] = field(default_factory=list)
    only_patterns: List[PatternLike] = field(default_factory=list)
    skip_links: List[str] = field(default_factory=list)
    fixed_internal_urls: bool = False
    fix_urls: Optional[Callable[[str], str]] = None
    redirections: Dict[str, str] = field(default_factory=dict)
    rate_limit: Optional[int] = None
    max_concurrency: int = 20
    timeout: float = 30.0
    retry_count: int = 3
    attribution: Optional[str] = None

    def __post_init__(self) -> None:
        if self.max_concurrency < 1:
            raise InvalidConfigurationError(
                f"max_concurrency must be >= 1, got {self.max_concurrency}"
            )
        if self.timeout <= 0:
            raise InvalidConfigurationError(f"timeout must be > 0, got {self.timeout}")
        if self.retry_count < 0:
            raise InvalidConfigurationError(
                f"retry_count must be >= 0, got {self.retry_count}"
            )
        if self.rate_limit is not None and self.rate_limit < 1:
            raise InvalidConfigurationError(
                f"rate_limit must be >= 1 or None, got {self.rate_limit}"
            )
        self.skip_patterns = _compile(self.skip_patterns)
        self.only_patterns = _compile(self.only_patterns)

    @classmethod
    def from_env(cls, prefix: str = ENV_PREFIX, **overrides) -> "ScraperOptions":
        """Build options from ``<prefix>*`` environment variables.

        Variables are read at call time; keyword overrides win over the
        environment.
        """
        values: Dict[str, object] = {}
        for name, convert in (
            ("rate_limit", int),
            ("max_concurrency", int),
            ("timeout", float),
            ("retry_count", int),
        ):
            raw = os.getenv(f"{prefix}{name.upper()}")
            if raw is None or not raw.strip():
                continue
            try:
                values[name] = convert(raw)
            except ValueError as exc:
                raise InvalidConfigurationError(
                    f"Invalid value for {prefix}{name.upper()}: {raw!r}"
                ) from exc
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def is_path_allowed(self, subpath: str, *, initial: bool = False) -> bool:
        """Apply the skip/only rules to a path relative to the base URL."""
        path = _normalize_path(subpath)
        if initial:
            return True
        if path in {_normalize_path(p) for p in self.skip}:
            return False
        if any(p.search(path) for p in self.skip_patterns):
            return False
        if self.only or self.only_patterns:
            if path in {_normalize_path(p) for p in self.only}:
                return True
            return any(p.search(path) for p in self.only_patterns)
        return True

    def redirect(self, subpath: str) -> str:
        """Map a path through the ``redirections`` table, if listed."""
        path = _normalize_path(subpath)
        for source, target in self.redirections.items():
            if _normalize_path(source) == path:
                LOGGER.debug("Redirecting %s to %s", path, target)
                return _normalize_path(target)
        return path
