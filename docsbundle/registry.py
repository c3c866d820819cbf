"""Resolve a documentation slug (and version) to a scraper configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Mapping, Optional, Protocol, Tuple

from .errors import InvalidConfigurationError
from .extract import EntryExtractor
from .filters import FilterStack
from .options import ScraperOptions


@dataclass
class ScraperConfig:
    """Everything needed to construct a :class:`~docsbundle.scraper.Scraper`."""

    name: str
    slug: str
    base_url: str
    type: str = "scraper"
    root_path: Optional[str] = None
    initial_paths: Tuple[str, ...] = ()
    version: Optional[str] = None
    release: Optional[str] = None
    links: Dict[str, str] = field(default_factory=dict)
    source_directory: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    force_gzip: bool = False
    options: ScraperOptions = field(default_factory=ScraperOptions)
    filters: Optional[FilterStack] = None
    extractor: Optional[EntryExtractor] = None

    def scraper_kwargs(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "slug": self.slug,
            "base_url": self.base_url,
            "type": self.type,
            "root_path": self.root_path,
            "initial_paths": tuple(self.initial_paths),
            "version": self.version,
            "release": self.release,
            "links": dict(self.links),
            "source_directory": self.source_directory,
            "headers": dict(self.headers),
            "params": dict(self.params),
            "force_gzip": self.force_gzip,
            "options": self.options,
            "filters": self.filters,
            "extractor": self.extractor,
        }


class PackageRegistry(Protocol):
    def resolve(
        self,
        slug: str,
        version: Optional[str] = None,
        flags: Optional[List[str]] = None,
    ) -> ScraperConfig: ...


class StaticRegistry:
    """Registry backed by a fixed mapping of slug to configuration."""

    def __init__(self, configs: Mapping[str, ScraperConfig]):
        self._configs = dict(configs)

    def slugs(self) -> List[str]:
        return sorted(self._configs)

    def resolve(
        self,
        slug: str,
        version: Optional[str] = None,
        flags: Optional[List[str]] = None,
    ) -> ScraperConfig:
        try:
            config = self._configs[slug]
        except KeyError:
            raise InvalidConfigurationError(f"Unknown documentation slug: {slug}") from None
        if version is not None:
            config = replace(config, version=version)
        return config
