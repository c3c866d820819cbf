"""Exception types raised while building documentation bundles."""

from __future__ import annotations


class DocsError(Exception):
    """Base class for every error raised by docsbundle."""

    def __init__(self, message: str, url: str = ""):
        self.url = url
        super().__init__(message)


class SetupError(DocsError):
    """Raised when a scraper cannot be constructed (e.g. missing source dir)."""


class InvalidConfigurationError(DocsError):
    """Raised for malformed URLs, option values or unknown registry slugs."""


class InvalidEntryError(DocsError):
    """Raised when an entry is built with an empty name, path or type."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Invalid entry: missing {field}")


class FetchError(DocsError):
    """Raised when a URL could not be retrieved after all retries."""


class ParsingError(DocsError):
    """Raised when a page fails to parse, filter or extract."""


class PageRejected(DocsError):
    """Raised when a fetched page looks like a redirect or not-found stub."""

    def __init__(self, url: str, reason: str):
        self.reason = reason
        super().__init__(f"Rejected {url}: {reason}", url=url)
