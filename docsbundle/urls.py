"""Absolute URL helper used to scope a crawl to a documentation base URL."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit, urlunsplit

from .errors import InvalidConfigurationError


def _normalize_host(host: Optional[str]) -> str:
    """Lowercase a hostname, keeping any explicit port."""
    if not host:
        return ""
    return host.lower()


class DocsURL:
    """An absolute ``http(s)``/``file`` URL with origin and path helpers."""

    __slots__ = ("_value", "_parts")

    def __init__(self, value: "str | DocsURL"):
        value = str(value)
        parts = urlsplit(value)
        if not parts.scheme or not parts.netloc:
            raise InvalidConfigurationError(f"Invalid URL: {value}", url=value)
        self._value = value
        self._parts = parts

    @property
    def origin(self) -> str:
        return f"{self._parts.scheme.lower()}://{_normalize_host(self._parts.netloc)}"

    @property
    def path(self) -> str:
        return self._parts.path or "/"

    def subpath(self, other: "DocsURL", ignore_case: bool = False) -> Optional[str]:
        """Return ``other``'s path relative to this URL's path.

        ``None`` means ``other`` is outside this URL (different origin or a
        path that is not nested). The returned remainder keeps ``other``'s
        original casing and its leading ``/``.
        """
        if self.origin != other.origin:
            return None

        base_path = self.path.rstrip("/")
        dest_path = other.path
        if ignore_case:
            base_cmp, dest_cmp = base_path.lower(), dest_path.lower()
        else:
            base_cmp, dest_cmp = base_path, dest_path

        if dest_cmp.rstrip("/") == base_cmp:
            return ""
        if dest_cmp.startswith(base_cmp + "/"):
            return dest_path[len(base_path):]
        return None

    def contains(self, other: "DocsURL", ignore_case: bool = False) -> bool:
        return self.subpath(other, ignore_case=ignore_case) is not None

    def join(self, path: str) -> "DocsURL":
        """Append a relative path to this URL's path."""
        base_path = self._parts.path.rstrip("/")
        new_path = f"{base_path}/{path.lstrip('/')}"
        return DocsURL(
            urlunsplit((self._parts.scheme, self._parts.netloc, new_path, "", ""))
        )

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"DocsURL({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, DocsURL):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._value)
