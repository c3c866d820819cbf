"""Tests for docsbundle.urls module."""

from __future__ import annotations

import pytest

from docsbundle.errors import InvalidConfigurationError
from docsbundle.urls import DocsURL, _normalize_host


class TestNormalizeHost:
    def test_basic(self):
        assert _normalize_host("Docs.Example.COM") == "docs.example.com"

    def test_keeps_port(self):
        assert _normalize_host("Example.com:8080") == "example.com:8080"

    def test_none(self):
        assert _normalize_host(None) == ""


class TestDocsURL:
    def test_relative_url_rejected(self):
        with pytest.raises(InvalidConfigurationError):
            DocsURL("guide/intro.html")

    def test_origin_is_case_insensitive(self):
        assert DocsURL("HTTPS://Docs.Example.com/a").origin == "https://docs.example.com"

    def test_empty_path_is_root(self):
        assert DocsURL("https://docs.example.com").path == "/"

    def test_subpath_nested(self):
        base = DocsURL("https://docs.example.com/v1/")
        assert base.subpath(DocsURL("https://docs.example.com/v1/guide/a.html")) == "/guide/a.html"

    def test_subpath_same_path(self):
        base = DocsURL("https://docs.example.com/v1/")
        assert base.subpath(DocsURL("https://docs.example.com/v1")) == ""
        assert base.subpath(DocsURL("https://docs.example.com/v1/")) == ""

    def test_subpath_sibling_prefix_is_outside(self):
        base = DocsURL("https://docs.example.com/v1")
        assert base.subpath(DocsURL("https://docs.example.com/v10/a")) is None

    def test_subpath_other_origin(self):
        base = DocsURL("https://docs.example.com/")
        assert base.subpath(DocsURL("https://other.example.com/a")) is None
        assert base.subpath(DocsURL("http://docs.example.com/a")) is None

    def test_subpath_ignore_case_keeps_original_casing(self):
        base = DocsURL("https://docs.example.com/API/")
        other = DocsURL("https://docs.example.com/api/Vec.html")
        assert base.subpath(other) is None
        assert base.subpath(other, ignore_case=True) == "/Vec.html"

    def test_contains(self):
        base = DocsURL("https://docs.example.com/")
        assert base.contains(DocsURL("https://docs.example.com/a/b"))
        assert not base.contains(DocsURL("https://example.org/"))

    def test_join(self):
        base = DocsURL("https://docs.example.com/v1/")
        assert str(base.join("/guide/")) == "https://docs.example.com/v1/guide/"
        assert str(base.join("index.html")) == "https://docs.example.com/v1/index.html"

    def test_equality_and_hash(self):
        a = DocsURL("https://docs.example.com/a")
        assert a == DocsURL("https://docs.example.com/a")
        assert a != DocsURL("https://docs.example.com/b")
        assert len({a, DocsURL(a)}) == 1
