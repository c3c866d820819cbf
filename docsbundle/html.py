"""Thin helpers over the BeautifulSoup document model."""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from .errors import ParsingError

HTML_PARSER = "html.parser"


def parse_html(markup: str, url: str = "") -> BeautifulSoup:
    try:
        return BeautifulSoup(markup, HTML_PARSER)
    except Exception as exc:  # bs4 surfaces parser failures as assorted errors
        raise ParsingError(f"Could not parse HTML: {exc}", url=url) from exc


def serialize(document: BeautifulSoup) -> str:
    return str(document)


def set_body(document: BeautifulSoup, node: Tag) -> None:
    """Make ``node`` the only content of the document body."""
    body = document.body
    extracted = node.extract()
    if body is None:
        document.clear()
        document.append(extracted)
        return
    body.clear()
    body.append(extracted)
