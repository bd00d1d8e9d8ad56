"""Shared BeautifulSoup helpers for scraper pipelines."""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

_WHITESPACE_PATTERN = re.compile(r"\s+")
ELLIPSIS = "..."


def parse_document(html: str) -> BeautifulSoup:
    """Parse HTML with the stdlib-backed parser."""
    return BeautifulSoup(html, "html.parser")


def collapse_whitespace(value: str) -> str:
    """Collapse whitespace runs to single spaces and strip."""
    return _WHITESPACE_PATTERN.sub(" ", value).strip()


def element_text(element: Tag | None) -> str:
    """Return whitespace-collapsed text of element, empty for None."""
    if element is None:
        return ""
    return collapse_whitespace(element.get_text(" "))


def truncate_text(value: str, max_length: int) -> str:
    """Cap value at max_length characters, marking the cut with an ellipsis."""
    if len(value) <= max_length:
        return value
    return f"{value[: max_length - len(ELLIPSIS)].rstrip()}{ELLIPSIS}"


def is_heading(element: Tag, levels: tuple[int, ...] = (1, 2, 3, 4, 5, 6)) -> bool:
    """Return whether element is an h1..h6 tag in levels."""
    return element.name in {f"h{level}" for level in levels}
