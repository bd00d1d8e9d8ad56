"""Assessment table discovery and column role resolution.

Table discovery is an ordered cascade of independent strategies. Each
strategy returns a table or None and the first hit wins:

1. heading adjacency: a table following a heading that mentions assessment,
2. header keywords: header text naming the assessment and its weight,
3. content shape: a percentage value in one of the first body rows.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Final

from bs4 import BeautifulSoup, Tag

from assessment_scraper.application.errors import AssessmentTableNotFoundError
from assessment_scraper.infrastructure.scrapers.html import element_text

LOGGER = logging.getLogger(__name__)

TableStrategy = Callable[[BeautifulSoup], Tag | None]

CONTENT_SHAPE_ROW_LIMIT: Final = 3
_PERCENT_CELL_PATTERN = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)\s*%")
_NAME_KEYWORDS: Final = ("assessment task", "assessment")
_WEIGHT_KEYWORDS: Final = ("weight", "weighting")
_DUE_KEYWORDS: Final = ("due", "date")


@dataclass(frozen=True)
class LocatedTable:
    """Assessment table plus the strategy that found it."""

    table: Tag
    strategy: str


@dataclass(frozen=True)
class ColumnRoles:
    """Column indexes of semantic roles; None when the header does not name it."""

    name: int | None = None
    weight: int | None = None
    due: int | None = None


def find_by_heading_adjacency(document: BeautifulSoup) -> Tag | None:
    """Return the table following the first assessment heading that has one."""
    for heading in document.find_all(["h1", "h2", "h3", "h4", "h5"]):
        if "assessment" not in element_text(heading).lower():
            continue
        sibling_table = heading.find_next_sibling("table")
        if isinstance(sibling_table, Tag):
            return sibling_table
        container = heading.find_next_sibling(["div", "section"])
        if isinstance(container, Tag):
            nested_table = container.find("table")
            if isinstance(nested_table, Tag):
                return nested_table
    return None


def find_by_header_keywords(document: BeautifulSoup) -> Tag | None:
    """Return the first table whose header names the task and its weight.

    Among qualifying tables one that also names a due date is preferred.
    """
    qualifying: list[Tag] = []
    for table in document.find_all("table"):
        header_text = " ".join(element_text(cell) for cell in table.find_all("th")).lower()
        names_task = "assessment" in header_text or "item" in header_text
        names_weight = "weight" in header_text or "%" in header_text
        if not (names_task and names_weight):
            continue
        if any(keyword in header_text for keyword in _DUE_KEYWORDS):
            return table
        qualifying.append(table)
    return qualifying[0] if qualifying else None


def find_by_content_shape(document: BeautifulSoup) -> Tag | None:
    """Return the first table with a percentage cell in its leading body rows."""
    for table in document.find_all("table"):
        rows = table.select("tbody tr") or table.find_all("tr")
        for row in rows[:CONTENT_SHAPE_ROW_LIMIT]:
            cells = [element_text(cell) for cell in row.find_all("td")]
            if any(_PERCENT_CELL_PATTERN.match(cell) for cell in cells):
                return table
    return None


DEFAULT_TABLE_STRATEGIES: Final[tuple[tuple[str, TableStrategy], ...]] = (
    ("heading_adjacency", find_by_heading_adjacency),
    ("header_keywords", find_by_header_keywords),
    ("content_shape", find_by_content_shape),
)


def locate_assessment_table(
    document: BeautifulSoup,
    strategies: Sequence[tuple[str, TableStrategy]] = DEFAULT_TABLE_STRATEGIES,
) -> LocatedTable:
    """Run strategies in order and return the first table found."""
    for strategy_name, strategy in strategies:
        table = strategy(document)
        if table is not None:
            LOGGER.info("event=assessment_table_located strategy=%s", strategy_name)
            return LocatedTable(table=table, strategy=strategy_name)

    LOGGER.warning(
        "event=assessment_table_not_found table_count=%s",
        len(document.find_all("table")),
    )
    raise AssessmentTableNotFoundError(
        "Could not locate assessment table for this course. The course profile may not "
        "have assessment information available, or the page structure may have changed."
    )


def header_cells(table: Tag) -> list[Tag]:
    """Return cells of the first thead row, else of the first row."""
    header_row = table.select_one("thead tr") or table.find("tr")
    if not isinstance(header_row, Tag):
        return []
    return header_row.find_all(["th", "td"])


def resolve_column_roles(table: Tag) -> ColumnRoles:
    """Map header cells to name, weight and due roles.

    Each cell is tested against name, weight and due keywords in that order
    and takes the first role it matches. The first cell to claim a role keeps it.
    """
    roles: dict[str, int] = {}
    for index, cell in enumerate(header_cells(table)):
        role = _classify_header(element_text(cell).lower())
        if role is not None and role not in roles:
            roles[role] = index
    resolved = ColumnRoles(
        name=roles.get("name"),
        weight=roles.get("weight"),
        due=roles.get("due"),
    )
    LOGGER.info(
        "event=column_roles_resolved name=%s weight=%s due=%s",
        resolved.name,
        resolved.weight,
        resolved.due,
    )
    return resolved


def _classify_header(text: str) -> str | None:
    if any(keyword in text for keyword in _NAME_KEYWORDS):
        return "name"
    if any(keyword in text for keyword in _WEIGHT_KEYWORDS):
        return "weight"
    if any(keyword in text for keyword in _DUE_KEYWORDS):
        return "due"
    return None
