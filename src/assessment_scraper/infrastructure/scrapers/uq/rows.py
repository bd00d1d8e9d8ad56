"""Row-level parsing of a located assessment table."""

from __future__ import annotations

import logging
import re
from typing import Final

from bs4 import Tag

from assessment_scraper.application.errors import NoItemsParsedError
from assessment_scraper.domain.assessment import PASS_FAIL, AssessmentItem, HurdleInfo, Weight
from assessment_scraper.infrastructure.scrapers.html import element_text
from assessment_scraper.infrastructure.scrapers.uq.tables import ColumnRoles

LOGGER = logging.getLogger(__name__)

PASS_FAIL_PATTERN: Final = re.compile(r"pass\s*[/-]?\s*fail", re.IGNORECASE)
_NUMBER_PATTERN = re.compile(r"\d+(?:\.\d+)?")
_LEADING_NUMBER_PATTERN = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)")
_DATE_SHAPE_PATTERN = re.compile(r"(\d{1,2}/\d{1,2}|\d{1,2}\s+\w+|\d{1,2}-\d{1,2})")
_HURDLE_PATTERN = re.compile(r"hurdle", re.IGNORECASE)
_ICON_SELECTOR: Final = "img, svg, [class*='icon'], [class*='warning']"

# Ordered by priority; the first pattern that matches any cell wins.
_THRESHOLD_PATTERNS: Final = (
    re.compile(r"(?:pass\s+)?threshold(?:\s+is)?(?:\s*:)?\s*(\d+(?:\.\d+)?)\s*%", re.IGNORECASE),
    re.compile(r"(\d+(?:\.\d+)?)\s*%\s*(?:pass\s+)?threshold", re.IGNORECASE),
)
_NEAR_HURDLE_PERCENT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*%")
_NEAR_HURDLE_CONTEXT_PATTERN = re.compile(r"hurdle|threshold", re.IGNORECASE)


def table_rows(table: Tag) -> list[Tag]:
    """Return data rows: tbody rows, else every row outside thead.

    Without tbody, a leading row is dropped only when it is made of th cells;
    header-less tables keep their first data row.
    """
    body_rows = table.select("tbody tr")
    if body_rows:
        return body_rows
    rows = [row for row in table.find_all("tr") if row.parent.name != "thead"]
    if rows and _is_header_row(rows[0]):
        return rows[1:]
    return rows


def parse_assessment_rows(table: Tag, roles: ColumnRoles) -> list[AssessmentItem]:
    """Parse every usable row of table into assessment items.

    Raises NoItemsParsedError when no row yields an item.
    """
    items: list[AssessmentItem] = []
    for row in table_rows(table):
        item = parse_row(row, roles)
        if item is not None:
            items.append(item)

    if not items:
        raise NoItemsParsedError("Assessment table found but no rows could be parsed.")
    LOGGER.info("event=assessment_rows_parsed item_count=%s", len(items))
    return items


def parse_row(row: Tag, roles: ColumnRoles) -> AssessmentItem | None:
    """Convert one table row into an item, or None when the row is skipped.

    Rows with at most one cell, no name, or a weight that does not resolve to
    a percentage in (0, 100] or the pass/fail marker are skipped. A weight of
    zero always means the weight could not be read.
    """
    cells = row.find_all("td")
    if len(cells) <= 1:
        return None

    texts = [element_text(cell) for cell in cells]
    name = _extract_name(cells, roles)
    if not name:
        return None

    weight = _extract_weight(texts, roles)
    if weight is None or (weight != PASS_FAIL and not 0 < float(weight) <= 100):
        LOGGER.info("event=assessment_row_skipped name=%s weight=%s", name, weight)
        return None

    is_hurdle = _has_hurdle_marker(row, texts)
    hurdle = (
        HurdleInfo(is_hurdle=True, threshold=extract_hurdle_threshold(texts))
        if is_hurdle
        else None
    )
    return AssessmentItem(
        name=name,
        weight=weight,
        due_date=_extract_due_date(texts, roles),
        hurdle=hurdle,
    )


def parse_weight_text(text: str) -> Weight | None:
    """Return pass/fail marker or first numeric token of text."""
    if PASS_FAIL_PATTERN.search(text):
        return PASS_FAIL
    match = _NUMBER_PATTERN.search(text)
    if match is None:
        return None
    return float(match.group(0))


def extract_hurdle_threshold(texts: list[str]) -> float | None:
    """Return the stated pass threshold percentage, clamped to [0, 100]."""
    for pattern in _THRESHOLD_PATTERNS:
        for text in texts:
            match = pattern.search(text)
            if match is not None:
                return _clamp_percent(float(match.group(1)))
    for text in texts:
        if not _NEAR_HURDLE_CONTEXT_PATTERN.search(text):
            continue
        match = _NEAR_HURDLE_PERCENT_PATTERN.search(text)
        if match is not None:
            return _clamp_percent(float(match.group(1)))
    return None


def _is_header_row(row: Tag) -> bool:
    return bool(row.find_all("th")) and not row.find_all("td")


def _extract_name(cells: list[Tag], roles: ColumnRoles) -> str:
    if roles.name is not None and roles.name < len(cells):
        name_cell = cells[roles.name]
        link_text = " ".join(element_text(link) for link in name_cell.find_all("a")).strip()
        return link_text or element_text(name_cell)
    return element_text(cells[0])


def _extract_weight(texts: list[str], roles: ColumnRoles) -> Weight | None:
    if roles.weight is not None and roles.weight < len(texts):
        return parse_weight_text(texts[roles.weight])

    non_empty = [text for text in texts if text]
    if any(PASS_FAIL_PATTERN.search(text) for text in non_empty):
        return PASS_FAIL
    weight_text = next((text for text in non_empty if "%" in text), None)
    if weight_text is None:
        weight_text = next(
            (text for text in non_empty if _LEADING_NUMBER_PATTERN.match(text)),
            None,
        )
    if weight_text is None:
        return None
    return parse_weight_text(weight_text)


def _extract_due_date(texts: list[str], roles: ColumnRoles) -> str | None:
    if roles.due is not None and roles.due < len(texts):
        return texts[roles.due] or None
    name_index = roles.name if roles.name is not None else 0
    for index, text in enumerate(texts):
        if index == name_index or not text:
            continue
        if _DATE_SHAPE_PATTERN.search(text):
            return text
    return None


def _has_hurdle_marker(row: Tag, texts: list[str]) -> bool:
    if any(_HURDLE_PATTERN.search(text) for text in texts):
        return True
    for icon in row.select(_ICON_SELECTOR):
        label = str(icon.get("alt") or icon.get("title") or "")
        class_names = icon.get("class") or []
        class_text = " ".join(class_names) if isinstance(class_names, list) else str(class_names)
        if _HURDLE_PATTERN.search(label) or _HURDLE_PATTERN.search(class_text):
            return True
    return False


def _clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))
