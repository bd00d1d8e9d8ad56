"""Tests for assessment row parsing."""

from __future__ import annotations

import pytest

from assessment_scraper.application.errors import NoItemsParsedError
from assessment_scraper.domain.assessment import PASS_FAIL, AssessmentItem
from assessment_scraper.infrastructure.scrapers.html import parse_document
from assessment_scraper.infrastructure.scrapers.uq.rows import (
    extract_hurdle_threshold,
    parse_assessment_rows,
    parse_weight_text,
    table_rows,
)
from assessment_scraper.infrastructure.scrapers.uq.tables import (
    ColumnRoles,
    locate_assessment_table,
    resolve_column_roles,
)
from tests.html_fixture_utils import assessment_table, profile_page

STANDARD_HEADERS = ["Assessment task", "Weight", "Due date"]


def _parse(
    rows: list[list[str]],
    headers: list[str] | None = STANDARD_HEADERS,
) -> list[AssessmentItem]:
    table = parse_document(assessment_table(rows, headers=headers)).find("table")
    return parse_assessment_rows(table, resolve_column_roles(table))


def test_row_with_named_columns() -> None:
    items = _parse([["Assignment 1", "20%", "5/04/2026"]])

    assert len(items) == 1
    assert items[0].name == "Assignment 1"
    assert items[0].weight == 20
    assert items[0].due_date == "5/04/2026"
    assert items[0].hurdle is None


def test_pass_fail_weight_is_preserved_as_marker() -> None:
    items = _parse([["Participation", "Pass/Fail", "Throughout semester"]])

    assert items[0].weight == PASS_FAIL
    assert items[0].is_pass_fail


def test_zero_and_out_of_range_weights_are_skipped() -> None:
    items = _parse(
        [
            ["Bonus quiz", "0%", "Week 2"],
            ["Impossible", "120%", "Week 3"],
            ["Exam", "100%", "Exam period"],
        ]
    )

    assert [item.name for item in items] == ["Exam"]


def test_rows_without_name_or_with_single_cell_are_skipped() -> None:
    table = parse_document(
        "<table><thead><tr><th>Assessment task</th><th>Weight</th></tr></thead><tbody>"
        '<tr><td colspan="2">Assessment details below</td></tr>'
        "<tr><td></td><td>30%</td></tr>"
        "<tr><td>Quiz</td><td>30%</td></tr>"
        "</tbody></table>"
    ).find("table")

    items = parse_assessment_rows(table, resolve_column_roles(table))

    assert [item.name for item in items] == ["Quiz"]


def test_name_prefers_link_text_in_name_column() -> None:
    items = _parse([['<a href="#assessment-detail-0">Quiz 1</a> <span>Online</span>', "10%", ""]])

    assert items[0].name == "Quiz 1"
    assert items[0].due_date is None


def test_heuristics_without_header_roles() -> None:
    items = _parse([["Mid-semester exam", "12 May 2026", "30%"]], headers=None)

    assert items[0].name == "Mid-semester exam"
    assert items[0].weight == 30
    assert items[0].due_date == "12 May 2026"


def test_heuristic_weight_falls_back_to_leading_number() -> None:
    table = parse_document(
        assessment_table([["Report", "Written", "40 marks"]])
    ).find("table")

    items = parse_assessment_rows(table, ColumnRoles())

    assert items[0].weight == 40


def test_table_without_tbody_or_header_keeps_first_row() -> None:
    document = parse_document(
        profile_page(
            "<table>"
            "<tr><td>Assignment 1</td><td>30%</td><td>5/04/2026</td></tr>"
            "<tr><td>Final exam</td><td>70%</td><td>Exam period</td></tr>"
            "</table>"
        )
    )
    located = locate_assessment_table(document)

    items = parse_assessment_rows(located.table, resolve_column_roles(located.table))

    assert located.strategy == "content_shape"
    assert [item.name for item in items] == ["Assignment 1", "Final exam"]
    assert items[0].weight == 30


def test_table_without_tbody_drops_leading_th_row() -> None:
    table = parse_document(
        "<table>"
        "<tr><th>Assessment task</th><th>Weight</th><th>Due date</th></tr>"
        "<tr><td>Quiz</td><td>10%</td><td>Week 4</td></tr>"
        "</table>"
    ).find("table")

    assert [row.find("td").get_text() for row in table_rows(table)] == ["Quiz"]
    items = parse_assessment_rows(table, resolve_column_roles(table))
    assert [item.name for item in items] == ["Quiz"]


def test_hurdle_threshold_is_read_from_row_text() -> None:
    items = _parse(
        [["Final exam (Hurdle)", "50%", "Exam period", "Pass threshold is 80% to pass this hurdle"]],
        headers=[*STANDARD_HEADERS, "Notes"],
    )

    assert items[0].is_hurdle
    assert items[0].hurdle is not None
    assert items[0].hurdle.threshold == 80


def test_hurdle_icon_marks_item() -> None:
    items = _parse(
        [['Lab report <img src="warning.svg" alt="Hurdle">', "15%", "Week 6"]],
    )

    assert items[0].name == "Lab report"
    assert items[0].is_hurdle
    assert items[0].hurdle is not None
    assert items[0].hurdle.threshold is None


def test_hurdle_icon_class_marks_item() -> None:
    items = _parse([['Quiz <span class="icon icon-hurdle"></span>', "5%", "Week 2"]])

    assert items[0].is_hurdle


def test_table_without_usable_rows_raises() -> None:
    with pytest.raises(NoItemsParsedError, match="no rows could be parsed"):
        _parse([["Bonus", "0%", "Week 1"]])


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("25.5% (individual)", 25.5),
        ("Pass / Fail", PASS_FAIL),
        ("pass-fail", PASS_FAIL),
        ("N/A", None),
    ],
)
def test_parse_weight_text(text: str, expected: object) -> None:
    assert parse_weight_text(text) == expected


@pytest.mark.parametrize(
    ("texts", "expected"),
    [
        (["Threshold: 65%"], 65),
        (["A 45% threshold applies"], 45),
        (["Hurdle: 40% required"], 40),
        (["threshold is 150%"], 100),
        (["Worth 30%", "No minimum"], None),
    ],
)
def test_extract_hurdle_threshold(texts: list[str], expected: float | None) -> None:
    assert extract_hurdle_threshold(texts) == expected
