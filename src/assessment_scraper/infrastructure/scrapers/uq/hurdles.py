"""Mining of free-text hurdle requirements from a course profile."""

from __future__ import annotations

import logging
import re
from typing import Final

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from assessment_scraper.domain.assessment import (
    MAX_COURSE_HURDLE_TEXT_LENGTH,
    MAX_ITEM_HURDLE_TEXT_LENGTH,
    AssessmentItem,
    HurdleInfo,
)
from assessment_scraper.infrastructure.scrapers.html import (
    collapse_whitespace,
    element_text,
    is_heading,
    truncate_text,
)

LOGGER = logging.getLogger(__name__)

DETAIL_ID_PREFIX: Final = "assessment-detail-"
MIN_FUZZY_WORD_MATCHES: Final = 2
MIN_COURSE_BLOCK_LENGTH: Final = 10

ITEM_STOP_PHRASES: Final = (
    "Submission guidelines",
    "Deferral or extension",
    "Late submission",
    "Task description",
    "Learning outcomes",
    "Exam details",
)

_COURSE_HURDLE_HEADINGS: Final = ("hurdle requirements", "hurdle requirement")

_COURSE_HURDLE_KEYWORDS: Final = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"pass\s+threshold",
        r"threshold\s+is",
        r"maximum\s+grade",
        r"grade\s+cap",
        r"competency\s+test",
        r"section\s+[ab]\s+of",
        r"at\s+least\s+\d+\s*%\s+of\s+the\s+available",
        r"if\s+(?:you|student|they)\s+(?:do\s+not|fail|don't)\s+.*then\s+the\s+maximum",
        r"must\s+be\s+satisfied",
        r"hurdle\s+requirement",
        r"\d+\s*%\s*(?:of\s+the\s+available|pass|threshold|required)",
        r"pass\s+both",
        r"(?:and|or)\s+section",
    )
)

_COURSE_HURDLE_EXCLUSIONS: Final = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"submission\s+guidelines",
        r"deferral",
        r"extension",
        r"late\s+submission",
        r"penalty",
        r"gradescope",
        r"blackboard",
        r"submitted\s+online",
        r"assignment\s+sheet",
        r"announcements",
        r"auto\s+marked",
        r"marked\s+assessment",
        r"released\s+within",
        r"associate\s+dean",
    )
)


def attach_item_hurdle_requirements(
    document: BeautifulSoup,
    items: list[AssessmentItem],
) -> list[AssessmentItem]:
    """Return items with per-item hurdle requirement text filled in where found.

    An item whose detail section carries hurdle requirements is flagged as a
    hurdle even if its table row was not.
    """
    enriched: list[AssessmentItem] = []
    for index, item in enumerate(items):
        requirements = extract_item_hurdle_requirements(document, index, item.name)
        if requirements is None:
            enriched.append(item)
            continue
        threshold = item.hurdle.threshold if item.hurdle is not None else None
        enriched.append(
            item.model_copy(
                update={
                    "hurdle": HurdleInfo(
                        is_hurdle=True,
                        threshold=threshold,
                        requirements=requirements,
                    )
                }
            )
        )
    return enriched


def extract_item_hurdle_requirements(
    document: BeautifulSoup,
    index: int,
    item_name: str,
) -> str | None:
    """Return cleaned hurdle requirements for the item at index, if present."""
    detail_id = f"{DETAIL_ID_PREFIX}{index}"
    heading = _detail_heading_by_id(document, detail_id) or _detail_heading_by_name(
        document, item_name
    )
    if heading is None:
        LOGGER.debug("event=hurdle_detail_not_found item_index=%s", index)
        return None

    hurdle_heading = _hurdle_subheading(heading, detail_id)
    if hurdle_heading is None:
        return None

    parts: list[str] = []
    for sibling in hurdle_heading.next_siblings:
        if isinstance(sibling, Tag):
            if is_heading(sibling, (1, 2, 3, 4)):
                break
            text = element_text(sibling)
        elif isinstance(sibling, NavigableString) and not isinstance(sibling, Comment):
            text = collapse_whitespace(str(sibling))
        else:
            continue
        if text:
            parts.append(text)

    if not parts:
        return None
    text = _cut_at_stop_phrase(collapse_whitespace(" ".join(parts)))
    if not text:
        return None
    LOGGER.info("event=item_hurdle_requirements_found item_index=%s", index)
    return truncate_text(text, MAX_ITEM_HURDLE_TEXT_LENGTH)


def extract_course_hurdle_text(document: BeautifulSoup) -> str | None:
    """Return course-wide hurdle text from the first qualifying hurdle heading."""
    for heading in document.find_all(["h1", "h2", "h3", "h4", "h5"]):
        heading_text = element_text(heading).lower()
        if not any(phrase in heading_text for phrase in _COURSE_HURDLE_HEADINGS):
            continue

        blocks: list[str] = []
        for sibling in heading.find_next_siblings():
            if is_heading(sibling, (1, 2, 3)):
                break
            text = element_text(sibling)
            if len(text) <= MIN_COURSE_BLOCK_LENGTH:
                continue
            if any(pattern.search(text) for pattern in _COURSE_HURDLE_EXCLUSIONS):
                continue
            if any(pattern.search(text) for pattern in _COURSE_HURDLE_KEYWORDS):
                blocks.append(text)

        if blocks:
            LOGGER.info("event=course_hurdle_text_found block_count=%s", len(blocks))
            return truncate_text("\n\n".join(blocks), MAX_COURSE_HURDLE_TEXT_LENGTH)
    return None


def _detail_heading_by_id(document: BeautifulSoup, detail_id: str) -> Tag | None:
    element = document.find(id=detail_id)
    if not isinstance(element, Tag):
        return None
    if element.name == "h3":
        return element
    if element.name == "a":
        heading = element.find_next_sibling("h3")
    else:
        heading = element.find("h3")
    return heading if isinstance(heading, Tag) else None


def _detail_heading_by_name(document: BeautifulSoup, item_name: str) -> Tag | None:
    words = [word for word in item_name.lower().split() if len(word) > 2]
    if len(words) < MIN_FUZZY_WORD_MATCHES:
        return None
    for heading in document.find_all("h3"):
        heading_text = element_text(heading).lower()
        if sum(1 for word in words if word in heading_text) >= MIN_FUZZY_WORD_MATCHES:
            return heading
    return None


def _hurdle_subheading(heading: Tag, detail_id: str) -> Tag | None:
    for sibling in heading.find_next_siblings():
        sibling_id = sibling.get("id")
        if (
            isinstance(sibling_id, str)
            and sibling_id.startswith(DETAIL_ID_PREFIX)
            and sibling_id != detail_id
        ):
            return None
        if sibling.name == "h3":
            return None
        if sibling.name == "h4" and "hurdle requirements" in element_text(sibling).lower():
            return sibling
    return None


def _cut_at_stop_phrase(text: str) -> str:
    cut_positions = [
        position for phrase in ITEM_STOP_PHRASES if (position := text.find(phrase)) > 0
    ]
    if not cut_positions:
        return text
    return text[: min(cut_positions)].strip()
