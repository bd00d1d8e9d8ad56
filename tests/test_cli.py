"""Tests for the command-line entrypoint."""

from __future__ import annotations

import io
import json
from datetime import date

import pytest

import assessment_scraper.__main__ as cli
from assessment_scraper.application.errors import RateLimitedError
from assessment_scraper.infrastructure.cache import InMemoryCacheStore
from assessment_scraper.infrastructure.http.config import FetcherConfig
from assessment_scraper.infrastructure.scrapers.uq.scraper import course_page_url
from assessment_scraper.infrastructure.security.keyring_store import KeyringSecretStore
from tests.html_fixture_utils import (
    DEFAULT_ASSESSMENT_SECTION,
    OfferingFixture,
    ScriptedFetcher,
    course_page,
    profile_page,
)

COURSE_URL = course_page_url("MATH1050")
PROFILE_URL = "https://course-profiles.uq.edu.au/course-profiles/MATH1050-20252-7630"
SCRAPE_ARGS = [
    "scrape",
    "math1050",
    "--year",
    "2025",
    "--semester",
    "Semester 2",
    "--delivery",
    "External",
]


class ClosableFetcher(ScriptedFetcher):
    """Scripted fetcher standing in for the HTTP adapter in main()."""

    closed = False

    def close(self) -> None:
        self.closed = True


def _documents() -> dict[str, str | Exception]:
    page = course_page(
        current=[
            OfferingFixture(
                semester="Semester 2, 2025",
                mode="External",
                href="/course-profiles/MATH1050-20252-7630",
            )
        ]
    )
    return {COURSE_URL: page, PROFILE_URL: profile_page(DEFAULT_ASSESSMENT_SECTION)}


def _run(
    argv: list[str],
    fetcher: ScriptedFetcher,
    store: InMemoryCacheStore,
) -> tuple[int, str]:
    stdout = io.StringIO()
    args = cli.build_parser().parse_args(argv)
    exit_code = cli.run_command(args, fetcher=fetcher, store=store, stdout=stdout)
    return exit_code, stdout.getvalue()


def test_scrape_prints_camel_case_json_and_caches() -> None:
    fetcher = ScriptedFetcher(_documents())
    store = InMemoryCacheStore()

    exit_code, output = _run(SCRAPE_ARGS, fetcher, store)
    second_code, second_output = _run(SCRAPE_ARGS, fetcher, store)

    payload = json.loads(output)
    assert exit_code == 0
    assert payload["courseCode"] == "MATH1050"
    assert payload["courseProfileUrl"] == PROFILE_URL
    assert [item["name"] for item in payload["items"]] == ["Assignment 1", "Final exam"]
    assert second_code == 0
    assert json.loads(second_output) == payload
    assert fetcher.calls == [COURSE_URL, PROFILE_URL]


def test_scrape_requires_complete_selection() -> None:
    with pytest.raises(ValueError, match="must be given together"):
        _run(["scrape", "MATH1050", "--year", "2025"], ScriptedFetcher(), InMemoryCacheStore())


def test_delivery_modes_reports_missing_offering() -> None:
    exit_code, output = _run(
        ["delivery-modes", "math1050", "--year", "2025", "--semester", "Summer"],
        ScriptedFetcher(_documents()),
        InMemoryCacheStore(),
    )

    assert exit_code == 1
    assert output.startswith("No delivery modes found for MATH1050 Summer 2025")


def test_delivery_modes_prints_options() -> None:
    exit_code, output = _run(
        ["delivery-modes", "MATH1050", "--year", "2025", "--semester", "Semester 2"],
        ScriptedFetcher(_documents()),
        InMemoryCacheStore(),
    )

    assert exit_code == 0
    assert json.loads(output)["modes"][0]["courseProfileUrl"] == PROFILE_URL


def test_analytics_and_maintenance_commands() -> None:
    fetcher = ScriptedFetcher(_documents())
    store = InMemoryCacheStore()
    _run(SCRAPE_ARGS, fetcher, store)

    analytics_code, analytics_output = _run(["analytics"], fetcher, store)
    evict_code, evict_output = _run(["evict", "--cutoff-year", "2026"], fetcher, store)
    clear_code, clear_output = _run(["clear-cache", "--institution", "uq"], fetcher, store)

    analytics = json.loads(analytics_output)
    assert analytics_code == 0
    assert analytics["counters"]["scrape:misses"] == 1
    assert analytics["cachedCourses"] == 1
    assert analytics["recentDeliveryErrors"] == []
    assert evict_code == 0
    assert evict_output.startswith("Deleted 1 scrape and 0 delivery entries")
    assert clear_code == 0
    assert clear_output == "Deleted 0 uq cache entries.\n"


def test_backfill_command_reports_counts() -> None:
    fetcher = ScriptedFetcher(_documents())
    store = InMemoryCacheStore()
    _run(SCRAPE_ARGS, fetcher, store)

    exit_code, output = _run(["backfill", "--delay", "0"], fetcher, store)

    assert exit_code == 0
    assert output.startswith("Scrape backfill: updated 1, failed 0.")


def test_main_returns_failure_for_invalid_arguments(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    monkeypatch.delenv("ASSESSMENT_SCRAPER_CACHE_URL", raising=False)

    exit_code = cli.main(
        ["--cache-url", "", "--no-relay", "scrape", "MATH1050", "--year", "2025"]
    )

    assert exit_code == 1
    assert "must be given together" in capsys.readouterr().out


def test_main_runs_command_and_closes_fetcher(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    fetcher = ClosableFetcher(_documents())
    configs: list[FetcherConfig] = []

    def fake_fetcher_factory(config: FetcherConfig) -> ClosableFetcher:
        configs.append(config)
        return fetcher

    monkeypatch.setattr(cli, "HttpDocumentFetcher", fake_fetcher_factory)

    exit_code = cli.main(["--cache-url", "", "--no-relay", *SCRAPE_ARGS])

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["courseCode"] == "MATH1050"
    assert fetcher.closed is True
    assert configs[0].uses_relay is False


def test_main_reports_rate_limit(
    monkeypatch: pytest.MonkeyPatch,
    capsys: pytest.CaptureFixture[str],
) -> None:
    fetcher = ClosableFetcher(
        {COURSE_URL: RateLimitedError("reached its limit", url=COURSE_URL, status_code=429)}
    )
    monkeypatch.setattr(cli, "HttpDocumentFetcher", lambda config: fetcher)

    exit_code = cli.main(["--cache-url", "", "--no-relay", *SCRAPE_ARGS])

    assert exit_code == 1
    assert "Error: reached its limit" in capsys.readouterr().out


class MemorySecretStore(KeyringSecretStore):
    """Secret store keeping the relay key in memory."""

    def __init__(self) -> None:
        super().__init__(service_name="assessment-scraper-tests")
        self.relay_key: str | None = None

    def set_relay_key(self, api_key: str, *, relay: str = "scraperapi") -> None:
        self.relay_key = api_key

    def delete_relay_key(self, *, relay: str = "scraperapi") -> None:
        self.relay_key = None


def test_delivery_modes_default_to_current_period() -> None:
    stdout = io.StringIO()
    args = cli.build_parser().parse_args(["delivery-modes", "MATH1050"])

    exit_code = cli.run_command(
        args,
        fetcher=ScriptedFetcher(_documents()),
        store=InMemoryCacheStore(),
        stdout=stdout,
        today=date(2025, 8, 20),
    )

    assert exit_code == 0
    assert json.loads(stdout.getvalue())["modes"][0]["courseProfileUrl"] == PROFILE_URL


def test_delivery_modes_requires_year_with_semester() -> None:
    with pytest.raises(ValueError, match="must be given together"):
        _run(
            ["delivery-modes", "MATH1050", "--year", "2025"],
            ScriptedFetcher(),
            InMemoryCacheStore(),
        )


def test_periods_lists_current_period_and_years() -> None:
    stdout = io.StringIO()
    args = cli.build_parser().parse_args(["periods"])

    exit_code = cli.run_command(
        args,
        fetcher=ScriptedFetcher(),
        store=InMemoryCacheStore(),
        stdout=stdout,
        today=date(2026, 1, 10),
    )

    assert exit_code == 0
    assert stdout.getvalue().splitlines() == [
        "Current period: Summer 2025 (Internal)",
        "Selectable years: 2019, 2020, 2021, 2022, 2023, 2024, 2025, 2026, 2027, 2028",
    ]


def test_relay_key_set_and_delete() -> None:
    secrets = MemorySecretStore()
    stdout = io.StringIO()
    parser = cli.build_parser()
    store = InMemoryCacheStore()

    set_code = cli.run_command(
        parser.parse_args(["relay-key", "set", "--value", "relay-secret"]),
        fetcher=ScriptedFetcher(),
        store=store,
        stdout=stdout,
        secret_store=secrets,
    )
    stored = secrets.relay_key
    delete_code = cli.run_command(
        parser.parse_args(["relay-key", "delete"]),
        fetcher=ScriptedFetcher(),
        store=store,
        stdout=stdout,
        secret_store=secrets,
    )

    assert set_code == 0
    assert delete_code == 0
    assert stored == "relay-secret"
    assert secrets.relay_key is None
    assert stdout.getvalue() == "Relay key stored.\nRelay key deleted.\n"


@pytest.mark.parametrize(
    ("argv", "uses_relay"),
    [
        (["backfill", "--delay", "0"], False),
        (["backfill", "--delay", "0", "--use-relay"], True),
        (["--no-relay", "backfill", "--delay", "0", "--use-relay"], False),
        (["analytics"], True),
    ],
)
def test_backfill_fetches_directly_unless_relay_requested(
    monkeypatch: pytest.MonkeyPatch,
    argv: list[str],
    uses_relay: bool,
) -> None:
    monkeypatch.setenv("SCRAPER_API_KEY", "relay-secret")
    configs: list[FetcherConfig] = []

    def fake_fetcher_factory(config: FetcherConfig) -> ClosableFetcher:
        configs.append(config)
        return ClosableFetcher()

    monkeypatch.setattr(cli, "HttpDocumentFetcher", fake_fetcher_factory)

    exit_code = cli.main(["--cache-url", "", *argv])

    assert exit_code == 0
    assert configs[0].uses_relay is uses_relay
