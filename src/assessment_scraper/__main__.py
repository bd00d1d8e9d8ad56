"""Command-line entrypoint."""

from __future__ import annotations

import argparse
import getpass
import json
import logging
import sys
from collections.abc import Sequence
from datetime import date
from pathlib import Path
from typing import TextIO
from uuid import uuid4

from dotenv import load_dotenv

from assessment_scraper.application.assessment_cache import AssessmentCache
from assessment_scraper.application.errors import ScrapeError, ScrapeTemporarilyUnavailableError
from assessment_scraper.application.ports import CacheStore, DocumentFetcher
from assessment_scraper.application.use_cases import (
    BackfillCacheUseCase,
    ClearInstitutionCacheUseCase,
    EvictOldCacheUseCase,
    GetAnalyticsUseCase,
    GetCourseAssessmentCommand,
    GetCourseAssessmentUseCase,
    GetDeliveryModesCommand,
    GetDeliveryModesUseCase,
    validate_year,
)
from assessment_scraper.domain.semester import (
    DeliveryMode,
    Institution,
    SemesterSelection,
    SemesterType,
    current_semester,
    format_semester,
    selectable_years,
)
from assessment_scraper.infrastructure.cache import (
    SqlAlchemyCacheStore,
    create_cache_store,
    load_cache_config,
)
from assessment_scraper.infrastructure.http import HttpDocumentFetcher, load_fetcher_config
from assessment_scraper.infrastructure.logging_config import configure_logging
from assessment_scraper.infrastructure.scrapers import build_registry
from assessment_scraper.infrastructure.security.keyring_store import (
    KeyringSecretStore,
    KeyringStoreError,
)

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_TEMPORARILY_LIMITED = 2
ENV_FILES = (".env", ".env.local")


def build_parser() -> argparse.ArgumentParser:
    """Create argument parser for all commands."""
    parser = argparse.ArgumentParser(
        prog="assessment-scraper",
        description="Extract course assessment from university course profiles.",
    )
    parser.add_argument("--cache-url", help="SQLAlchemy URL of the cache database.")
    parser.add_argument(
        "--no-relay",
        action="store_true",
        help="Fetch pages directly even when a relay key is configured.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    scrape = commands.add_parser("scrape", help="Extract assessment for one course.")
    scrape.add_argument("course_code")
    scrape.add_argument(
        "--institution",
        type=Institution,
        choices=list(Institution),
        default=Institution.UQ,
    )
    scrape.add_argument("--year", type=int)
    scrape.add_argument("--semester", type=SemesterType, choices=list(SemesterType))
    scrape.add_argument("--delivery", type=DeliveryMode, choices=list(DeliveryMode))

    delivery = commands.add_parser("delivery-modes", help="List delivery modes for a period.")
    delivery.add_argument("course_code")
    delivery.add_argument(
        "--institution",
        type=Institution,
        choices=list(Institution),
        default=Institution.UQ,
    )
    delivery.add_argument("--year", type=int, help="Defaults to the current study period.")
    delivery.add_argument("--semester", type=SemesterType, choices=list(SemesterType))

    commands.add_parser("periods", help="Show the current study period and selectable years.")

    evict = commands.add_parser("evict", help="Delete cache entries from old years.")
    evict.add_argument("--cutoff-year", type=int)

    backfill = commands.add_parser("backfill", help="Re-extract every cached course.")
    backfill.add_argument("--delay", type=float, default=2.0)
    backfill.add_argument(
        "--use-relay",
        action="store_true",
        help="Spend relay quota on re-extraction; backfill fetches directly by default.",
    )

    relay_key = commands.add_parser("relay-key", help="Store or delete the relay API key.")
    relay_key.add_argument("action", choices=["set", "delete"])
    relay_key.add_argument("--value", help="Key to store; prompted for when omitted.")

    clear = commands.add_parser("clear-cache", help="Delete one institution's cache entries.")
    clear.add_argument(
        "--institution",
        type=Institution,
        choices=list(Institution),
        required=True,
    )

    commands.add_parser("analytics", help="Show analytics counters.")
    return parser


def run_command(
    args: argparse.Namespace,
    *,
    fetcher: DocumentFetcher,
    store: CacheStore,
    stdout: TextIO,
    secret_store: KeyringSecretStore | None = None,
    today: date | None = None,
) -> int:
    """Execute parsed command against injected collaborators."""
    cache = AssessmentCache(store)
    registry = build_registry(fetcher)

    if args.command == "scrape":
        selection = _selection_from_args(args)
        result = GetCourseAssessmentUseCase(registry.scrapers, cache).execute(
            GetCourseAssessmentCommand(
                course_code=args.course_code,
                institution=args.institution,
                selection=selection,
            )
        )
        stdout.write(result.assessment.model_dump_json(by_alias=True, indent=2))
        stdout.write("\n")
        return EXIT_OK

    if args.command == "delivery-modes":
        year, semester = _period_from_args(args, today)
        delivery_result = GetDeliveryModesUseCase(registry.delivery_providers, cache).execute(
            GetDeliveryModesCommand(
                course_code=args.course_code,
                year=year,
                semester=semester,
                institution=args.institution,
            )
        )
        if not delivery_result.found:
            stdout.write(
                f"No delivery modes found for {args.course_code.strip().upper()} "
                f"{semester.value} {year}. Verify the semester and year.\n"
            )
            return EXIT_FAILURE
        stdout.write(delivery_result.modes.model_dump_json(by_alias=True, indent=2))
        stdout.write("\n")
        return EXIT_OK

    if args.command == "evict":
        stats = EvictOldCacheUseCase(cache).execute(args.cutoff_year)
        stdout.write(
            f"Deleted {stats.deleted_scrape} scrape and {stats.deleted_delivery} delivery "
            f"entries; trimmed {stats.trimmed_failed} failed-scrape memos.\n"
        )
        return EXIT_OK

    if args.command == "backfill":
        report = BackfillCacheUseCase(
            registry.scrapers,
            registry.delivery_providers,
            cache,
            delay_seconds=args.delay,
        ).execute()
        stdout.write(
            f"Scrape backfill: updated {report.scrape_updated}, failed {report.scrape_failed}. "
            f"Delivery backfill: updated {report.delivery_updated}, "
            f"failed {report.delivery_failed}.\n"
        )
        return EXIT_OK

    if args.command == "clear-cache":
        deleted = ClearInstitutionCacheUseCase(cache).execute(args.institution)
        stdout.write(f"Deleted {len(deleted)} {args.institution.value} cache entries.\n")
        return EXIT_OK

    if args.command == "analytics":
        snapshot = GetAnalyticsUseCase(cache).execute()
        payload = {
            "counters": snapshot.counters,
            "cachedCourses": snapshot.cached_courses,
            "recentDeliveryErrors": snapshot.recent_delivery_errors,
        }
        stdout.write(json.dumps(payload, indent=2))
        stdout.write("\n")
        return EXIT_OK

    if args.command == "periods":
        years = ", ".join(str(year) for year in selectable_years(today))
        stdout.write(f"Current period: {format_semester(current_semester(today))}\n")
        stdout.write(f"Selectable years: {years}\n")
        return EXIT_OK

    if args.command == "relay-key":
        secrets = secret_store or KeyringSecretStore()
        if args.action == "delete":
            secrets.delete_relay_key()
            stdout.write("Relay key deleted.\n")
            return EXIT_OK
        value = args.value if args.value is not None else getpass.getpass("Relay API key: ")
        secrets.set_relay_key(value)
        stdout.write("Relay key stored.\n")
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command-line interface."""
    for env_file in ENV_FILES:
        load_dotenv(Path.cwd() / env_file, override=True)

    args = build_parser().parse_args(argv)
    store: CacheStore | None = None
    fetcher: HttpDocumentFetcher | None = None
    try:
        configure_logging()
        store = create_cache_store(load_cache_config(args.cache_url))
        fetcher = HttpDocumentFetcher(load_fetcher_config(use_relay=_relay_enabled(args)))
        return run_command(args, fetcher=fetcher, store=store, stdout=sys.stdout)
    except ScrapeTemporarilyUnavailableError as exc:
        print(f"Temporarily limited, retry later: {exc}")
        return EXIT_TEMPORARILY_LIMITED
    except (ScrapeError, KeyringStoreError, ValueError) as exc:
        print(f"Error: {exc}")
        return EXIT_FAILURE
    except Exception:
        correlation_id = str(uuid4())
        LOGGER.exception(
            "event=cli_command_failed correlation_id=%s command=%s",
            correlation_id,
            args.command,
        )
        print(f"Unexpected failure. correlation_id={correlation_id}")
        return EXIT_FAILURE
    finally:
        if fetcher is not None:
            fetcher.close()
        if isinstance(store, SqlAlchemyCacheStore):
            store.close()


def _selection_from_args(args: argparse.Namespace) -> SemesterSelection | None:
    provided = [args.year, args.semester, args.delivery]
    if all(value is None for value in provided):
        return None
    if any(value is None for value in provided):
        raise ValueError("--year, --semester and --delivery must be given together.")
    validate_year(args.year)
    return SemesterSelection(year=args.year, semester=args.semester, delivery=args.delivery)


def _period_from_args(args: argparse.Namespace, today: date | None) -> tuple[int, SemesterType]:
    if args.year is None and args.semester is None:
        current = current_semester(today)
        return current.year, current.semester
    if args.year is None or args.semester is None:
        raise ValueError("--year and --semester must be given together.")
    return args.year, args.semester


def _relay_enabled(args: argparse.Namespace) -> bool:
    """Return whether fetches use the relay; backfill uses it only with --use-relay."""
    if args.no_relay:
        return False
    if args.command == "backfill":
        return bool(args.use_relay)
    return True


if __name__ == "__main__":
    raise SystemExit(main())
