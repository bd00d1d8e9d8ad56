"""httpx adapter for retrieving course documents, optionally through a relay."""

from __future__ import annotations

import logging

import httpx

from assessment_scraper.application.errors import FetchError, RateLimitedError
from assessment_scraper.application.ports import DocumentFetcher
from assessment_scraper.infrastructure.http.config import FetcherConfig

LOGGER = logging.getLogger(__name__)

RATE_LIMIT_STATUS_CODES = frozenset({403, 429})
RATE_LIMIT_MESSAGE = (
    "Unfortunately the assessment service has reached its limit. Please try again later."
)


class HttpDocumentFetcher(DocumentFetcher):
    """Fetch HTML documents directly or through a scraping relay."""

    def __init__(
        self,
        config: FetcherConfig | None = None,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._config = config or FetcherConfig()
        self._http_client = http_client or httpx.Client(follow_redirects=True)
        self._owns_client = http_client is None

    @property
    def uses_relay(self) -> bool:
        """Return whether requests are routed through the relay."""
        return self._config.uses_relay

    def close(self) -> None:
        """Close owned HTTP client."""
        if self._owns_client:
            self._http_client.close()

    def fetch(self, url: str) -> str:
        """Return document text for url or raise FetchError."""
        LOGGER.info("event=document_fetch_started url=%s relay=%s", url, self.uses_relay)
        try:
            if self._config.relay_api_key is not None:
                response = self._http_client.get(
                    self._config.relay_base_url,
                    params={"api_key": self._config.relay_api_key, "url": url},
                    timeout=self._config.timeout_seconds,
                )
            else:
                response = self._http_client.get(
                    url,
                    headers={
                        "User-Agent": self._config.user_agent,
                        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                        "Accept-Language": "en-US,en;q=0.5",
                    },
                    timeout=self._config.timeout_seconds,
                )
        except httpx.TransportError as exc:
            LOGGER.warning(
                "event=document_fetch_failed url=%s error_type=%s",
                url,
                exc.__class__.__name__,
            )
            raise FetchError(f"Failed to fetch {url} ({exc.__class__.__name__})", url=url) from exc

        _raise_for_status(url, response)
        LOGGER.info(
            "event=document_fetch_completed url=%s status=%s length=%s",
            url,
            response.status_code,
            len(response.text),
        )
        return response.text


def _raise_for_status(url: str, response: httpx.Response) -> None:
    status_code = response.status_code
    if 200 <= status_code < 300:
        return

    LOGGER.warning("event=document_fetch_failed url=%s status=%s", url, status_code)
    if status_code in RATE_LIMIT_STATUS_CODES:
        raise RateLimitedError(RATE_LIMIT_MESSAGE, url=url, status_code=status_code)
    raise FetchError(f"Failed to fetch {url} ({status_code})", url=url, status_code=status_code)
