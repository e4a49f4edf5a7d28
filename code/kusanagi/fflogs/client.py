import logging
import re
from typing import Any

import httpx
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from kusanagi.fflogs.models import ReportFights
from kusanagi.fflogs.rate_limiter import RateLimiter
from kusanagi.fflogs.report_events import (
    EventFilters,
    EventPage,
    EventsView,
    UnrecognizedEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.fflogs.com/v1"

_REPORT_CODE_RE = re.compile(r"[A-Za-z0-9]+")


class FFLogsAPIError(Exception):
    """Raised when a request to the FFLogs API fails."""


class RequestConstructionError(FFLogsAPIError):
    """The request could not be built (bad report code, invalid URL)."""


class TransportError(FFLogsAPIError):
    """The request never produced a response."""


class ApiReturnedError(FFLogsAPIError):
    """The API answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"FFLogs API returned {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ResponseFormatError(FFLogsAPIError):
    """The response body could not be decoded into the expected shape."""


def _is_server_error(response: httpx.Response) -> bool:
    return response.status_code >= 500


def _last_outcome(retry_state) -> httpx.Response:
    # Hand the final 5xx response back to the caller instead of a RetryError
    return retry_state.outcome.result()


def truncate_api_key(api_key: str) -> str:
    return f"{api_key[:4]}..."


class FFLogsClient:
    """Async client for the FFLogs v1 REST API; acts as the analysis event source."""

    def __init__(
        self,
        api_key: str,
        rate_limiter: RateLimiter | None = None,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._rate_limiter = rate_limiter or RateLimiter()
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._http = http_client
        self._owns_http = http_client is None
        logger.info(
            "Created FFLogs API client with API key %s", truncate_api_key(api_key),
        )

    async def __aenter__(self) -> "FFLogsClient":
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._timeout)
            self._owns_http = True
        return self

    async def __aexit__(self, *exc: object) -> None:
        if self._http and self._owns_http:
            await self._http.aclose()
            self._http = None

    async def fetch_page(
        self, view: EventsView, report_code: str, filters: EventFilters,
    ) -> EventPage:
        """Fetch one page of events for the window described by filters."""
        _check_report_code(report_code)
        path = f"/report/events/{view}/{report_code}"
        logger.debug(
            "Requesting %s events for report %s (%d-%d)",
            view, report_code, filters.start, filters.end,
        )
        payload = await self.get_json(path, filters.to_query_params())
        try:
            page = EventPage.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Failed to decode events page for %s: %s", report_code, exc)
            logger.debug("Response contents: %r", payload)
            raise ResponseFormatError(str(exc)) from exc
        if any(isinstance(e, UnrecognizedEvent) for e in page.events):
            logger.warning(
                "Unknown event type received from %s for report %s", path, report_code,
            )
        return page

    async def fetch_fight_list(self, report_code: str) -> ReportFights:
        """Fetch the fights contained in a report, with names translated to English."""
        _check_report_code(report_code)
        payload = await self.get_json(
            f"/report/fights/{report_code}", {"translate": "true"},
        )
        try:
            return ReportFights.model_validate(payload)
        except ValidationError as exc:
            logger.warning("Failed to decode fights list for %s: %s", report_code, exc)
            logger.debug("Response contents: %r", payload)
            raise ResponseFormatError(str(exc)) from exc

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """GET an API path and return the decoded JSON body.

        Network errors and 5xx responses are retried with exponential backoff.
        A 429 marks the rate limiter throttled and is raised like any other
        non-success status; retrying is left to the caller.
        """
        if self._http is None:
            raise RuntimeError("Use FFLogsClient as an async context manager")

        url = f"{self._api_url}{path}"
        query = dict(params or {})
        query["api_key"] = self._api_key

        try:
            response = await self._send(url, query)
        except httpx.InvalidURL as exc:
            raise RequestConstructionError(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.warning("Request to %s failed: %s", path, exc)
            raise TransportError(str(exc) or type(exc).__name__) from exc

        if response.status_code == 429:
            self._rate_limiter.mark_throttled(_parse_retry_after(response))

        if response.status_code >= 400:
            logger.warning(
                "Request to %s returned non-success response %d",
                path, response.status_code,
            )
            raise ApiReturnedError(response.status_code, response.text)

        try:
            data = response.json()
        except ValueError as exc:
            logger.warning("Failed to decode response from %s: %s", path, exc)
            logger.debug("Response contents: %r", response.text)
            raise ResponseFormatError(str(exc)) from exc

        logger.info("Successfully requested data from endpoint %s", path)
        return data

    @retry(
        retry=(
            retry_if_result(_is_server_error)
            | retry_if_exception_type((httpx.ConnectError, httpx.ReadTimeout))
        ),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry_error_callback=_last_outcome,
    )
    async def _send(self, url: str, params: dict[str, Any]) -> httpx.Response:
        # Every attempt, retries included, spends one call of the budget
        await self._rate_limiter.wait_if_needed()
        return await self._http.get(url, params=params)


def _check_report_code(report_code: str) -> None:
    if not _REPORT_CODE_RE.fullmatch(report_code):
        raise RequestConstructionError(f"Invalid report code {report_code!r}")


def _parse_retry_after(response: httpx.Response) -> int | None:
    """Extract Retry-After header as integer seconds, or None."""
    raw = response.headers.get("Retry-After")
    if raw and raw.isdigit():
        return int(raw)
    return None
