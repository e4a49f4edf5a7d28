"""Paginated FFLogs events fetching: a lazy single-pass stream and an eager variant."""

import logging
from collections import deque
from collections.abc import AsyncIterator
from typing import Protocol

from kusanagi.fflogs.models import ReportFights
from kusanagi.fflogs.report_events import BaseEvent, EventFilters, EventPage, EventsView

logger = logging.getLogger(__name__)

MAX_PAGES = 100


class EventSource(Protocol):
    """What the analysis needs from the API: event pages and the fight list."""

    async def fetch_page(
        self, view: EventsView, report_code: str, filters: EventFilters,
    ) -> EventPage: ...

    async def fetch_fight_list(self, report_code: str) -> ReportFights: ...


def _in_window(event: BaseEvent, start: int, end: int) -> bool:
    timestamp = event.get_timestamp()
    return timestamp is None or start <= timestamp < end


class EventStream:
    """Single-pass async iterator over every event in a window, fetched page by page.

    Nothing is requested until the first pull. Only one page request is ever
    outstanding; pulling from two tasks at once raises RuntimeError. A failed
    request is raised from the pull that triggered it and ends the stream.
    """

    def __init__(
        self,
        source: EventSource,
        view: EventsView,
        report_code: str,
        filters: EventFilters,
    ) -> None:
        self._source = source
        self._view = view
        self._report_code = report_code
        self._filters = filters
        self._buffer: deque[BaseEvent] = deque()
        self._next_page_timestamp: int | None = filters.start
        self.pages_fetched = 0
        self._events = self._generate()

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> BaseEvent:
        return await self._events.__anext__()

    async def aclose(self) -> None:
        await self._events.aclose()

    async def _generate(self) -> AsyncIterator[BaseEvent]:
        start, end = self._filters.start, self._filters.end
        last_page_start: int | None = None

        while True:
            if self._buffer:
                yield self._buffer.popleft()
                continue

            page_start = self._next_page_timestamp
            if page_start is None or page_start >= end:
                return
            if last_page_start is not None and page_start <= last_page_start:
                logger.warning(
                    "Stuck pagination for %s %s: nextPageTimestamp %d <= previous %d",
                    self._report_code, self._view, page_start, last_page_start,
                )
                return

            page = await self._source.fetch_page(
                self._view, self._report_code,
                self._filters.with_window(page_start, end),
            )
            self.pages_fetched += 1
            last_page_start = page_start
            if not page.events:
                return

            self._buffer.extend(e for e in page.events if _in_window(e, start, end))
            self._next_page_timestamp = page.next_page_timestamp
            logger.debug(
                "Events pagination for %s %s: page %d, next page at %s",
                self._report_code, self._view, self.pages_fetched,
                page.next_page_timestamp,
            )


async def fetch_all_events(
    source: EventSource,
    view: EventsView,
    report_code: str,
    filters: EventFilters,
    *,
    max_pages: int = MAX_PAGES,
) -> list[BaseEvent]:
    """Fetch every event in the filters' window eagerly.

    Args:
        source: Event source (normally an FFLogsClient).
        view: Events view to request.
        report_code: FFLogs report code.
        filters: Window and server-side filters.
        max_pages: Maximum number of pages to fetch (safety limit).

    Returns:
        All events in the window, in source order.
    """
    start, end = filters.start, filters.end
    current_start: int | None = start
    events: list[BaseEvent] = []
    page_count = 0

    while current_start is not None and current_start < end:
        page = await source.fetch_page(
            view, report_code, filters.with_window(current_start, end),
        )
        page_count += 1
        if not page.events:
            break
        events.extend(e for e in page.events if _in_window(e, start, end))

        next_page = page.next_page_timestamp
        if next_page is not None and next_page <= current_start:
            logger.warning(
                "Stuck pagination for %s %s: nextPageTimestamp %d <= current %d, "
                "stopping after %d pages (%d events)",
                report_code, view, next_page, current_start,
                page_count, len(events),
            )
            break

        if next_page is not None and next_page < end and page_count >= max_pages:
            logger.warning(
                "Max pages (%d) reached for %s %s, stopping with %d events",
                max_pages, report_code, view, len(events),
            )
            break

        current_start = next_page

    logger.info(
        "Fetched %d %s events for %s in %d pages (%d-%d)",
        len(events), view, report_code, page_count, start, end,
    )
    return events
