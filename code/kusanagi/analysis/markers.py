"""Phase markers and the search that resolves a marker to an event in a window."""

import logging
from contextlib import aclosing
from typing import Annotated, Literal, Union

from pydantic import Field

from kusanagi.fflogs.events import EventSource, EventStream
from kusanagi.fflogs.models import FFLogsBaseModel
from kusanagi.fflogs.report_events import (
    BaseEvent,
    BeginCast,
    Cast,
    Death,
    EventFilters,
    EventsView,
    Hostility,
)

logger = logging.getLogger(__name__)


class FightStartMarker(FFLogsBaseModel):
    """Matches the first event of any kind in the window."""

    type: Literal["fightStart"] = "fightStart"

    def create_event_filters(self) -> tuple[EventsView, EventFilters]:
        return EventsView.SUMMARY, EventFilters()

    def matches(self, event: BaseEvent) -> bool:
        return True


class _EventMarker(FFLogsBaseModel):
    type: Literal["event"] = "event"
    instance_no: int | None = Field(None, ge=0)
    event_hostility: Hostility | None = None

    @property
    def skip_count(self) -> int:
        return self.instance_no or 0

    @property
    def hostility(self) -> Hostility:
        if self.event_hostility is None:
            return Hostility.HOSTILE
        return self.event_hostility


class BeginCastMarker(_EventMarker):
    ev_type: Literal["BeginCast"] = "BeginCast"
    ability_id: int

    def create_event_filters(self) -> tuple[EventsView, EventFilters]:
        return EventsView.CASTS, EventFilters(
            ability_id=self.ability_id, hostility=self.hostility,
        )

    def matches(self, event: BaseEvent) -> bool:
        return isinstance(event, BeginCast) and event.ability.guid == self.ability_id


class EndCastMarker(_EventMarker):
    ev_type: Literal["Cast"] = "Cast"
    ability_id: int

    def create_event_filters(self) -> tuple[EventsView, EventFilters]:
        return EventsView.CASTS, EventFilters(
            ability_id=self.ability_id, hostility=self.hostility,
        )

    def matches(self, event: BaseEvent) -> bool:
        return isinstance(event, Cast) and event.ability.guid == self.ability_id


class DeathMarker(_EventMarker):
    ev_type: Literal["Death"] = "Death"
    target_id: int

    def create_event_filters(self) -> tuple[EventsView, EventFilters]:
        return EventsView.DEATHS, EventFilters(
            target_id=self.target_id, hostility=self.hostility,
        )

    def matches(self, event: BaseEvent) -> bool:
        return isinstance(event, Death) and event.get_target_id() == self.target_id


EventMarker = Annotated[
    Union[BeginCastMarker, EndCastMarker, DeathMarker],
    Field(discriminator="ev_type"),
]

PhaseMarker = Annotated[
    Union[FightStartMarker, EventMarker],
    Field(discriminator="type"),
]


async def find_matching_event(
    marker: FightStartMarker | BeginCastMarker | EndCastMarker | DeathMarker,
    report_code: str,
    start_time: int,
    end_time: int,
    source: EventSource,
) -> BaseEvent | None:
    """Find the event a marker points at within [start_time, end_time).

    Events are pulled one at a time and the stream is closed as soon as the
    answer is known, so no pages past the match are requested. For event
    markers the first ``instance_no`` matching events are skipped.

    Raises:
        FFLogsAPIError: if fetching a page fails.
    """
    view, filters = marker.create_event_filters()
    stream = EventStream(
        source, view, report_code, filters.with_window(start_time, end_time),
    )
    async with aclosing(stream) as events:
        if isinstance(marker, FightStartMarker):
            return await anext(events, None)

        to_skip = marker.skip_count
        async for event in events:
            if not marker.matches(event):
                logger.debug("Discarded event %r for marker %r", event, marker)
                continue
            if to_skip > 0:
                to_skip -= 1
                logger.debug("Skipped matching event %r for marker %r", event, marker)
                continue
            logger.debug("Accepted event %r as match for marker %r", event, marker)
            return event
    return None
