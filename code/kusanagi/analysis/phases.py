"""Phase boundary detection for a single pull and per-pull phase statistics."""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from kusanagi.analysis.definitions import PhaseDefinition
from kusanagi.analysis.errors import InvalidEventMatchError, SourceError
from kusanagi.analysis.markers import PhaseMarker, find_matching_event
from kusanagi.fflogs.client import FFLogsAPIError
from kusanagi.fflogs.events import EventSource
from kusanagi.fflogs.report_events import BaseEvent
from kusanagi.utils import from_epoch_ms

logger = logging.getLogger(__name__)


@dataclass
class ResolvedPhase:
    name: str
    start_timestamp: int
    start_event: BaseEvent | None = None
    end_timestamp: int | None = None
    end_event: BaseEvent | None = None


@dataclass
class FightAnalysis:
    """Resolved phase boundaries for one pull. Times are ms from report start."""

    fight_name: str
    report_code: str
    start_time: int
    end_time: int
    phases: list[ResolvedPhase]
    definitions: tuple[PhaseDefinition, ...]


@dataclass
class ReportAnalysis:
    report_code: str
    report_start: int  # epoch ms
    report_end: int  # epoch ms
    fights: list[FightAnalysis] = field(default_factory=list)


class ClearedStatus(StrEnum):
    CLEAR = "clear"
    WIPED = "wiped"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PhaseProgress:
    phase_name: str
    duration_secs: float
    cleared: ClearedStatus


@dataclass
class FightStatistics:
    fight_name: str
    fight_start: datetime | None
    fight_end: datetime | None
    duration_secs: float
    phases: list[PhaseProgress]
    definitions: tuple[PhaseDefinition, ...]


async def analyse_phase(
    report_code: str,
    fight_name: str,
    start_time: int,
    end_time: int,
    definition: PhaseDefinition,
    source: EventSource,
) -> ResolvedPhase | None:
    """Resolve one phase's boundaries, searching from start_time.

    Returns None when the phase has a start marker that never fires, i.e.
    the pull did not reach this phase.
    """
    logger.debug(
        "Now analysing phase %s for %s in report %s",
        definition.name, fight_name, report_code,
    )

    async def _find(marker: PhaseMarker, search_start: int) -> BaseEvent | None:
        try:
            return await find_matching_event(
                marker, report_code, search_start, end_time, source,
            )
        except FFLogsAPIError as exc:
            raise SourceError(
                f"{exc} (report {report_code}, fight {fight_name}, "
                f"phase {definition.name})"
            ) from exc

    phase = ResolvedPhase(name=definition.name, start_timestamp=start_time)

    if definition.start_marker is not None:
        start_event = await _find(definition.start_marker, start_time)
        if start_event is None:
            return None
        start_timestamp = start_event.get_timestamp()
        if start_timestamp is None:
            raise InvalidEventMatchError()
        phase.start_event = start_event
        phase.start_timestamp = start_timestamp

    if definition.end_marker is not None:
        end_event = await _find(definition.end_marker, phase.start_timestamp)
        if end_event is not None:
            end_timestamp = end_event.get_timestamp()
            if end_timestamp is None:
                raise InvalidEventMatchError()
            phase.end_event = end_event
            phase.end_timestamp = end_timestamp

    return phase


def backfill_phase_ends(phases: list[ResolvedPhase]) -> None:
    """Close every open phase but the last at the start of the phase after it."""
    for current, following in zip(phases, phases[1:]):
        if current.end_timestamp is None:
            current.end_timestamp = following.start_timestamp
            current.end_event = following.start_event


async def analyse_fight(
    report_code: str,
    fight_name: str,
    start_time: int,
    end_time: int,
    definitions: tuple[PhaseDefinition, ...],
    source: EventSource,
) -> FightAnalysis:
    """Walk the phase definitions in order and resolve each phase's boundaries.

    Each search starts where the previous phase ended (or started, when its
    end was not found). The first phase whose start marker has no match
    ends the walk: it and every later phase count as not reached.
    """
    resolved: list[ResolvedPhase] = []
    cursor = start_time

    for definition in definitions:
        phase = await analyse_phase(
            report_code, fight_name, cursor, end_time, definition, source,
        )
        if phase is None:
            logger.debug(
                "Phase %s not reached in %s (report %s)",
                definition.name, fight_name, report_code,
            )
            break
        cursor = phase.end_timestamp if phase.end_timestamp is not None else phase.start_timestamp
        resolved.append(phase)

    backfill_phase_ends(resolved)

    return FightAnalysis(
        fight_name=fight_name,
        report_code=report_code,
        start_time=start_time,
        end_time=end_time,
        phases=resolved,
        definitions=definitions,
    )


def classify_phases(
    phases: list[ResolvedPhase],
    fight_end: int,
    definitions: tuple[PhaseDefinition, ...],
) -> list[PhaseProgress]:
    """Turn resolved boundaries into per-phase durations and clear status.

    Every phase with a known end was cleared. A last phase with no end runs
    to the end of the pull: it was wiped on if a later phase is defined,
    otherwise the outcome is unknown (kill and wipe look the same).
    """
    progress: list[PhaseProgress] = []
    for idx, phase in enumerate(phases):
        is_last = idx == len(phases) - 1
        if not is_last:
            end = phase.end_timestamp
            if end is None:
                end = phases[idx + 1].start_timestamp
            duration_ms = end - phase.start_timestamp
            cleared = ClearedStatus.CLEAR
        elif phase.end_timestamp is not None:
            duration_ms = phase.end_timestamp - phase.start_timestamp
            cleared = ClearedStatus.CLEAR
        else:
            duration_ms = fight_end - phase.start_timestamp
            position = next(
                (i for i, d in enumerate(definitions) if d.name == phase.name), None,
            )
            if position is not None and position < len(definitions) - 1:
                cleared = ClearedStatus.WIPED
            else:
                cleared = ClearedStatus.UNKNOWN

        progress.append(PhaseProgress(
            phase_name=phase.name,
            duration_secs=duration_ms / 1000,
            cleared=cleared,
        ))
    return progress


def get_pull_stats(analysis: FightAnalysis, report_start_millis: int) -> FightStatistics:
    return FightStatistics(
        fight_name=analysis.fight_name,
        fight_start=from_epoch_ms(report_start_millis + analysis.start_time),
        fight_end=from_epoch_ms(report_start_millis + analysis.end_time),
        duration_secs=(analysis.end_time - analysis.start_time) / 1000,
        phases=classify_phases(analysis.phases, analysis.end_time, analysis.definitions),
        definitions=analysis.definitions,
    )


def get_report_stats(report: ReportAnalysis) -> list[FightStatistics]:
    return [get_pull_stats(fight, report.report_start) for fight in report.fights]
