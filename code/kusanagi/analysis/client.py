import logging
from collections.abc import Callable

from kusanagi.analysis.definitions import PhaseDefinition, PhaseDefinitionsCollection
from kusanagi.analysis.errors import (
    InvalidReportCodeError,
    NoMatchingFightsError,
    SourceError,
    UnknownFightError,
    UnlabeledFightError,
    UnspecifiedFightTimeError,
)
from kusanagi.analysis.phases import (
    FightAnalysis,
    ReportAnalysis,
    analyse_fight,
    get_report_stats,
)
from kusanagi.analysis.summary import ReportSummary, summarise_report
from kusanagi.fflogs.client import FFLogsAPIError
from kusanagi.fflogs.events import EventSource
from kusanagi.fflogs.models import Fight
from kusanagi.utils import extract_report_code

logger = logging.getLogger(__name__)


def convert_report_code(code_or_url: str) -> str:
    """Accept a bare 16-character report code or an fflogs.com report URL."""
    code = extract_report_code(code_or_url)
    if code is None:
        raise InvalidReportCodeError()
    return code


class LogAnalysisClient:
    """Entry point for progression analysis.

    Holds the event source and the phase definitions for its whole lifetime;
    every analysis shares the same definitions.
    """

    def __init__(
        self, source: EventSource, definitions: PhaseDefinitionsCollection,
    ) -> None:
        self._source = source
        self._definitions = definitions

    @property
    def definitions(self) -> PhaseDefinitionsCollection:
        return self._definitions

    async def analyse(self, report_code_or_url: str, encounter_name: str) -> ReportSummary:
        """Summarise progression on one encounter across every pull in a report."""
        report_code = convert_report_code(report_code_or_url)
        logger.info(
            "Analysing %s pulls in report %s", encounter_name, report_code,
        )
        report = await self.analyse_fights_by_name(report_code, encounter_name)
        if not report.fights:
            raise NoMatchingFightsError()
        summary = summarise_report(get_report_stats(report))
        logger.info(
            "Finished analysis of report %s: %d pulls of %s",
            report_code, summary.pull_count, encounter_name,
        )
        return summary

    async def analyse_fights_by_name(self, report_code: str, name: str) -> ReportAnalysis:
        return await self.analyse_fights_from_report(
            report_code, lambda fight: fight.name == name,
        )

    async def analyse_fights_from_report(
        self, report_code: str, predicate: Callable[[Fight], bool],
    ) -> ReportAnalysis:
        """Resolve phases for every fight in the report accepted by predicate.

        Phase definitions for all matching fights are looked up before any
        events are fetched, so an unknown encounter fails without partial work.
        """
        try:
            report_fights = await self._source.fetch_fight_list(report_code)
        except FFLogsAPIError as exc:
            raise SourceError(f"{exc} (report {report_code})") from exc

        if report_fights.start is None or report_fights.end is None:
            raise UnspecifiedFightTimeError()

        matching = [f for f in report_fights.fights if predicate(f)]
        logger.debug(
            "%d of %d fights in report %s matched",
            len(matching), len(report_fights.fights), report_code,
        )
        for fight in matching:
            self._definitions_for(fight)

        fights = [await self.analyse_single_fight(report_code, f) for f in matching]
        return ReportAnalysis(
            report_code=report_code,
            report_start=report_fights.start,
            report_end=report_fights.end,
            fights=fights,
        )

    async def analyse_single_fight(self, report_code: str, fight: Fight) -> FightAnalysis:
        """Resolve phase boundaries for one already identified pull."""
        definitions = self._definitions_for(fight)
        return await analyse_fight(
            report_code,
            fight.name,
            fight.start_time,
            fight.end_time,
            definitions,
            self._source,
        )

    def _definitions_for(self, fight: Fight) -> tuple[PhaseDefinition, ...]:
        if fight.name is None:
            raise UnlabeledFightError()
        definitions = self._definitions.get(fight.name)
        if definitions is None:
            raise UnknownFightError(fight.name)
        return definitions
