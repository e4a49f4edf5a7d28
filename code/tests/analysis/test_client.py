import pytest
from fakes import (
    REPORT_CODE,
    REPORT_START,
    SimulatedSource,
    cast,
    damage,
    death,
    fight,
    report_fights,
)

from kusanagi.analysis.client import LogAnalysisClient, convert_report_code
from kusanagi.analysis.definitions import PhaseDefinition, PhaseDefinitionsCollection
from kusanagi.analysis.errors import (
    InvalidReportCodeError,
    NoMatchingFightsError,
    SourceError,
    UnknownFightError,
    UnlabeledFightError,
    UnspecifiedFightTimeError,
)
from kusanagi.analysis.markers import DeathMarker, EndCastMarker, FightStartMarker
from kusanagi.fflogs.client import ApiReturnedError

TEA = "The Epic of Alexander"

TEA_PHASES = (
    PhaseDefinition(
        name="Living Liquid",
        start_marker=FightStartMarker(),
        end_marker=DeathMarker(target_id=12),
    ),
    PhaseDefinition(name="Limit Cut", start_marker=EndCastMarker(ability_id=18480)),
)

DEFINITIONS = PhaseDefinitionsCollection({TEA: TEA_PHASES})

# Pull 1 (0-60s) wipes in Living Liquid, pull 2 (100-250s) reaches Limit Cut
EVENTS = [
    damage(1000),
    damage(101_000),
    death(150_000, 12),
    cast(160_000, 18480),
    damage(200_000),
]

FIGHTS = report_fights([
    fight(1, TEA, 1000, 60_000),
    fight(2, "Trash", 70_000, 90_000),
    fight(3, TEA, 101_000, 250_000),
])


def _client(fights=FIGHTS, events=EVENTS):
    source = SimulatedSource(events, fights=fights)
    return LogAnalysisClient(source, DEFINITIONS), source


class TestConvertReportCode:
    def test_bare_code(self):
        assert convert_report_code(REPORT_CODE) == REPORT_CODE

    def test_url(self):
        url = f"https://www.fflogs.com/reports/{REPORT_CODE}#fight=3&type=damage-done"
        assert convert_report_code(url) == REPORT_CODE

    def test_url_without_scheme(self):
        assert convert_report_code(f"fflogs.com/reports/{REPORT_CODE}") == REPORT_CODE

    def test_invalid(self):
        with pytest.raises(InvalidReportCodeError) as exc_info:
            convert_report_code("not-a-report")
        assert str(exc_info.value) == "That wasn't a valid report code or FFLogs url."


class TestAnalyseFightsByName:
    async def test_only_matching_fights_analysed(self):
        client, source = _client()

        report = await client.analyse_fights_by_name(REPORT_CODE, TEA)

        assert source.fight_list_calls == [REPORT_CODE]
        assert [f.start_time for f in report.fights] == [1000, 101_000]
        assert report.report_start == REPORT_START
        assert [p.name for p in report.fights[1].phases] == ["Living Liquid", "Limit Cut"]

    async def test_results_share_definitions(self):
        client, _ = _client()
        report = await client.analyse_fights_by_name(REPORT_CODE, TEA)
        assert all(f.definitions is TEA_PHASES for f in report.fights)

    async def test_no_matches_is_empty_analysis(self):
        client, source = _client()
        report = await client.analyse_fights_by_name(REPORT_CODE, "The Unending Coil")
        assert report.fights == []
        assert source.calls == []

    async def test_unknown_encounter_fails_before_fetching_events(self):
        fights = report_fights([fight(1, "The Unending Coil", 0, 1000)])
        client, source = _client(fights=fights)

        with pytest.raises(UnknownFightError) as exc_info:
            await client.analyse_fights_by_name(REPORT_CODE, "The Unending Coil")

        assert exc_info.value.fight_name == "The Unending Coil"
        assert "Phase definitions do not yet exist" in str(exc_info.value)
        assert source.calls == []

    async def test_report_without_timings(self):
        client, _ = _client(fights=report_fights([fight(1, TEA, 0, 1000)], start=None))
        with pytest.raises(UnspecifiedFightTimeError):
            await client.analyse_fights_by_name(REPORT_CODE, TEA)

    async def test_fight_list_failure_becomes_source_error(self):
        client, _ = _client(fights=ApiReturnedError(400, "This report does not exist."))
        with pytest.raises(SourceError, match="This report does not exist"):
            await client.analyse_fights_by_name(REPORT_CODE, TEA)


class TestAnalyseFightsFromReport:
    async def test_custom_predicate(self):
        client, _ = _client()
        report = await client.analyse_fights_from_report(
            REPORT_CODE, lambda f: f.id == 3,
        )
        assert len(report.fights) == 1
        assert report.fights[0].end_time == 250_000

    async def test_unnamed_fight_rejected(self):
        fights = report_fights([fight(1, None, 0, 1000)])
        client, source = _client(fights=fights)

        with pytest.raises(UnlabeledFightError):
            await client.analyse_fights_from_report(REPORT_CODE, lambda f: True)
        assert source.calls == []


async def test_analyse_single_fight():
    client, _ = _client()
    analysis = await client.analyse_single_fight(REPORT_CODE, FIGHTS.fights[0])

    assert analysis.fight_name == TEA
    assert analysis.report_code == REPORT_CODE
    assert [p.name for p in analysis.phases] == ["Living Liquid"]


class TestAnalyse:
    async def test_summary_over_matching_pulls(self):
        client, _ = _client()

        summary = await client.analyse(
            f"https://www.fflogs.com/reports/{REPORT_CODE}", TEA,
        )

        assert summary.pull_count == 2
        assert summary.total_time_spent_in_fights == pytest.approx(59 + 149)
        liquid, limit_cut = summary.phases
        assert liquid.seen_count == 2
        assert liquid.clear_rate == 0.5
        assert limit_cut.seen_count == 1
        assert limit_cut.seen_rate == 0.5
        # Last defined phase running into the end of the pull
        assert limit_cut.clear_rate == 0.0

    async def test_no_matching_fights(self):
        client, _ = _client()
        with pytest.raises(NoMatchingFightsError):
            await client.analyse(REPORT_CODE, "The Unending Coil")

    async def test_invalid_code(self):
        client, source = _client()
        with pytest.raises(InvalidReportCodeError):
            await client.analyse("???", TEA)
        assert source.fight_list_calls == []
