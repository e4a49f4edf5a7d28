import math

import pytest

from kusanagi.analysis.definitions import PhaseDefinition
from kusanagi.analysis.phases import ClearedStatus, FightStatistics, PhaseProgress
from kusanagi.analysis.summary import ReportSummary, summarise_report

DEFINITIONS = (
    PhaseDefinition(name="Living Liquid"),
    PhaseDefinition(name="Limit Cut"),
    PhaseDefinition(name="Brute Justice"),
)


def _pull(duration, *progress):
    return FightStatistics(
        fight_name="The Epic of Alexander",
        fight_start=None,
        fight_end=None,
        duration_secs=duration,
        phases=[PhaseProgress(name, secs, cleared) for name, secs, cleared in progress],
        definitions=DEFINITIONS,
    )


def test_three_pull_report():
    pulls = [
        _pull(60, ("Living Liquid", 60, ClearedStatus.WIPED)),
        _pull(
            150,
            ("Living Liquid", 100, ClearedStatus.CLEAR),
            ("Limit Cut", 50, ClearedStatus.WIPED),
        ),
        _pull(
            240,
            ("Living Liquid", 90, ClearedStatus.CLEAR),
            ("Limit Cut", 70, ClearedStatus.CLEAR),
            ("Brute Justice", 80, ClearedStatus.UNKNOWN),
        ),
    ]

    summary = summarise_report(pulls)

    assert summary.pull_count == 3
    assert summary.total_time_spent_in_fights == 450
    assert summary.average_duration == 150

    liquid, limit_cut, brute = summary.phases
    assert liquid.name == "Living Liquid"
    assert liquid.seen_count == 3
    assert liquid.seen_rate == 1.0
    assert liquid.clear_rate == pytest.approx(2 / 3)
    assert liquid.total_time_spent_secs == 250

    assert limit_cut.seen_count == 2
    assert limit_cut.seen_rate == pytest.approx(2 / 3)
    assert limit_cut.clear_rate == 0.5
    assert limit_cut.total_time_spent_secs == 120

    assert brute.seen_count == 1
    assert brute.clear_rate == 0.0
    assert brute.total_time_spent_secs == 80


def test_never_seen_phase_has_nan_clear_rate():
    summary = summarise_report([_pull(30, ("Living Liquid", 30, ClearedStatus.WIPED))])

    never = summary.phases[2]
    assert never.seen_count == 0
    assert never.seen_rate == 0.0
    assert never.total_time_spent_secs == 0
    assert math.isnan(never.clear_rate)


def test_phases_follow_definition_order():
    summary = summarise_report([_pull(10)])
    assert [p.name for p in summary.phases] == [d.name for d in DEFINITIONS]


def test_empty_report():
    summary = summarise_report([])
    assert summary == ReportSummary()
    assert summary.pull_count == 0
    assert summary.average_duration == 0.0
    assert summary.total_time_spent_in_fights == 0.0
    assert summary.phases == []
