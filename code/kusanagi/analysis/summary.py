import math
from dataclasses import dataclass, field

from kusanagi.analysis.phases import ClearedStatus, FightStatistics


@dataclass
class PhaseStatistics:
    name: str
    total_time_spent_secs: float
    clear_rate: float  # NaN when the phase was never seen
    seen_rate: float
    seen_count: int


@dataclass
class ReportSummary:
    phases: list[PhaseStatistics] = field(default_factory=list)
    average_duration: float = 0.0
    pull_count: int = 0
    total_time_spent_in_fights: float = 0.0


def summarise_report(fight_stats: list[FightStatistics]) -> ReportSummary:
    """Aggregate per-pull phase progress into per-phase and report-wide statistics.

    All pulls are assumed to share the phase definitions of the first one.
    """
    if not fight_stats:
        return ReportSummary()

    pull_count = len(fight_stats)
    phases: list[PhaseStatistics] = []
    for definition in fight_stats[0].definitions:
        time_spent = 0.0
        seen_count = 0
        cleared_count = 0
        for fight in fight_stats:
            progress = next(
                (p for p in fight.phases if p.phase_name == definition.name), None,
            )
            if progress is None:
                continue
            time_spent += progress.duration_secs
            seen_count += 1
            if progress.cleared == ClearedStatus.CLEAR:
                cleared_count += 1

        phases.append(PhaseStatistics(
            name=definition.name,
            total_time_spent_secs=time_spent,
            clear_rate=cleared_count / seen_count if seen_count else math.nan,
            seen_rate=seen_count / pull_count,
            seen_count=seen_count,
        ))

    total_time = sum(f.duration_secs for f in fight_stats)
    return ReportSummary(
        phases=phases,
        average_duration=total_time / pull_count,
        pull_count=pull_count,
        total_time_spent_in_fights=total_time,
    )
