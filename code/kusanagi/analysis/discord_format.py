"""Discord-ready markdown formatting for progression summaries."""

from __future__ import annotations

from kusanagi.analysis.summary import PhaseStatistics, ReportSummary


def format_duration(seconds: float) -> str:
    """Format seconds as 'Xm Ys'."""
    whole = int(seconds)
    return f"{whole // 60}m {whole % 60}s"


def format_phase_statistics(phase: PhaseStatistics) -> str:
    # clear_rate is NaN for a phase nobody reached
    if phase.seen_count == 0:
        return f"**{phase.name}**: This phase was never seen."
    return (
        f"**{phase.name}**:\n"
        f"A total of {phase.total_time_spent_secs:.1f}s was spent practicing "
        f"this phase, with a clear rate of {phase.clear_rate * 100:.1f}%.\n"
        f"This phase was seen {phase.seen_count} times "
        f"({phase.seen_rate * 100:.1f}% of pulls)"
    )


def format_report_summary(summary: ReportSummary) -> str:
    """Format a report summary as Discord markdown.

    Args:
        summary: Output of summarise_report().

    Returns:
        Discord-formatted markdown string, one block per defined phase.
    """
    lines: list[str] = [
        f"Total pulls: {summary.pull_count} with average duration "
        f"{summary.average_duration:.1f}s.",
        f"A total of {summary.total_time_spent_in_fights:.1f}s "
        f"({format_duration(summary.total_time_spent_in_fights)}) was spent in "
        f"battle with individual phase progress as follows:",
    ]
    lines.extend(format_phase_statistics(phase) for phase in summary.phases)
    return "\n".join(lines)
