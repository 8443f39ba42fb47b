"""Consensus report export formatters.

Provides JSON and Markdown export functions for consensus reports.
"""

from __future__ import annotations

from hackrank.schemas.consensus import ConsensusReport


def _fmt(value: float | None, digits: int = 2) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


def export_json(report: ConsensusReport) -> str:
    """Export a consensus report as a formatted JSON string.

    Returns:
        Pretty-printed JSON string of the full report.
    """
    return report.model_dump_json(indent=2)


def export_markdown(report: ConsensusReport) -> str:
    """Export a consensus report as a human-readable Markdown document.

    Generates sections for the problem statement, evaluation statistics,
    the consensus table, and each team's individual evaluator rankings.

    Returns:
        Markdown-formatted string.
    """
    lines: list[str] = []
    stats = report.statistics

    lines.append(f"# Consensus Report: {report.title}")
    lines.append("")
    if report.description:
        lines.append(report.description)
        lines.append("")

    lines.append("## Statistics")
    lines.append("")
    lines.append(f"- **Teams:** {stats.total_teams}")
    lines.append(f"- **Evaluators:** {stats.total_evaluators}")
    lines.append(f"- **Completed Evaluations:** {stats.completed_evaluations}")
    lines.append(f"- **Pending Evaluations:** {stats.pending_evaluations}")
    lines.append(f"- **Conflicting Teams:** {stats.conflicting_teams}")
    lines.append("")

    if report.consensus_analysis:
        lines.append("## Consensus")
        lines.append("")
        lines.append("| # | Team | Avg Rank | Avg Score | Std Dev | Conflict | Evaluators |")
        lines.append("|---|------|----------|-----------|---------|----------|------------|")
        for position, row in enumerate(report.consensus_analysis, 1):
            c = row.consensus
            lines.append(
                f"| {position} | {row.team_name} | {_fmt(c.average_rank)} "
                f"| {_fmt(c.average_score, 1)} | {_fmt(c.rank_standard_deviation)} "
                f"| {c.conflict_level.value} | {c.evaluator_count} |"
            )
        lines.append("")

        lines.append("## Evaluator Rankings")
        lines.append("")
        for row in report.consensus_analysis:
            lines.append(f"### {row.team_name}")
            lines.append("")
            if not row.rankings:
                lines.append("_Not ranked by any evaluator._")
                lines.append("")
                continue
            for entry in row.rankings:
                score = f", score {entry.score:g}" if entry.score is not None else ""
                lines.append(f"- **{entry.evaluator_email}:** rank {entry.rank}{score}")
                if entry.comments:
                    lines.append(f"  > {entry.comments}")
            lines.append("")

    return "\n".join(lines)
