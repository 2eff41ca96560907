import logging
from typing import List, Sequence

import pandas as pd

logger = logging.getLogger(__name__)

STATUS_SYMBOLS = {
    "elected": "*",
    "eliminated": "x",
    "active": " ",
}


def round_summary_frame(all_counts: Sequence) -> pd.DataFrame:
    """
    Get summary of all counts as a DataFrame.

    Args:
        all_counts: CountSnapshot log from a counter

    Returns:
        DataFrame with one row per (count, candidate)
    """
    if not all_counts:
        return pd.DataFrame()

    summary_data = []
    for snapshot in all_counts:
        for candidate in snapshot.candidates:
            summary_data.append(
                {
                    "count": snapshot.count,
                    "description": snapshot.description,
                    "candidate_id": candidate.id,
                    "candidate_name": candidate.name,
                    "party": candidate.party,
                    "votes": candidate.votes,
                    "status": candidate.status,
                    "quota": snapshot.quota,
                    "non_transferable": snapshot.non_transferable,
                }
            )

    return pd.DataFrame(summary_data)


def final_results_frame(final_results) -> pd.DataFrame:
    """
    Get final election results.

    Args:
        final_results: ElectionResults view

    Returns:
        DataFrame with final results for all candidates, highest tally first
    """
    elected = {c.id: c for c in final_results.elected_candidates}
    eliminated = {c.id: c for c in final_results.eliminated_candidates}

    results_data = []
    for candidate in final_results.candidates:
        record = elected.get(candidate.id)
        results_data.append(
            {
                "candidate_id": candidate.id,
                "candidate_name": candidate.name,
                "party": candidate.party,
                "final_votes": candidate.votes,
                "status": candidate.status,
                "election_count": record.elected_on_count if record else None,
                "met_quota": (not record.elected_without_quota) if record else None,
                "eliminated_count": (
                    eliminated[candidate.id].eliminated_on_count
                    if candidate.id in eliminated
                    else None
                ),
            }
        )

    if not results_data:
        return pd.DataFrame()

    # Stable sort keeps candidate order among equal tallies
    return (
        pd.DataFrame(results_data)
        .sort_values("final_votes", ascending=False, kind="stable")
        .reset_index(drop=True)
    )


def format_count_sheet(result) -> str:
    """
    Render a FullCountResult as a human-readable result sheet.

    Args:
        result: FullCountResult from PRSTVCounter.run_full_count

    Returns:
        Multi-line text report
    """
    final_results = result.final_results
    summary = result.summary

    report: List[str] = []
    report.append("=" * 60)
    report.append("PR-STV RESULT SHEET")
    report.append("=" * 60)
    report.append(f"Seats: {final_results.total_seats}")
    report.append(f"Quota: {final_results.quota}")
    report.append(f"Counts: {summary['total_counts']}")

    for snapshot in result.all_counts:
        report.append("")
        report.append(snapshot.description)
        for candidate in sorted(snapshot.candidates, key=lambda c: -c.votes):
            symbol = STATUS_SYMBOLS.get(candidate.status, " ")
            party = f" ({candidate.party})" if candidate.party else ""
            report.append(
                f"  {symbol} {candidate.name + party:35s}: {candidate.votes:8.2f} votes"
            )
        if snapshot.non_transferable > 0:
            report.append(
                f"    {'Non-transferable':35s}: {snapshot.non_transferable:8.2f} votes"
            )

    report.append("")
    report.append(
        f"ELECTED ({len(summary['final_elected'])} of {final_results.total_seats} seats):"
    )
    for i, elected in enumerate(summary["final_elected"], 1):
        note = "" if elected["met_quota"] else " - without reaching quota"
        report.append(
            f"  {i}. {elected['name']}: {elected['final_votes']:.2f} votes "
            f"(Count {elected['elected_on_count']}){note}"
        )

    if summary["elimination_order"]:
        report.append("")
        report.append("ELIMINATED:")
        for eliminated in summary["elimination_order"]:
            report.append(
                f"  {eliminated['name']} (Count {eliminated['eliminated_on_count']})"
            )

    return "\n".join(report)
