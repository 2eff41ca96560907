import logging
from typing import Any, Dict, Hashable, Iterable, List

import pandas as pd
from pyrankvote import Ballot as PyRankVoteBallot
from pyrankvote import Candidate as PyRankVoteCandidate
from pyrankvote import single_transferable_vote

from ballots.models import Ballot

from .prstv import ELECTED, ELIMINATED, PRSTVCounter

logger = logging.getLogger(__name__)

VOTE_TOLERANCE = 1e-6


class CountVerifier:
    """
    Checks a finished count against the invariants every PR-STV count
    must satisfy.
    """

    def __init__(self, counter: PRSTVCounter):
        """
        Initialize verifier.

        Args:
            counter: Counter that has already run its count
        """
        self.counter = counter

    def check_quota_fixed(self) -> List[str]:
        quotas = {snapshot.quota for snapshot in self.counter.counts}
        if len(quotas) > 1:
            return [f"Quota changed during the count: {sorted(quotas)}"]
        return []

    def check_count_log(self) -> List[str]:
        problems = []
        numbers = [snapshot.count for snapshot in self.counter.counts]
        if numbers != list(range(1, len(numbers) + 1)):
            problems.append(f"Counts are not numbered 1..n: {numbers}")
        if len(numbers) != self.counter.current_count:
            problems.append(
                f"Count log has {len(numbers)} entries but current count is "
                f"{self.counter.current_count}"
            )
        return problems

    def check_seats(self) -> List[str]:
        problems = []
        elected = len(self.counter.elected_candidates)
        seats = self.counter.total_seats
        if elected > seats:
            problems.append(f"{elected} candidates elected for {seats} seats")
        if len(self.counter.candidates) >= seats and elected != seats:
            problems.append(f"Only {elected} of {seats} seats filled")
        return problems

    def check_eliminated_empty(self) -> List[str]:
        return [
            f"Eliminated candidate {c.name} still holds "
            f"{c.votes:.2f} votes on {len(c.ballots)} papers"
            for c in self.counter.candidates
            if c.status == ELIMINATED and (c.votes != 0 or c.ballots)
        ]

    def check_elected_met_quota(self) -> List[str]:
        return [
            f"{c.name} elected on count {c.elected_on_count} with "
            f"{c.votes:.2f} votes, below quota {self.counter.quota}"
            for c in self.counter.elected_candidates
            if not c.elected_without_quota and c.votes < self.counter.quota
        ]

    def check_vote_conservation(self) -> List[str]:
        """Tallies plus non-transferable votes must equal the first count total."""
        problems = []
        expected = self.counter.total_first_count_votes

        held = sum(c.votes for c in self.counter.candidates)
        actual = held + self.counter.non_transferable
        if abs(actual - expected) > VOTE_TOLERANCE:
            problems.append(
                f"Final tallies ({held:.4f}) plus non-transferable "
                f"({self.counter.non_transferable:.4f}) != {expected:.4f}"
            )

        # Snapshots are rounded to 2dp, so allow half a cent per figure
        tolerance = 0.005 * (len(self.counter.candidates) + 1) + VOTE_TOLERANCE
        for snapshot in self.counter.counts:
            total = sum(c.votes for c in snapshot.candidates) + snapshot.non_transferable
            if abs(total - expected) > tolerance:
                problems.append(
                    f"Count {snapshot.count} accounts for {total:.2f} of "
                    f"{expected:.2f} votes"
                )
        return problems

    def verify(self) -> Dict[str, Any]:
        """
        Run every check.

        Returns:
            Verification report dictionary
        """
        logger.info("Verifying count invariants")
        checks = {
            "quota_fixed": self.check_quota_fixed(),
            "count_log": self.check_count_log(),
            "seats": self.check_seats(),
            "eliminated_empty": self.check_eliminated_empty(),
            "elected_met_quota": self.check_elected_met_quota(),
            "vote_conservation": self.check_vote_conservation(),
        }
        for name, problems in checks.items():
            for problem in problems:
                logger.warning(f"{name}: {problem}")

        return {
            "checks": checks,
            "verification_passed": not any(checks.values()),
            "elected": [c.name for c in self.counter.elected_candidates],
            "quota": self.counter.quota,
            "total_counts": len(self.counter.counts),
        }


def reference_winners(
    candidate_ids: Iterable[Hashable], ballots: Iterable[Ballot], seats: int
) -> List[Hashable]:
    """
    Count the same ballots with PyRankVote's STV implementation.

    Args:
        candidate_ids: Candidate ids in list order
        ballots: Ballots to count
        seats: Seats to fill

    Returns:
        Candidate ids PyRankVote elects
    """
    candidate_ids = list(candidate_ids)
    candidates_map = {cid: PyRankVoteCandidate(str(cid)) for cid in candidate_ids}
    names_to_ids = {str(cid): cid for cid in candidate_ids}

    if seats >= len(candidates_map):
        logger.warning(
            f"Seats ({seats}) >= candidates ({len(candidates_map)}), electing all candidates"
        )
        return candidate_ids

    ballots_data = []
    for ballot in ballots:
        ranked = [
            candidates_map[cid] for cid in ballot.ranked_candidates() if cid in candidates_map
        ]
        if ranked:
            ballots_data.append(PyRankVoteBallot(ranked_candidates=ranked))

    result = single_transferable_vote(
        candidates=list(candidates_map.values()),
        ballots=ballots_data,
        number_of_seats=seats,
    )
    return [names_to_ids[winner.name] for winner in result.get_winners()]


def cross_check_winners(counter: PRSTVCounter, ballots: Iterable[Ballot]) -> Dict[str, Any]:
    """
    Compare a finished count's winners with PyRankVote's.

    Differences are expected in close contests: PyRankVote uses its own
    surplus and tie rules. Agreement is a sanity check, not a proof.
    """
    ballots = list(ballots)
    ours = [c.id for c in counter.candidates if c.status == ELECTED]
    theirs = reference_winners([c.id for c in counter.candidates], ballots, counter.total_seats)

    names = {c.id: c.name for c in counter.candidates}
    comparison = pd.DataFrame(
        [
            {
                "candidate_id": c.id,
                "candidate_name": c.name,
                "elected": c.id in ours,
                "reference_elected": c.id in theirs,
            }
            for c in counter.candidates
        ]
    )

    return {
        "winners_match": set(ours) == set(theirs),
        "our_winners": [names[cid] for cid in ours],
        "reference_winners": [names[cid] for cid in theirs],
        "missing_winners": [names[cid] for cid in theirs if cid not in ours],
        "extra_winners": [names[cid] for cid in ours if cid not in theirs],
        "comparison": comparison,
    }


def generate_verification_report(
    verification_results: Dict[str, Any], cross_check: Dict[str, Any] = None
) -> str:
    """
    Generate a human-readable verification report.

    Args:
        verification_results: Results from CountVerifier.verify()
        cross_check: Optional results from cross_check_winners()

    Returns:
        Formatted verification report string
    """
    report = []
    report.append("=" * 60)
    report.append("PR-STV COUNT VERIFICATION REPORT")
    report.append("=" * 60)

    if verification_results["verification_passed"]:
        report.append("VERIFICATION PASSED - all count invariants hold")
    else:
        report.append("VERIFICATION FAILED - invariant violations found")

    report.append("")
    report.append(f"Quota: {verification_results['quota']}")
    report.append(f"Counts: {verification_results['total_counts']}")
    report.append(f"Elected: {', '.join(verification_results['elected'])}")

    for name, problems in verification_results["checks"].items():
        status = "ok" if not problems else "FAILED"
        report.append(f"  {name.replace('_', ' ')}: {status}")
        for problem in problems:
            report.append(f"    - {problem}")

    if cross_check is not None:
        report.append("")
        report.append("PYRANKVOTE CROSS-CHECK:")
        if cross_check["winners_match"]:
            report.append("Winners match PyRankVote")
        else:
            report.append("Winners differ from PyRankVote")
        report.append(f"Our winners: {', '.join(cross_check['our_winners'])}")
        report.append(f"PyRankVote winners: {', '.join(cross_check['reference_winners'])}")
        if cross_check["missing_winners"]:
            report.append(f"Missing winners: {', '.join(cross_check['missing_winners'])}")
        if cross_check["extra_winners"]:
            report.append(f"Extra winners: {', '.join(cross_check['extra_winners'])}")

    return "\n".join(report)
