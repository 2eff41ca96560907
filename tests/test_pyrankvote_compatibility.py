"""
PyRankVote cross-check testing.

This module checks that our PR-STV counter and PyRankVote's STV agree
on contests where neither surplus rules nor ties can change the outcome.
"""

import sys
import unittest
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ballots.models import Ballot
from counting.prstv import PRSTVCounter
from counting.verification import cross_check_winners, reference_winners


def build_ballots(groups):
    ballots = []
    for copies, ranking in groups:
        for _ in range(copies):
            ballots.append(
                Ballot(
                    id=f"ballot_{len(ballots) + 1}",
                    preferences={rank: cid for rank, cid in enumerate(ranking, 1)},
                )
            )
    return ballots


class TestPyRankVoteCrossCheck(unittest.TestCase):
    """Test agreement with PyRankVote on clear contests."""

    def setUp(self):
        """Set up test fixtures."""
        self.candidates = [
            {"id": 1, "name": "Alice"},
            {"id": 2, "name": "Bob"},
            {"id": 3, "name": "Charlie"},
        ]

    def test_surplus_elects_second_candidate(self):
        """Alice's surplus carries Bob over the quota."""
        ballots = build_ballots([(50, [1, 2]), (40, [2, 3]), (30, [3, 1])])
        counter = PRSTVCounter(self.candidates, total_seats=2)
        result = counter.run_full_count(ballots)

        self.assertEqual(result.final_results.quota, 41)
        self.assertEqual([c.id for c in result.final_results.elected_candidates], [1, 2])

        cross_check = cross_check_winners(counter, ballots)
        self.assertTrue(cross_check["winners_match"])
        self.assertEqual(cross_check["our_winners"], ["Alice", "Bob"])

    def test_elimination_decides_single_seat(self):
        """Charlie's elimination hands Bob the seat."""
        ballots = build_ballots([(40, [1]), (35, [2, 1]), (25, [3, 2])])
        counter = PRSTVCounter(self.candidates, total_seats=1)
        result = counter.run_full_count(ballots)

        self.assertEqual([c.id for c in result.final_results.elected_candidates], [2])
        self.assertEqual(reference_winners([1, 2, 3], ballots, 1), [2])
        self.assertTrue(cross_check_winners(counter, ballots)["winners_match"])

    def test_comparison_frame(self):
        """The comparison frame has one row per candidate."""
        ballots = build_ballots([(40, [1]), (35, [2, 1]), (25, [3, 2])])
        counter = PRSTVCounter(self.candidates, total_seats=1)
        counter.run_full_count(ballots)

        comparison = cross_check_winners(counter, ballots)["comparison"]
        self.assertEqual(len(comparison), 3)
        self.assertEqual(comparison["candidate_name"].tolist(), ["Alice", "Bob", "Charlie"])
        self.assertEqual(comparison["reference_elected"].tolist(), [False, True, False])

    def test_empty_ballots_are_ignored_by_reference(self):
        ballots = build_ballots([(6, [1]), (3, [2]), (2, [])])
        self.assertEqual(reference_winners([1, 2, 3], ballots, 1), [1])


if __name__ == "__main__":
    unittest.main()
