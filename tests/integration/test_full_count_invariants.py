"""
Integration tests for complete PR-STV counts.

These tests run seeded simulations end to end and check the invariants
every finished count must satisfy, whatever the ballots look like.
"""

import pytest

from counting.prstv import ACTIVE, ELIMINATED, PRSTVCounter, run_prstv_simulation
from counting.reporting import final_results_frame, round_summary_frame
from counting.verification import CountVerifier

CANDIDATES = [
    {"id": 1, "name": "Aoife", "party": "Green"},
    {"id": 2, "name": "Brendan", "party": "Labour"},
    {"id": 3, "name": "Ciara", "party": "Independent"},
    {"id": 4, "name": "Declan", "party": "Labour"},
    {"id": 5, "name": "Eimear", "party": None},
    {"id": 6, "name": "Fionn", "party": "Green"},
]


@pytest.mark.integration
@pytest.mark.invariant
@pytest.mark.parametrize("seed", range(20))
def test_simulated_count_invariants(seed):
    simulation = run_prstv_simulation(CANDIDATES, num_voters=50, total_seats=3, seed=seed)
    counter = simulation.counter
    result = simulation.results

    report = CountVerifier(counter).verify()
    assert report["verification_passed"], report["checks"]

    assert len(result.final_results.elected_candidates) == 3
    assert result.final_results.is_complete
    assert counter.quota == 50 // 4 + 1
    assert {snapshot.quota for snapshot in result.all_counts} == {counter.quota}
    assert [s.count for s in result.all_counts] == list(
        range(1, len(result.all_counts) + 1)
    )

    for candidate in counter.candidates:
        if candidate.status == ELIMINATED:
            assert candidate.votes == 0
            assert candidate.ballots == []


@pytest.mark.integration
@pytest.mark.invariant
@pytest.mark.parametrize("seed", range(10))
def test_candidate_status_is_final(seed):
    """Once elected or eliminated, a candidate never changes status again."""
    simulation = run_prstv_simulation(CANDIDATES, num_voters=40, total_seats=2, seed=seed)

    seen = {}
    for snapshot in simulation.results.all_counts:
        for standing in snapshot.candidates:
            previous = seen.get(standing.id)
            if previous is not None and previous != ACTIVE:
                assert standing.status == previous
            seen[standing.id] = standing.status


@pytest.mark.integration
def test_simulation_is_reproducible():
    first = run_prstv_simulation(CANDIDATES, num_voters=60, total_seats=3, seed=42)
    second = run_prstv_simulation(CANDIDATES, num_voters=60, total_seats=3, seed=42)

    assert first.ballots == second.ballots
    assert first.results.to_dict() == second.results.to_dict()


@pytest.mark.integration
def test_iterated_count_matches_full_run():
    simulation = run_prstv_simulation(CANDIDATES, num_voters=50, total_seats=3, seed=7)

    counter = PRSTVCounter(CANDIDATES, total_seats=3)
    rounds = list(counter.iter_full_count(simulation.ballots))

    assert rounds[-1] == simulation.results.final_results
    assert counter.counts == simulation.results.all_counts


@pytest.mark.integration
def test_reports_cover_every_count():
    simulation = run_prstv_simulation(CANDIDATES, num_voters=50, total_seats=3, seed=3)
    result = simulation.results

    summary = round_summary_frame(result.all_counts)
    assert len(summary) == len(result.all_counts) * len(CANDIDATES)

    final = final_results_frame(result.final_results)
    assert (final["status"] == "elected").sum() == 3
    assert final["final_votes"].is_monotonic_decreasing


@pytest.mark.integration
@pytest.mark.invariant
def test_safety_ceiling_still_fills_seats():
    simulation = run_prstv_simulation(
        CANDIDATES, num_voters=50, total_seats=3, seed=11, max_counts=1
    )
    result = simulation.results

    assert len(result.final_results.elected_candidates) == 3
    assert result.final_results.is_complete
    assert len(result.all_counts) == simulation.counter.current_count
    assert CountVerifier(simulation.counter).verify()["verification_passed"]
