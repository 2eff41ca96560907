"""
Synthetic ranked ballots for simulations and demos.

Every ballot ranks a random-length prefix (1 to all candidates) of a
uniformly shuffled candidate list. The random source is injectable so
simulations can be replayed exactly from a seed.
"""

import logging
from typing import Hashable, List, Optional, Sequence

import numpy as np

from .models import Ballot

logger = logging.getLogger(__name__)


def make_rng(
    rng: Optional[np.random.Generator] = None, seed: Optional[int] = None
) -> np.random.Generator:
    """Return ``rng`` if given, otherwise a new generator seeded with ``seed``."""
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


class BallotGenerator:
    """Produces random ranked ballots over a fixed candidate list."""

    def __init__(
        self,
        candidate_ids: Sequence[Hashable],
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize the generator.

        Args:
            candidate_ids: Ids that may appear on generated ballots
            rng: Random source to draw from (takes precedence over ``seed``)
            seed: Seed for a fresh random source when ``rng`` is not given
        """
        self.candidate_ids = list(candidate_ids)
        self.rng = make_rng(rng, seed)

    def generate_ballot(self, ballot_id: str) -> Ballot:
        n = len(self.candidate_ids)
        if n == 0:
            return Ballot(id=ballot_id)

        num_to_rank = int(self.rng.integers(1, n + 1))
        order = self.rng.permutation(n)

        preferences = {
            rank: self.candidate_ids[int(order[rank - 1])]
            for rank in range(1, num_to_rank + 1)
        }
        return Ballot(id=ballot_id, preferences=preferences, transfer_value=1.0)

    def generate(self, num_voters: int = 30) -> List[Ballot]:
        """
        Generate ``num_voters`` ballots with ids ``ballot_1..ballot_n``.

        Args:
            num_voters: Number of ballots to produce

        Returns:
            List of Ballot objects
        """
        if num_voters < 0:
            raise ValueError(f"num_voters must be non-negative, got {num_voters}")

        ballots = [self.generate_ballot(f"ballot_{i + 1}") for i in range(num_voters)]
        logger.info(
            f"Generated {len(ballots)} ballots over {len(self.candidate_ids)} candidates"
        )
        return ballots


def generate_random_ballots(
    candidate_ids: Sequence[Hashable],
    num_voters: int = 30,
    rng: Optional[np.random.Generator] = None,
    seed: Optional[int] = None,
) -> List[Ballot]:
    """Convenience wrapper around BallotGenerator.generate."""
    return BallotGenerator(candidate_ids, rng=rng, seed=seed).generate(num_voters)
