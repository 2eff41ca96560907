"""
Structural validation of externally supplied ballots.

A ballot that ranks the same candidate twice or skips a rank would be
silently mis-routed during transfers, so these checks run before a count
starts and fail loudly instead.
"""

import logging
from collections import Counter
from typing import Any, Hashable, Iterable, List, Mapping, Optional, Union

from .models import Ballot

logger = logging.getLogger(__name__)


class BallotValidationError(ValueError):
    """A ballot is structurally invalid and cannot be counted."""

    def __init__(self, reason: str, ballot_id: Optional[str] = None):
        self.reason = reason
        self.ballot_id = ballot_id
        if ballot_id is None:
            super().__init__(f"Invalid ballot: {reason}")
        else:
            super().__init__(f"Invalid ballot {ballot_id!r}: {reason}")


def coerce_ballot(data: Union[Ballot, Mapping[str, Any]]) -> Ballot:
    """Return a private Ballot copy from a Ballot or plain mapping."""
    if isinstance(data, (Ballot, Mapping)):
        return Ballot.from_dict(data)
    raise BallotValidationError(
        f"Unsupported ballot type: {type(data).__name__}", ballot_id=None
    )


def validate_ballot(
    ballot: Ballot, candidate_ids: Optional[Iterable[Hashable]] = None
) -> Ballot:
    """
    Validate one ballot.

    Args:
        ballot: Ballot to check
        candidate_ids: Known candidate ids; when given, every ranked id must be one

    Returns:
        The same ballot, for chaining

    Raises:
        BallotValidationError: If the ballot is structurally invalid
    """
    ranks = list(ballot.preferences.keys())

    for rank in ranks:
        if isinstance(rank, bool) or not isinstance(rank, int):
            raise BallotValidationError(
                f"rank key {rank!r} is not an integer", ballot_id=ballot.id
            )

    expected = list(range(1, len(ranks) + 1))
    if sorted(ranks) != expected:
        raise BallotValidationError(
            f"ranks {sorted(ranks)} are not a contiguous sequence starting at 1",
            ballot_id=ballot.id,
        )

    duplicates = [
        candidate_id
        for candidate_id, times in Counter(ballot.preferences.values()).items()
        if times > 1
    ]
    if duplicates:
        raise BallotValidationError(
            f"candidate(s) {duplicates} ranked more than once", ballot_id=ballot.id
        )

    if candidate_ids is not None:
        known = set(candidate_ids)
        unknown = [c for c in ballot.ranked_candidates() if c not in known]
        if unknown:
            raise BallotValidationError(
                f"unknown candidate id(s) {unknown}", ballot_id=ballot.id
            )

    if not 0 < ballot.transfer_value <= 1:
        raise BallotValidationError(
            f"transfer value {ballot.transfer_value} outside (0, 1]",
            ballot_id=ballot.id,
        )

    return ballot


def validate_ballots(
    ballots: Iterable[Union[Ballot, Mapping[str, Any]]],
    candidate_ids: Optional[Iterable[Hashable]] = None,
) -> List[Ballot]:
    """
    Coerce and validate a ballot set.

    Returns:
        Validated private copies of the ballots, in input order
    """
    known = list(candidate_ids) if candidate_ids is not None else None
    validated = [validate_ballot(coerce_ballot(b), known) for b in ballots]

    id_counts = Counter(b.id for b in validated)
    duplicate_ids = sum(1 for times in id_counts.values() if times > 1)
    if duplicate_ids > 0:
        logger.warning(f"Found {duplicate_ids} duplicate ballot IDs")

    logger.debug(f"Validated {len(validated)} ballots")
    return validated
