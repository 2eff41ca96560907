"""
PR-STV count engine using the Irish Droop quota.

Candidates and ballot papers live in flat lists. A candidate holds integer
indices into the paper list, and papers refer to candidates by id only.
Surplus transfers append reduced-value copies to the paper list rather than
mutating papers in place, so every round's vote movements are applied in
full before anything is observable.

Two behaviours are kept deliberately simple and should not be mistaken for
full statutory STV:

- Ties (for elimination, and for the order candidates cross quota) are
  broken by candidate list order, not by lot or by earlier counts.
- After a surplus transfer the elected candidate keeps the first ``quota``
  papers it holds, whatever their preferences.
"""

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import (
    Any,
    Dict,
    Hashable,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

import numpy as np
import pandas as pd

from ballots.generator import BallotGenerator, make_rng
from ballots.models import Ballot, CandidateInfo
from ballots.validation import validate_ballots

from .exceptions import CountConfigurationError, PRSTVError

logger = logging.getLogger(__name__)

ACTIVE = "active"
ELECTED = "elected"
ELIMINATED = "eliminated"

# Safety ceiling on the number of counts run before the remaining seats are
# filled by highest tally.
MAX_COUNTS = 20

CandidateRecord = Union[CandidateInfo, Mapping[str, Any]]
BallotRecord = Union[Ballot, Mapping[str, Any]]


def calculate_droop_quota(total_valid_votes: float, seats: int) -> int:
    """
    Calculate Droop quota: floor(total_valid_votes / (seats + 1)) + 1

    Args:
        total_valid_votes: Ballot total at the first count
        seats: Number of seats to fill

    Returns:
        Droop quota
    """
    return int(math.floor(total_valid_votes / (seats + 1))) + 1


def round_votes(votes: float) -> float:
    """Round half up to 2 decimal places for display."""
    return math.floor(votes * 100 + 0.5) / 100


@dataclass
class CandidateState:
    """Mutable per-count state of one candidate."""

    id: Hashable
    name: str
    party: Optional[str]
    votes: float = 0.0
    status: str = ACTIVE
    ballots: List[int] = field(default_factory=list)  # indices into the paper list


@dataclass(frozen=True)
class CandidateStanding:
    id: Hashable
    name: str
    party: Optional[str]
    votes: float
    status: str


@dataclass(frozen=True)
class ElectedCandidate:
    """A candidate as it stood on the count it was elected."""

    id: Hashable
    name: str
    party: Optional[str]
    votes: float
    elected_on_count: int
    elected_without_quota: bool = False


@dataclass(frozen=True)
class EliminatedCandidate:
    id: Hashable
    name: str
    party: Optional[str]
    votes: float
    eliminated_on_count: int


@dataclass(frozen=True)
class CountSnapshot:
    """One entry of the count log. Never modified once appended."""

    count: int
    description: str
    quota: int
    candidates: Tuple[CandidateStanding, ...]
    elected: int
    seats_remaining: int
    non_transferable: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["candidates"] = list(data["candidates"])
        return data


@dataclass(frozen=True)
class ElectionResults:
    """Read-only view of the count after a round."""

    current_count: int
    quota: int
    total_seats: int
    seats_remaining: int
    candidates: Tuple[CandidateStanding, ...]
    elected_candidates: Tuple[ElectedCandidate, ...]
    eliminated_candidates: Tuple[EliminatedCandidate, ...]
    is_complete: bool

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ("candidates", "elected_candidates", "eliminated_candidates"):
            data[key] = list(data[key])
        return data


@dataclass(frozen=True)
class FullCountResult:
    final_results: ElectionResults
    all_counts: List[CountSnapshot]
    summary: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "final_results": self.final_results.to_dict(),
            "all_counts": [snapshot.to_dict() for snapshot in self.all_counts],
            "summary": self.summary,
        }


class PRSTVCounter:
    """
    Proportional Representation - Single Transferable Vote counter.

    One instance runs one count. Candidate and ballot inputs are copied on the
    way in, so separate counters never share state.
    """

    def __init__(
        self,
        candidates: Sequence[CandidateRecord],
        total_seats: int = 3,
        max_counts: int = MAX_COUNTS,
        rng: Optional[np.random.Generator] = None,
        seed: Optional[int] = None,
    ):
        """
        Initialize the counter.

        Args:
            candidates: Candidate records ``{id, name, party}`` in list order
            total_seats: Number of seats to fill (at least 1)
            max_counts: Safety ceiling on counts before the final seat fill
            rng: Random source for ballot generation
            seed: Seed for a fresh random source when ``rng`` is not given

        Raises:
            CountConfigurationError: For seats < 1, no candidates or duplicate ids
        """
        if isinstance(total_seats, bool) or not isinstance(total_seats, int):
            raise CountConfigurationError(
                f"Seat count must be an integer, got {total_seats!r}"
            )
        if total_seats < 1:
            raise CountConfigurationError(
                f"Seat count must be at least 1, got {total_seats}"
            )
        if max_counts < 1:
            raise CountConfigurationError(
                f"max_counts must be at least 1, got {max_counts}"
            )

        infos = [CandidateInfo.from_record(c) for c in candidates]
        if not infos:
            raise CountConfigurationError("At least one candidate is required")

        seen = set()
        for info in infos:
            if info.id in seen:
                raise CountConfigurationError(f"Duplicate candidate id: {info.id!r}")
            seen.add(info.id)

        self.candidates: List[CandidateState] = [
            CandidateState(id=info.id, name=info.name, party=info.party)
            for info in infos
        ]
        self._index: Dict[Hashable, int] = {
            c.id: i for i, c in enumerate(self.candidates)
        }
        self.total_seats = total_seats
        self.max_counts = max_counts
        self.rng = make_rng(rng, seed)

        self.papers: List[Ballot] = []
        self.quota = 0
        self.counts: List[CountSnapshot] = []
        self.current_count = 0
        self.elected_candidates: List[ElectedCandidate] = []
        self.eliminated_candidates: List[EliminatedCandidate] = []
        self.total_first_count_votes = 0.0
        self.non_transferable = 0.0

    def calculate_quota(self, total_valid_votes: float) -> int:
        """Calculate and store the Droop quota for this count."""
        self.quota = calculate_droop_quota(total_valid_votes, self.total_seats)
        return self.quota

    def generate_random_ballots(self, num_voters: int = 30) -> List[Ballot]:
        """Generate synthetic ballots from the counter's random source."""
        generator = BallotGenerator([c.id for c in self.candidates], rng=self.rng)
        return generator.generate(num_voters)

    def get_candidate(self, candidate_id: Hashable) -> CandidateState:
        try:
            return self.candidates[self._index[candidate_id]]
        except KeyError:
            raise PRSTVError(f"Unknown candidate id: {candidate_id!r}") from None

    def get_current_preference(
        self, ballot: Ballot, exclude_elected: bool = True
    ) -> Optional[Hashable]:
        """
        Resolve the candidate a ballot currently counts for.

        Args:
            ballot: Ballot paper to resolve
            exclude_elected: Skip elected candidates (True for transfers,
                False at the first count where elected is a live target)

        Returns:
            Candidate id, or None if the ballot is non-transferable
        """
        for rank in range(1, len(ballot.preferences) + 1):
            index = self._index.get(ballot.preferences.get(rank))
            if index is None:
                continue
            status = self.candidates[index].status
            if status == ACTIVE:
                return self.candidates[index].id
            if not exclude_elected and status == ELECTED:
                return self.candidates[index].id
        return None

    def _credit(self, paper: Ballot, candidate: CandidateState) -> None:
        self.papers.append(paper)
        candidate.votes += paper.transfer_value
        candidate.ballots.append(len(self.papers) - 1)

    def first_count(self, ballots: Iterable[BallotRecord]) -> ElectionResults:
        """
        Distribute first preferences.

        Args:
            ballots: Ballots or ballot mappings; validated before counting

        Raises:
            PRSTVError: If this counter has already run a count

        Returns:
            Results after count 1
        """
        if self.current_count != 0:
            raise PRSTVError(
                "Counter has already run a count; create a new PRSTVCounter"
            )

        papers = validate_ballots(ballots, [c.id for c in self.candidates])

        self.current_count = 1
        self.calculate_quota(len(papers))
        logger.info(f"Total ballots: {len(papers)}")
        logger.info(f"Droop quota: {self.quota}")

        for candidate in self.candidates:
            candidate.votes = 0.0
            candidate.ballots = []
        self.papers = []
        self.total_first_count_votes = sum(p.transfer_value for p in papers)
        self.non_transferable = 0.0

        for paper in papers:
            first_pref = self.get_current_preference(paper, exclude_elected=False)
            if first_pref is None:
                self.non_transferable += paper.transfer_value
                continue
            self._credit(paper, self.get_candidate(first_pref))

        self.check_for_elected_candidates()
        self.save_count("Count 1: First Preferences")
        return self.get_current_results()

    def check_for_elected_candidates(self) -> List[ElectedCandidate]:
        """
        Elect every active candidate at or above quota, in list order.

        Returns:
            Candidates elected by this check
        """
        newly_elected = []
        for candidate in self.candidates:
            if len(self.elected_candidates) >= self.total_seats:
                break
            if candidate.status == ACTIVE and candidate.votes >= self.quota:
                candidate.status = ELECTED
                record = ElectedCandidate(
                    id=candidate.id,
                    name=candidate.name,
                    party=candidate.party,
                    votes=candidate.votes,
                    elected_on_count=self.current_count,
                )
                self.elected_candidates.append(record)
                newly_elected.append(record)
                logger.info(
                    f"{candidate.name} elected on count {self.current_count} "
                    f"with {candidate.votes:.2f} votes"
                )
        return newly_elected

    def distribute_surplus(self, candidate_id: Hashable) -> ElectionResults:
        """
        Transfer an elected candidate's surplus to next active preferences.

        Each transferable paper moves at ``transfer_value * surplus /
        transferable_papers``. The candidate drops to exactly quota.

        Args:
            candidate_id: Elected candidate holding a surplus

        Returns:
            Results after this count
        """
        if self.current_count == 0:
            raise PRSTVError("Must run the first count first")

        candidate = self.get_candidate(candidate_id)
        self.current_count += 1

        surplus = candidate.votes - self.quota
        if surplus <= 0:
            logger.debug(f"{candidate.name} has no surplus to distribute")
            return self.get_current_results()

        held = [self.papers[i] for i in candidate.ballots]
        transferable = [p for p in held if self.get_current_preference(p) is not None]

        if transferable:
            transfer_factor = surplus / len(transferable)
        else:
            transfer_factor = 0.0
            logger.info(
                f"No transferable papers in {candidate.name}'s surplus; "
                f"{surplus:.2f} votes are non-transferable"
            )

        transferred_papers = [
            p.with_transfer_value(p.transfer_value * transfer_factor) for p in held
        ]

        candidate.votes = float(self.quota)
        candidate.ballots = candidate.ballots[: self.quota]

        transferred = 0.0
        for paper in transferred_papers:
            next_pref = self.get_current_preference(paper)
            if next_pref is None:
                continue
            next_candidate = self.get_candidate(next_pref)
            if next_candidate.status == ACTIVE:
                self._credit(paper, next_candidate)
                transferred += paper.transfer_value

        self.non_transferable += surplus - transferred
        logger.info(
            f"Transferred {transferred:.2f} of {candidate.name}'s {surplus:.2f} "
            f"surplus at factor {transfer_factor:.4f}"
        )

        self.check_for_elected_candidates()
        self.save_count(
            f"Count {self.current_count}: Distribution of {candidate.name}'s "
            f"surplus ({surplus:.2f} votes)"
        )
        return self.get_current_results()

    def eliminate_lowest_candidate(self) -> ElectionResults:
        """
        Eliminate the active candidate with the lowest tally.

        Ties go to the candidate earliest in list order. The eliminated
        candidate's papers move at their current transfer value.

        Returns:
            Results after this count
        """
        if self.current_count == 0:
            raise PRSTVError("Must run the first count first")

        self.current_count += 1

        active = [c for c in self.candidates if c.status == ACTIVE]
        if not active:
            logger.debug("No active candidates left to eliminate")
            return self.get_current_results()

        lowest_votes = min(c.votes for c in active)
        to_eliminate = next(c for c in active if c.votes == lowest_votes)

        to_eliminate.status = ELIMINATED
        self.eliminated_candidates.append(
            EliminatedCandidate(
                id=to_eliminate.id,
                name=to_eliminate.name,
                party=to_eliminate.party,
                votes=to_eliminate.votes,
                eliminated_on_count=self.current_count,
            )
        )
        logger.info(
            f"Eliminating {to_eliminate.name} with {lowest_votes:.2f} votes "
            f"on count {self.current_count}"
        )

        transferred = 0.0
        for index in to_eliminate.ballots:
            paper = self.papers[index]
            next_pref = self.get_current_preference(paper)
            if next_pref is None:
                continue
            next_candidate = self.get_candidate(next_pref)
            if next_candidate.status == ACTIVE:
                next_candidate.votes += paper.transfer_value
                next_candidate.ballots.append(index)
                transferred += paper.transfer_value

        self.non_transferable += to_eliminate.votes - transferred
        to_eliminate.votes = 0.0
        to_eliminate.ballots = []

        self.check_for_elected_candidates()
        self.save_count(
            f"Count {self.current_count}: Elimination of {to_eliminate.name} "
            f"({lowest_votes:.2f} votes)"
        )
        return self.get_current_results()

    def fill_remaining_seats(self) -> List[ElectedCandidate]:
        """
        Elect the highest-tally active candidates into any unfilled seats.

        Used once the count loop stops. The filled candidates are flagged
        ``elected_without_quota`` and recorded against the last count run;
        the fill itself is logged as one further count.

        Returns:
            Candidates elected by the fill
        """
        seats_remaining = self.total_seats - len(self.elected_candidates)
        active = [c for c in self.candidates if c.status == ACTIVE]
        if seats_remaining <= 0 or not active:
            return []

        filled = []
        for candidate in sorted(active, key=lambda c: -c.votes)[:seats_remaining]:
            candidate.status = ELECTED
            record = ElectedCandidate(
                id=candidate.id,
                name=candidate.name,
                party=candidate.party,
                votes=candidate.votes,
                elected_on_count=self.current_count,
                elected_without_quota=True,
            )
            self.elected_candidates.append(record)
            filled.append(record)
            logger.info(
                f"{candidate.name} elected without reaching quota "
                f"({candidate.votes:.2f} votes)"
            )

        self.current_count += 1
        self.save_count("Final Count: Remaining seats filled by highest vote totals")
        return filled

    def save_count(self, description: str) -> CountSnapshot:
        """Append a snapshot of the current state to the count log."""
        snapshot = CountSnapshot(
            count=self.current_count,
            description=description,
            quota=self.quota,
            candidates=self._standings(),
            elected=len(self.elected_candidates),
            seats_remaining=self.total_seats - len(self.elected_candidates),
            non_transferable=round_votes(self.non_transferable),
        )
        self.counts.append(snapshot)
        logger.info(description)
        return snapshot

    def _standings(self) -> Tuple[CandidateStanding, ...]:
        return tuple(
            CandidateStanding(
                id=c.id,
                name=c.name,
                party=c.party,
                votes=round_votes(c.votes),
                status=c.status,
            )
            for c in self.candidates
        )

    def get_current_results(self) -> ElectionResults:
        """Current state of the count. Has no side effects."""
        return ElectionResults(
            current_count=self.current_count,
            quota=self.quota,
            total_seats=self.total_seats,
            seats_remaining=self.total_seats - len(self.elected_candidates),
            candidates=self._standings(),
            elected_candidates=tuple(self.elected_candidates),
            eliminated_candidates=tuple(self.eliminated_candidates),
            is_complete=self.is_count_complete(),
        )

    def is_count_complete(self) -> bool:
        """
        Counting is complete when every seat is filled, or when the active
        candidates could all take the unfilled seats.
        """
        seats_remaining = self.total_seats - len(self.elected_candidates)
        active = sum(1 for c in self.candidates if c.status == ACTIVE)
        return len(self.elected_candidates) == self.total_seats or active <= seats_remaining

    def _candidate_with_surplus(self) -> Optional[CandidateState]:
        return next(
            (c for c in self.candidates if c.status == ELECTED and c.votes > self.quota),
            None,
        )

    def iter_full_count(self, ballots: Iterable[BallotRecord]) -> Iterator[ElectionResults]:
        """
        Run the count one round at a time.

        Yields the results view after the first count, after every surplus
        distribution or elimination, and after the final seat fill if one
        is needed.
        """
        logger.info("Starting PR-STV count")
        logger.info(f"Seats available: {self.total_seats}")

        results = self.first_count(ballots)
        yield results

        while not results.is_complete and self.current_count < self.max_counts:
            surplus_holder = self._candidate_with_surplus()
            if surplus_holder is not None:
                results = self.distribute_surplus(surplus_holder.id)
            else:
                results = self.eliminate_lowest_candidate()
            yield results

        if not results.is_complete:
            logger.warning(
                f"Stopping after {self.current_count} counts - safety ceiling "
                f"of {self.max_counts} reached"
            )

        if self.fill_remaining_seats():
            yield self.get_current_results()

    def run_full_count(self, ballots: Iterable[BallotRecord]) -> FullCountResult:
        """
        Run a complete PR-STV count.

        Args:
            ballots: Ballots to count

        Returns:
            FullCountResult with final results, every count snapshot and a summary
        """
        results = None
        for results in self.iter_full_count(ballots):
            pass

        logger.info("PR-STV count complete:")
        logger.info(f"Elected: {[c.name for c in self.elected_candidates]}")
        logger.info(f"Total counts: {len(self.counts)}")

        return FullCountResult(
            final_results=results,
            all_counts=list(self.counts),
            summary=self.generate_summary(),
        )

    def generate_summary(self) -> Dict[str, Any]:
        return {
            "total_counts": len(self.counts),
            "quota": self.quota,
            "final_elected": [
                {
                    "name": c.name,
                    "party": c.party,
                    "final_votes": c.votes,
                    "elected_on_count": c.elected_on_count,
                    "met_quota": not c.elected_without_quota,
                }
                for c in self.elected_candidates
            ],
            "elimination_order": [
                {
                    "name": c.name,
                    "party": c.party,
                    "eliminated_on_count": c.eliminated_on_count,
                }
                for c in self.eliminated_candidates
            ],
        }

    def get_round_summary(self) -> pd.DataFrame:
        """Round-by-round standings as a DataFrame."""
        from .reporting import round_summary_frame

        return round_summary_frame(self.counts)

    def get_final_results(self) -> pd.DataFrame:
        """Final standings as a DataFrame, highest tally first."""
        from .reporting import final_results_frame

        return final_results_frame(self.get_current_results())


@dataclass
class SimulationResult:
    ballots: List[Ballot]
    results: FullCountResult
    counter: PRSTVCounter


def run_prstv_simulation(
    candidates: Sequence[CandidateRecord],
    num_voters: int = 30,
    total_seats: int = 3,
    seed: Optional[int] = None,
    max_counts: int = MAX_COUNTS,
) -> SimulationResult:
    """
    Generate random ballots and count them.

    Args:
        candidates: Candidate records
        num_voters: Number of ballots to generate
        total_seats: Seats to fill
        seed: Seed for reproducible ballots

    Returns:
        SimulationResult with the generated ballots, count result and counter
    """
    counter = PRSTVCounter(
        candidates, total_seats=total_seats, max_counts=max_counts, seed=seed
    )
    ballots = counter.generate_random_ballots(num_voters)
    logger.debug(f"Generated ballots: {ballots[:5]}")

    return SimulationResult(
        ballots=ballots, results=counter.run_full_count(ballots), counter=counter
    )
