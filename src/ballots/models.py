import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Hashable, List, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CandidateInfo:
    """Identity of a candidate standing in the election."""

    id: Hashable
    name: str
    party: Optional[str] = None

    @classmethod
    def from_record(cls, record: Union["CandidateInfo", Mapping[str, Any]]):
        """
        Build a candidate from a ``{id, name, party}`` record.

        Args:
            record: Mapping or existing CandidateInfo

        Returns:
            CandidateInfo
        """
        if isinstance(record, CandidateInfo):
            return record
        if "id" not in record:
            raise KeyError("Candidate record is missing 'id'")
        return cls(
            id=record["id"],
            name=str(record.get("name", record["id"])),
            party=record.get("party"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "party": self.party}


@dataclass
class Ballot:
    """
    A ranked ballot paper.

    ``preferences`` maps rank position (1-based) to candidate id. The
    ranking never changes during a count; only ``transfer_value`` does, and
    that happens on a copy made with ``with_transfer_value``.
    """

    id: str
    preferences: Dict[int, Hashable] = field(default_factory=dict)
    transfer_value: float = 1.0

    def ranked_candidates(self) -> List[Hashable]:
        """Candidate ids in preference order."""
        return [self.preferences[rank] for rank in sorted(self.preferences)]

    def with_transfer_value(self, transfer_value: float) -> "Ballot":
        return replace(
            self, preferences=dict(self.preferences), transfer_value=transfer_value
        )

    def copy(self) -> "Ballot":
        return self.with_transfer_value(self.transfer_value)

    @classmethod
    def from_dict(cls, data: Union["Ballot", Mapping[str, Any]]) -> "Ballot":
        """
        Build a ballot from plain data.

        Accepts ``transfer_value`` or ``transferValue`` and rank keys given as
        strings (as they arrive from JSON). Rank keys that are not digit
        strings are kept as-is so validation can report them.
        """
        if isinstance(data, Ballot):
            return data.copy()

        preferences = {}
        for rank, candidate_id in dict(data.get("preferences") or {}).items():
            if isinstance(rank, str) and rank.strip().isdigit():
                rank = int(rank)
            preferences[rank] = candidate_id

        transfer_value = data.get("transfer_value", data.get("transferValue", 1.0))
        return cls(
            id=str(data.get("id", "")),
            preferences=preferences,
            transfer_value=float(transfer_value),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "preferences": {rank: self.preferences[rank] for rank in sorted(self.preferences)},
            "transfer_value": self.transfer_value,
        }
