"""
Ballot data for PR-STV counts.

- Ballot / CandidateInfo: input records consumed by the counter
- BallotGenerator: seeded synthetic ballots for simulations
- validate_ballots: structural checks run before every count
- load_ballots / load_candidates: CSV and JSON input files
"""

from .generator import BallotGenerator, generate_random_ballots
from .loader import load_ballots, load_candidates, save_ballots
from .models import Ballot, CandidateInfo
from .validation import BallotValidationError, validate_ballot, validate_ballots

__all__ = [
    "Ballot",
    "CandidateInfo",
    "BallotGenerator",
    "generate_random_ballots",
    "BallotValidationError",
    "validate_ballot",
    "validate_ballots",
    "load_ballots",
    "load_candidates",
    "save_ballots",
]
