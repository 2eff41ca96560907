"""
PR-STV vote counting.

- PRSTVCounter: Irish Droop-quota count with surplus distribution and elimination
- reporting: DataFrame and text renderings of a finished count
- verification: invariant checks and a PyRankVote cross-check
"""

from .exceptions import BallotValidationError, CountConfigurationError, PRSTVError
from .prstv import (
    ACTIVE,
    ELECTED,
    ELIMINATED,
    MAX_COUNTS,
    CountSnapshot,
    ElectionResults,
    FullCountResult,
    PRSTVCounter,
    calculate_droop_quota,
    run_prstv_simulation,
)
from .reporting import final_results_frame, format_count_sheet, round_summary_frame
from .verification import CountVerifier, cross_check_winners

__all__ = [
    "PRSTVCounter",
    "CountSnapshot",
    "ElectionResults",
    "FullCountResult",
    "calculate_droop_quota",
    "run_prstv_simulation",
    "MAX_COUNTS",
    "ACTIVE",
    "ELECTED",
    "ELIMINATED",
    "PRSTVError",
    "CountConfigurationError",
    "BallotValidationError",
    "round_summary_frame",
    "final_results_frame",
    "format_count_sheet",
    "CountVerifier",
    "cross_check_winners",
]
