import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

import numpy as np
import pandas as pd

from .models import Ballot, CandidateInfo

logger = logging.getLogger(__name__)

# Long layout: one row per (ballot, rank)
BALLOT_COLUMNS = ["BallotID", "rank_position", "candidate_id"]


def convert_numpy_types(obj: Any) -> Any:
    """Convert numpy types to native Python types for JSON serialization."""
    if isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, dict):
        return {k: convert_numpy_types(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [convert_numpy_types(item) for item in obj]
    else:
        return obj


def ballots_from_frame(frame: pd.DataFrame) -> List[Ballot]:
    """
    Build ballots from a long-format DataFrame.

    Args:
        frame: DataFrame with BallotID, rank_position, candidate_id columns

    Returns:
        Ballots in order of first appearance of each BallotID
    """
    missing = [c for c in BALLOT_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(f"Ballot data is missing columns: {missing}")

    ballots = []
    for ballot_id, group in frame.groupby("BallotID", sort=False):
        preferences = {}
        for _, row in group.sort_values("rank_position").iterrows():
            if pd.isna(row["candidate_id"]):
                continue
            rank = convert_numpy_types(row["rank_position"])
            preferences[int(rank)] = convert_numpy_types(row["candidate_id"])
        ballots.append(Ballot(id=str(ballot_id), preferences=preferences))

    return ballots


def ballots_to_frame(ballots: Iterable[Ballot]) -> pd.DataFrame:
    """Flatten ballots into the long layout used by ``ballots_from_frame``."""
    rows = [
        {"BallotID": ballot.id, "rank_position": rank, "candidate_id": candidate_id}
        for ballot in ballots
        for rank, candidate_id in sorted(ballot.preferences.items())
    ]
    return pd.DataFrame(rows, columns=BALLOT_COLUMNS)


def load_ballots(path: Union[str, Path]) -> List[Ballot]:
    """
    Load ballots from a CSV (long layout) or JSON file.

    Args:
        path: Path to ``.csv`` or ``.json`` file

    Returns:
        List of unvalidated Ballot objects
    """
    path = Path(path)
    logger.info(f"Loading ballots from: {path}")

    if path.suffix.lower() == ".csv":
        ballots = ballots_from_frame(pd.read_csv(path))
    elif path.suffix.lower() == ".json":
        with open(path, "r") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("ballots", [])
        ballots = [Ballot.from_dict(item) for item in data]
    else:
        raise ValueError(f"Unsupported ballot file type: {path.suffix}")

    logger.info(f"Loaded {len(ballots)} ballots")
    return ballots


def load_candidates(path: Union[str, Path]) -> List[CandidateInfo]:
    """
    Load candidates from a CSV or JSON file with id, name and party fields.

    Returns:
        List of CandidateInfo in file order
    """
    path = Path(path)
    logger.info(f"Loading candidates from: {path}")

    if path.suffix.lower() == ".csv":
        frame = pd.read_csv(path)
        if "party" not in frame.columns:
            frame["party"] = None
        frame = frame.astype(object).where(frame.notna(), None)
        records: List[Dict[str, Any]] = [
            convert_numpy_types(record) for record in frame.to_dict("records")
        ]
    elif path.suffix.lower() == ".json":
        with open(path, "r") as f:
            records = json.load(f)
        if isinstance(records, dict):
            records = records.get("candidates", [])
    else:
        raise ValueError(f"Unsupported candidate file type: {path.suffix}")

    candidates = [CandidateInfo.from_record(record) for record in records]
    logger.info(f"Found {len(candidates)} candidates")
    return candidates


def save_ballots(ballots: Iterable[Ballot], path: Union[str, Path]) -> Path:
    """Write ballots to CSV (long layout) or JSON depending on the suffix."""
    path = Path(path)
    if path.suffix.lower() == ".json":
        with open(path, "w") as f:
            json.dump(
                [convert_numpy_types(ballot.to_dict()) for ballot in ballots], f, indent=2
            )
    else:
        ballots_to_frame(ballots).to_csv(path, index=False)
    logger.info(f"Ballots written to: {path}")
    return path
