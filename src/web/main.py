import logging
import os
from typing import Dict, List, Optional, Union

from fastapi import FastAPI, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from ballots.generator import generate_random_ballots
from ballots.models import Ballot
from ballots.validation import BallotValidationError
from counting.exceptions import CountConfigurationError
from counting.prstv import MAX_COUNTS, PRSTVCounter, calculate_droop_quota
from counting.reporting import format_count_sheet

logger = logging.getLogger(__name__)

app = FastAPI(
    title="PR-STV Count Service",
    description="Irish PR-STV vote counting for election results display",
)

# Set by set_max_counts(); falls back to PRSTV_MAX_COUNTS, then MAX_COUNTS
max_counts_override: Optional[int] = None

DEFAULT_SEATS = 3

CandidateId = Union[int, str]


class CandidateModel(BaseModel):
    id: CandidateId
    name: str
    party: Optional[str] = None


class BallotModel(BaseModel):
    id: str
    preferences: Dict[int, CandidateId]
    transfer_value: float = 1.0


class QuotaRequest(BaseModel):
    total_votes: int = Field(ge=0)
    seats: int = Field(ge=1)


class GenerateRequest(BaseModel):
    candidates: List[CandidateModel]
    num_voters: int = Field(default=30, ge=0)
    seed: Optional[int] = None


class CountRequest(BaseModel):
    candidates: List[CandidateModel]
    seats: Optional[int] = None
    ballots: Optional[List[BallotModel]] = None
    num_voters: int = Field(default=30, ge=0)
    seed: Optional[int] = None


@app.on_event("startup")
async def startup_event():
    """Initialize the application."""
    logger.info("Starting PR-STV Count Service")
    logger.info(f"Count safety ceiling: {get_max_counts()}")


@app.on_event("shutdown")
async def shutdown_event():
    """Clean up on shutdown."""
    logger.info("Shutting down PR-STV Count Service")


def _positive_int_from_env(name: str, default: int) -> int:
    env_value = os.environ.get(name)
    if not env_value:
        return default
    try:
        value = int(env_value)
    except ValueError:
        value = 0
    if value < 1:
        raise HTTPException(status_code=500, detail=f"Invalid {name}: {env_value!r}")
    return value


def get_max_counts() -> int:
    """Safety ceiling for counts, from set_max_counts() or the environment."""
    if max_counts_override is not None:
        return max_counts_override
    return _positive_int_from_env("PRSTV_MAX_COUNTS", MAX_COUNTS)


def get_default_seats() -> int:
    return _positive_int_from_env("PRSTV_DEFAULT_SEATS", DEFAULT_SEATS)


def set_max_counts(value: Optional[int]):
    """Set the count safety ceiling for the application (None restores the default)."""
    global max_counts_override
    if value is not None and value < 1:
        raise ValueError(f"max_counts must be at least 1, got {value}")
    max_counts_override = value

    # Worker processes started by uvicorn --reload only see the environment
    if value is None:
        os.environ.pop("PRSTV_MAX_COUNTS", None)
    else:
        os.environ["PRSTV_MAX_COUNTS"] = str(value)
    logger.info(f"Count safety ceiling set to: {get_max_counts()}")


def _to_ballots(models: List[BallotModel]) -> List[Ballot]:
    return [
        Ballot(id=m.id, preferences=dict(m.preferences), transfer_value=m.transfer_value)
        for m in models
    ]


def _run_count(request: CountRequest):
    seats = request.seats if request.seats is not None else get_default_seats()
    try:
        counter = PRSTVCounter(
            [c.model_dump() for c in request.candidates],
            total_seats=seats,
            max_counts=get_max_counts(),
            seed=request.seed,
        )
        if request.ballots is None:
            ballots = counter.generate_random_ballots(request.num_voters)
        else:
            ballots = _to_ballots(request.ballots)
        return counter.run_full_count(ballots)
    except (CountConfigurationError, BallotValidationError) as e:
        logger.warning(f"Rejected count request: {e}")
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/api/health")
async def health():
    return {"status": "ok", "max_counts": get_max_counts()}


@app.post("/api/quota")
async def get_quota(request: QuotaRequest):
    """Droop quota for a ballot total and seat count."""
    return {
        "total_votes": request.total_votes,
        "seats": request.seats,
        "quota": calculate_droop_quota(request.total_votes, request.seats),
    }


@app.post("/api/ballots/generate")
async def generate_ballots(request: GenerateRequest):
    """Generate synthetic ballots for a simulation."""
    if not request.candidates:
        raise HTTPException(status_code=400, detail="At least one candidate is required")

    ballots = generate_random_ballots(
        [c.id for c in request.candidates], request.num_voters, seed=request.seed
    )
    return {"ballots": [b.to_dict() for b in ballots]}


@app.post("/api/count")
async def run_count(request: CountRequest):
    """Run a full PR-STV count and return every count plus the summary."""
    result = _run_count(request)
    return result.to_dict()


@app.post("/api/count/report", response_class=PlainTextResponse)
async def run_count_report(request: CountRequest):
    """Run a full PR-STV count and return the text result sheet."""
    result = _run_count(request)
    return format_count_sheet(result)
