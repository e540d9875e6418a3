from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aidogs.database import get_db
from aidogs.schemas.leaderboard_schema import LeaderboardEnvelope, LeaderboardRequest, LeaderboardRow
from aidogs.services.leaderboard import SnapshotKind, read_snapshot

router = APIRouter(prefix="/api", tags=["Leaderboard"])


def _envelope(db: Session, kind: SnapshotKind) -> LeaderboardEnvelope:
    rows = read_snapshot(db, kind)
    # Per-user rank lookup is not offered yet; clients get 0
    return LeaderboardEnvelope(
        message="Leaderboard retrieved successfully",
        leaderboard_data=[LeaderboardRow.model_validate(row) for row in rows],
        user_rank=0,
    )


@router.post("/leaderboard-data", response_model=LeaderboardEnvelope)
def leaderboard_data(payload: LeaderboardRequest, db: Session = Depends(get_db)):
    return _envelope(db, SnapshotKind.SCORE)


@router.post("/referral-leaderboard-data", response_model=LeaderboardEnvelope)
def referral_leaderboard_data(payload: LeaderboardRequest, db: Session = Depends(get_db)):
    return _envelope(db, SnapshotKind.REFERRAL)
