from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aidogs.database import get_db
from aidogs.schemas.common import UserRequest
from aidogs.schemas.rewards_schema import DailyClaimResponse, RewardCycleOut, RewardStatusResponse
from aidogs.services import streaks

router = APIRouter(prefix="/api", tags=["Rewards"])


@router.post("/daily-reward-claim", response_model=DailyClaimResponse)
def daily_reward_claim(payload: UserRequest, db: Session = Depends(get_db)):
    cycle, awarded = streaks.claim_daily(db, payload.user.id)
    return DailyClaimResponse(
        message="Points claimed successfully",
        total_points=cycle.total_points,
        awarded=awarded,
        reward=RewardCycleOut.model_validate(cycle),
    )


@router.post("/daily-reward-status", response_model=RewardStatusResponse)
def daily_reward_status(payload: UserRequest, db: Session = Depends(get_db)):
    cycle = streaks.get_daily_status(db, payload.user.id)
    return RewardStatusResponse(reward=RewardCycleOut.model_validate(cycle))
