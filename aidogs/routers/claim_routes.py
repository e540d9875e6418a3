from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aidogs.database import get_db
from aidogs.schemas.common import ClaimRequest, UserRequest
from aidogs.schemas.user_schema import TimerClaimRequest, UserEnvelope, UserOut
from aidogs.services import claims

router = APIRouter(prefix="/api", tags=["Claims"])


@router.post("/update-social-reward", response_model=UserEnvelope)
def update_social_reward(payload: ClaimRequest, db: Session = Depends(get_db)):
    user = claims.claim_social_reward(db, payload.user.id, payload.claim_key)
    return UserEnvelope(message="Points updated successfully", user_data=UserOut.from_user(user))


@router.post("/update-social-timer", response_model=UserEnvelope)
def update_social_timer(payload: TimerClaimRequest, db: Session = Depends(get_db)):
    user = claims.claim_social_timer(db, payload.user.id, payload.claim_key, payload.time)
    return UserEnvelope(message="Points updated successfully", user_data=UserOut.from_user(user))


@router.post("/update-daily-reward", response_model=UserEnvelope)
def update_daily_reward(payload: ClaimRequest, db: Session = Depends(get_db)):
    user = claims.claim_daily_reward(db, payload.user.id, payload.claim_key)
    return UserEnvelope(message="Points updated successfully", user_data=UserOut.from_user(user))


@router.post("/update-next-login", response_model=UserEnvelope)
def update_next_login(payload: UserRequest, db: Session = Depends(get_db)):
    user = claims.rearm_daily_rewards(db, payload.user.id)
    return UserEnvelope(message="Next login updated successfully", user_data=UserOut.from_user(user))


@router.post("/reset-daily-claim", response_model=UserEnvelope)
def reset_daily_claim(payload: UserRequest, db: Session = Depends(get_db)):
    user = claims.reset_daily_claim_if_stale(db, payload.user.id)
    return UserEnvelope(message="reset claim updated successfully", user_data=UserOut.from_user(user))
