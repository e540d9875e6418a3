from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aidogs.database import get_db
from aidogs.schemas.user_schema import (
    PointsRequest,
    ReferralsEnvelope,
    ReferralsRequest,
    ReferredUserOut,
    UserDataRequest,
    UserEnvelope,
    UserOut,
)
from aidogs.services import claims, points, referrals

router = APIRouter(prefix="/api", tags=["User"])


@router.post("/get-user-data", response_model=UserEnvelope)
def get_user_data(payload: UserDataRequest, db: Session = Depends(get_db)):
    user, is_new = referrals.get_or_create_user(db, payload.user, payload.referral_code)

    # Lazy maintenance, always before anything is returned
    referrals.ensure_referral_code(db, user)
    referrals.ensure_last_login(db, user)
    claims.reconcile_social_tasks(db, user)
    claims.reconcile_daily_rewards(db, user)

    return UserEnvelope(
        message="User retrieved successfully",
        user_data=UserOut.from_user(user),
        success=not is_new,
    )


@router.post("/update-early-adopter", response_model=UserEnvelope)
def update_early_adopter(payload: PointsRequest, db: Session = Depends(get_db)):
    user = points.award_points(db, payload.user, payload.points_no, early_adopter=True)
    return UserEnvelope(message="Points updated successfully", user_data=UserOut.from_user(user))


@router.post("/update-task-points", response_model=UserEnvelope)
def update_task_points(payload: PointsRequest, db: Session = Depends(get_db)):
    user = points.award_points(db, payload.user, payload.points_no)
    return UserEnvelope(message="Points updated successfully", user_data=UserOut.from_user(user))


@router.post("/get-user-referrals", response_model=ReferralsEnvelope)
def get_user_referrals(payload: ReferralsRequest, db: Session = Depends(get_db)):
    referred = referrals.list_referrals(db, payload.referral_code)
    return ReferralsEnvelope(
        message="Users retrieved successfully",
        user_data=[ReferredUserOut.from_user(user) for user in referred],
    )
