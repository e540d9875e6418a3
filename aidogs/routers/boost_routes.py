from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aidogs.database import get_db
from aidogs.schemas.boost_schema import (
    ActivateBoostRequest,
    BoostEntryOut,
    BoostEnvelope,
    BoostParticipants,
    BoostParticipantsEnvelope,
)
from aidogs.schemas.common import UserRequest
from aidogs.services import boost

router = APIRouter(prefix="/api", tags=["Boost"])


@router.post("/activate-boost", response_model=BoostEnvelope)
def activate_boost(payload: ActivateBoostRequest, db: Session = Depends(get_db)):
    result = boost.activate_boost(db, payload.user.id, payload.boost_code, payload.ref_boost_code)
    return BoostEnvelope(
        message=result.message,
        user_data=BoostEntryOut.model_validate(result.entry) if result.entry else None,
        user_rank=result.rank,
    )


@router.post("/get-user-data/boost-data", response_model=BoostEnvelope)
def boost_data(payload: UserRequest, db: Session = Depends(get_db)):
    entry = boost.get_entry(db, payload.user.id)
    if entry is None:
        return BoostEnvelope(message="User retrieved successfully", user_data=BoostEntryOut(), success=False)
    return BoostEnvelope(
        message="Boost data retrieved successfully",
        user_data=BoostEntryOut.model_validate(entry),
        user_rank=boost.boost_rank(db, payload.user.id),
    )


@router.post("/get-boost-participants", response_model=BoostParticipantsEnvelope)
def boost_participants(db: Session = Depends(get_db)):
    return BoostParticipantsEnvelope(
        message="Total boost participants",
        boost_data=BoostParticipants(count=boost.count_participants(db)),
    )
