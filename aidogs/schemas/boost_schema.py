from typing import Optional

from pydantic import Field

from aidogs.schemas.common import CamelModel, UserRequest, UtcDateTime


class ActivateBoostRequest(UserRequest):
    boost_code: Optional[str] = None  # minted server-side when omitted
    ref_boost_code: str = Field(..., min_length=1)


class BoostEntryOut(CamelModel):
    user_id: Optional[int] = None
    points_no: float = 0
    referral_points: int = 0
    boost_code: str = ""
    referrer_boost_code: Optional[str] = None
    boost_activated: bool = False
    registration_time: Optional[UtcDateTime] = None


class BoostEnvelope(CamelModel):
    message: str
    user_data: Optional[BoostEntryOut] = None
    user_rank: Optional[int] = None
    success: bool = True


class BoostParticipants(CamelModel):
    count: int


class BoostParticipantsEnvelope(CamelModel):
    message: str
    boost_data: BoostParticipants
    success: bool = True
