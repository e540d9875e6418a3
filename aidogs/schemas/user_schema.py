# schemas/user_schema.py
from typing import List, Optional

from pydantic import Field

from aidogs.core.config import settings
from aidogs.schemas.common import CamelModel, ClaimRequest, TelegramProfile, UserRequest, UtcDateTime


class UserDataRequest(UserRequest):
    referral_code: Optional[str] = None


class PointsRequest(UserRequest):
    points_no: float = Field(..., ge=0, le=settings.MAX_POINTS_CREDIT, allow_inf_nan=False)


class TimerClaimRequest(ClaimRequest):
    time: float = Field(..., ge=0, allow_inf_nan=False)


class ReferralsRequest(CamelModel):
    referral_code: str


class SocialRewardOut(CamelModel):
    claim_key: str = Field(..., alias="claimTreshold")
    claimed: bool = Field(..., alias="rewardClaimed")
    btn_text: Optional[str] = None
    task_text: Optional[str] = None
    task_points: Optional[float] = None
    task_category: Optional[str] = None
    task_status: Optional[str] = None
    task_url: Optional[str] = None


class DailyRewardOut(CamelModel):
    claim_key: str = Field(..., alias="claimTreshold")
    claimed: bool = Field(..., alias="rewardClaimed")


class UserOut(CamelModel):
    user: TelegramProfile
    points_no: float
    referral_points: int
    referral_contest: int
    referral_code: Optional[str] = None
    referrer_code: str = ""
    referred_by: bool = False
    early_adopter_bonus_claimed: bool = False
    points_today: int = 0
    last_login: Optional[UtcDateTime] = None
    next_login: Optional[UtcDateTime] = None
    social_reward_deets: List[SocialRewardOut] = []
    referral_reward_deets: List[DailyRewardOut] = []

    @classmethod
    def from_user(cls, user) -> "UserOut":
        return cls(
            user=TelegramProfile(
                id=user.external_id,
                first_name=user.first_name,
                last_name=user.last_name,
                username=user.username,
                language_code=user.language_code,
                allows_write_to_pm=user.allows_write_to_pm,
            ),
            points_no=user.points_no,
            referral_points=user.referral_points,
            referral_contest=user.referral_contest,
            referral_code=user.referral_code,
            referrer_code=user.referrer_code or "",
            referred_by=user.referred_by,
            early_adopter_bonus_claimed=user.early_adopter_bonus_claimed,
            points_today=user.points_today,
            last_login=user.last_login,
            next_login=user.next_login,
            social_reward_deets=[SocialRewardOut.model_validate(r) for r in user.social_rewards],
            referral_reward_deets=[DailyRewardOut.model_validate(r) for r in user.daily_rewards],
        )


class UserEnvelope(CamelModel):
    message: str
    user_data: UserOut
    success: bool = True


class ReferredUserOut(CamelModel):
    user: TelegramProfile
    points_no: float
    referral_points: int
    created_at: Optional[UtcDateTime] = None

    @classmethod
    def from_user(cls, user) -> "ReferredUserOut":
        return cls(
            user=TelegramProfile(
                id=user.external_id,
                first_name=user.first_name,
                last_name=user.last_name,
                username=user.username,
            ),
            points_no=user.points_no,
            referral_points=user.referral_points,
            created_at=user.created_at,
        )


class ReferralsEnvelope(CamelModel):
    message: str
    user_data: List[ReferredUserOut]
    success: bool = True
