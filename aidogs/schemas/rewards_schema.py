from typing import List

from pydantic import Field

from aidogs.schemas.common import CamelModel, UtcDateTime


class DailyClaimOut(CamelModel):
    date: UtcDateTime = Field(..., validation_alias="claimed_at")


class RewardCycleOut(CamelModel):
    user_id: int
    cycle_start_date: UtcDateTime
    daily_claims: List[DailyClaimOut] = []
    last_day_claimed: int
    total_points: int


class DailyClaimResponse(CamelModel):
    message: str
    total_points: int
    awarded: int
    reward: RewardCycleOut


class RewardStatusResponse(CamelModel):
    reward: RewardCycleOut
