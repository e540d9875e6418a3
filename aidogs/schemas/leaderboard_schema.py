from typing import List, Optional

from pydantic import Field

from aidogs.schemas.common import CamelModel, TelegramProfile


class LeaderboardRequest(CamelModel):
    user: Optional[TelegramProfile] = None


class LeaderboardRow(CamelModel):
    rank: int = Field(..., validation_alias="position")
    user_id: int = Field(..., validation_alias="external_id")
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    points_no: float
    referral_points: int
    total_score: Optional[float] = None


class LeaderboardEnvelope(CamelModel):
    message: str
    leaderboard_data: List[LeaderboardRow]
    user_rank: int = 0
