from aidogs.models.boost import BoostEntry
from aidogs.models.leaderboard import LeaderboardEntry, ReferralLeaderboardEntry
from aidogs.models.rewards import RewardCycle, RewardDailyClaim
from aidogs.models.task import Task
from aidogs.models.user import User, UserDailyReward, UserSocialReward

__all__ = [
    "BoostEntry",
    "LeaderboardEntry",
    "ReferralLeaderboardEntry",
    "RewardCycle",
    "RewardDailyClaim",
    "Task",
    "User",
    "UserDailyReward",
    "UserSocialReward",
]
