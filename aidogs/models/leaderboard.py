from sqlalchemy import BigInteger, Column, Float, Integer, String
from aidogs.database import Base


class _SnapshotRow:
    id = Column(Integer, primary_key=True)
    position = Column(Integer, nullable=False, index=True)  # 1-based, rank by order
    user_id = Column(Integer, nullable=False)               # users.id at materialization time
    external_id = Column(BigInteger, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True)
    points_no = Column(Float, nullable=False, default=0)
    referral_points = Column(Integer, nullable=False, default=0)


class LeaderboardEntry(_SnapshotRow, Base):
    """Score board: pointsNo x referralPoints."""

    __tablename__ = "leaderboard"

    total_score = Column(Float, nullable=False, default=0)


class ReferralLeaderboardEntry(_SnapshotRow, Base):
    """Referral contest board. ``referral_points`` holds the user's referralContest."""

    __tablename__ = "referral_leaderboard"
