from datetime import datetime, timezone
from sqlalchemy import BigInteger, Boolean, Column, DateTime, Float, Index, Integer, String
from aidogs.database import Base


class BoostEntry(Base):
    __tablename__ = "boost_leaderboard"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(BigInteger, unique=True, index=True, nullable=False)  # Telegram user id
    points_no = Column(Float, nullable=False, default=0)
    referral_points = Column(Integer, nullable=False, default=0)
    boost_code = Column(String(64), unique=True, index=True, nullable=False)
    referrer_boost_code = Column(String(64), nullable=True)
    boost_activated = Column(Boolean, nullable=False, default=False)
    registration_time = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    __table_args__ = (Index("ix_boost_rank_order", "points_no", "registration_time"),)
