from sqlalchemy import BigInteger, Column, Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from aidogs.database import Base


class RewardCycle(Base):
    __tablename__ = "reward_cycles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(BigInteger, unique=True, index=True, nullable=False)  # Telegram user id
    cycle_start_date = Column(DateTime(timezone=True), nullable=False)
    last_day_claimed = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)

    daily_claims = relationship(
        "RewardDailyClaim",
        back_populates="cycle",
        cascade="all, delete-orphan",
        order_by="RewardDailyClaim.claimed_at",
    )


class RewardDailyClaim(Base):
    __tablename__ = "reward_daily_claims"

    id = Column(Integer, primary_key=True, index=True)
    cycle_id = Column(Integer, ForeignKey("reward_cycles.id", ondelete="CASCADE"), nullable=False, index=True)
    claimed_on = Column(Date, nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=False)

    cycle = relationship("RewardCycle", back_populates="daily_claims")

    # One claim per calendar day
    __table_args__ = (UniqueConstraint("cycle_id", "claimed_on", name="_cycle_day_uc"),)
