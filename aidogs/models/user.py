# models/user.py
from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from aidogs.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    external_id = Column(BigInteger, unique=True, index=True, nullable=False)  # Telegram user id
    username = Column(String(255), nullable=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    language_code = Column(String(16), nullable=True)
    allows_write_to_pm = Column(Boolean, default=True)

    points_no = Column(Float, nullable=False, default=0)
    referral_points = Column(Integer, nullable=False, default=0)
    referral_contest = Column(Integer, nullable=False, default=0)  # reset per contest period

    referral_code = Column(String(32), unique=True, index=True, nullable=True)  # minted once, never changed
    referrer_code = Column(String(32), nullable=False, default="", index=True)  # who referred this user
    referred_by = Column(Boolean, nullable=False, default=False)
    early_adopter_bonus_claimed = Column(Boolean, nullable=False, default=False)

    points_today = Column(Integer, nullable=False, default=0)
    last_login = Column(DateTime(timezone=True), nullable=True)
    next_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    social_rewards = relationship(
        "UserSocialReward",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserSocialReward.id",
    )
    daily_rewards = relationship(
        "UserDailyReward",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="UserDailyReward.position",
    )

    __table_args__ = (
        CheckConstraint("points_no >= 0", name="ck_users_points_non_negative"),
        CheckConstraint("referral_points >= 0", name="ck_users_referrals_non_negative"),
    )


class UserSocialReward(Base):
    __tablename__ = "user_social_rewards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    claim_key = Column(String(100), nullable=False)
    claimed = Column(Boolean, nullable=False, default=False)

    # Copied from the task catalog
    btn_text = Column(String(100), nullable=True)
    task_text = Column(String(512), nullable=True)
    task_points = Column(Float, nullable=True)  # also holds the timer value for timed tasks
    task_category = Column(String(100), nullable=True)
    task_status = Column(String(50), nullable=True)
    task_url = Column(String(512), nullable=True)

    user = relationship("User", back_populates="social_rewards")

    __table_args__ = (UniqueConstraint("user_id", "claim_key", name="user_social_reward_unique"),)


class UserDailyReward(Base):
    __tablename__ = "user_daily_rewards"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    claim_key = Column(String(50), nullable=False)
    position = Column(Integer, nullable=False)  # 0..6
    claimed = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="daily_rewards")

    __table_args__ = (UniqueConstraint("user_id", "claim_key", name="user_daily_reward_unique"),)
