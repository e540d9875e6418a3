from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String, Text
from aidogs.database import Base


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    claim_key = Column(String(100), unique=True, index=True, nullable=False)  # e.g. "join-goats"
    btn_text = Column(String(100), nullable=True)                           # frontend label: "Join", "Follow"
    task_text = Column(Text, nullable=True)
    task_points = Column(Float, nullable=True)
    task_category = Column(String(100), nullable=True)
    task_status = Column(String(50), nullable=True)
    task_url = Column(String(512), nullable=True)
    reward_claimed = Column(Boolean, nullable=False, default=False)        # initial flag for new user entries
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
