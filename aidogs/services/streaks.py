import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aidogs.core.config import settings
from aidogs.errors import AlreadyClaimedToday, NotFound
from aidogs.models.rewards import RewardCycle, RewardDailyClaim
from aidogs.utils.clock import as_utc, utcnow

logger = logging.getLogger(__name__)

CYCLE_LENGTH = timedelta(days=7)


def _lock_cycle(db: Session, user_id: int) -> Optional[RewardCycle]:
    # FOR UPDATE serializes concurrent claims on databases that support it;
    # the (cycle_id, claimed_on) unique constraint covers the rest.
    return db.query(RewardCycle).filter(RewardCycle.user_id == user_id).with_for_update().first()


def _load_or_create_cycle(db: Session, user_id: int, now: datetime) -> RewardCycle:
    cycle = _lock_cycle(db, user_id)
    if cycle is not None:
        return cycle
    cycle = RewardCycle(user_id=user_id, cycle_start_date=now, last_day_claimed=0, total_points=0)
    db.add(cycle)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        cycle = _lock_cycle(db, user_id)
    return cycle


def claim_daily(db: Session, user_id: int, now: Optional[datetime] = None) -> Tuple[RewardCycle, int]:
    """Claim today's streak reward. Returns the cycle and the points awarded."""
    now = as_utc(now or utcnow())
    today = now.date()
    schedule = settings.streak_points()

    cycle = _load_or_create_cycle(db, user_id, now)
    if any(claim.claimed_on == today for claim in cycle.daily_claims):
        db.rollback()
        raise AlreadyClaimedToday()

    # Days are counted on the UTC calendar, not in elapsed 24h blocks
    start = as_utc(cycle.cycle_start_date).date()
    if today >= start + CYCLE_LENGTH:
        cycle.cycle_start_date = now
        cycle.daily_claims.clear()
        start = today

    day = (today - start).days
    awarded = schedule[day % len(schedule)]

    cycle.daily_claims.append(RewardDailyClaim(claimed_on=today, claimed_at=now))
    cycle.last_day_claimed = day
    cycle.total_points = (cycle.total_points or 0) + awarded
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AlreadyClaimedToday()

    logger.info("User %s claimed day %d of streak cycle (+%d)", user_id, day, awarded)
    db.refresh(cycle)
    return cycle, awarded


def get_daily_status(db: Session, user_id: int) -> RewardCycle:
    cycle = db.query(RewardCycle).filter(RewardCycle.user_id == user_id).first()
    if cycle is None:
        raise NotFound("Rewards data not found")
    return cycle
