"""Reward claim engine: one-shot social tasks and the 7-slot daily rewards.

Claims are conditional single-statement updates (``... WHERE claimed = false``)
so two concurrent requests can never both flip the same flag. Staleness of
the daily slots is resolved lazily by :func:`reconcile_daily_rewards`, which
runs on every login before user data is returned.
"""
import logging
from datetime import datetime, timedelta
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aidogs.core.config import settings
from aidogs.errors import AlreadyClaimed, NotFound, ValidationError
from aidogs.models.task import Task
from aidogs.models.user import User, UserDailyReward, UserSocialReward
from aidogs.services.referrals import get_user
from aidogs.utils.clock import as_utc, next_midnight, utcnow

logger = logging.getLogger(__name__)

DAILY_SLOT_LIMIT = 7
TASK_METADATA_FIELDS = ("btn_text", "task_text", "task_points", "task_category", "task_status", "task_url")


def _require_key(claim_key: Optional[str]) -> str:
    if claim_key is None or not str(claim_key).strip():
        raise ValidationError("claimTreshold is required")
    return str(claim_key).strip()


def _stale_after() -> timedelta:
    return timedelta(hours=settings.DAILY_CLAIM_STALE_HOURS)


# ---------- Social rewards ----------

def claim_social_reward(db: Session, user_id: int, claim_key: str) -> User:
    claim_key = _require_key(claim_key)
    user = get_user(db, user_id)

    updated = (
        db.query(UserSocialReward)
        .filter(
            UserSocialReward.user_id == user.id,
            UserSocialReward.claim_key == claim_key,
            UserSocialReward.claimed.is_(False),
        )
        .update({UserSocialReward.claimed: True}, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        _raise_missing_or_claimed(db, UserSocialReward, user.id, claim_key)
    db.commit()
    db.refresh(user)
    return user


def claim_social_timer(db: Session, user_id: int, claim_key: str, time: float) -> User:
    """Mark a timed task claimed and record its timer value.

    Re-sending the timer overwrites the recorded value.
    """
    claim_key = _require_key(claim_key)
    if time is None:
        raise ValidationError("time is required")
    user = get_user(db, user_id)

    updated = (
        db.query(UserSocialReward)
        .filter(UserSocialReward.user_id == user.id, UserSocialReward.claim_key == claim_key)
        .update(
            {UserSocialReward.claimed: True, UserSocialReward.task_points: time},
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        raise NotFound("User or claimTreshold not found")
    db.commit()
    db.refresh(user)
    return user


def reconcile_social_tasks(db: Session, user: User, tasks: Optional[Iterable[Task]] = None) -> User:
    """Merge the task catalog into the user's social entries.

    Additive only: missing keys are appended, and on existing entries only
    metadata fields that are still empty get filled. ``claimed`` is never
    touched on an existing entry.
    """
    catalog = list(tasks) if tasks is not None else db.query(Task).order_by(Task.id).all()

    for attempt in range(2):
        existing = {reward.claim_key: reward for reward in user.social_rewards}
        for task in catalog:
            reward = existing.get(task.claim_key)
            if reward is None:
                reward = UserSocialReward(claim_key=task.claim_key, claimed=bool(task.reward_claimed))
                for field in TASK_METADATA_FIELDS:
                    setattr(reward, field, getattr(task, field))
                user.social_rewards.append(reward)
                existing[task.claim_key] = reward
                continue
            for field in TASK_METADATA_FIELDS:
                if getattr(reward, field) is None and getattr(task, field) is not None:
                    setattr(reward, field, getattr(task, field))
        try:
            db.commit()
            break
        except IntegrityError:
            # Another login merged the same keys first
            db.rollback()
            db.refresh(user)
            if attempt:
                raise
    db.refresh(user)
    return user


# ---------- Daily rewards ----------

def claim_daily_reward(db: Session, user_id: int, claim_key: str, now: Optional[datetime] = None) -> User:
    """Claim one daily slot. The final slot re-arms the whole set immediately."""
    claim_key = _require_key(claim_key)
    now = as_utc(now or utcnow())
    user = get_user(db, user_id)
    midnight = next_midnight(now)

    updated = (
        db.query(UserDailyReward)
        .filter(
            UserDailyReward.user_id == user.id,
            UserDailyReward.claim_key == claim_key,
            UserDailyReward.claimed.is_(False),
        )
        .update({UserDailyReward.claimed: True}, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        _raise_missing_or_claimed(db, UserDailyReward, user.id, claim_key)

    user_values = {User.points_today: 1, User.last_login: midnight}
    if claim_key == settings.final_daily_reward_key():
        db.query(UserDailyReward).filter(UserDailyReward.user_id == user.id).update(
            {UserDailyReward.claimed: False}, synchronize_session=False
        )
        user_values[User.next_login] = midnight
    db.query(User).filter(User.id == user.id).update(user_values, synchronize_session=False)
    db.commit()
    db.refresh(user)
    return user


def rearm_daily_rewards(db: Session, user_id: int, now: Optional[datetime] = None) -> User:
    user = get_user(db, user_id)
    db.query(UserDailyReward).filter(UserDailyReward.user_id == user.id).update(
        {UserDailyReward.claimed: False}, synchronize_session=False
    )
    db.query(User).filter(User.id == user.id).update(
        {User.next_login: next_midnight(now or utcnow())}, synchronize_session=False
    )
    db.commit()
    db.refresh(user)
    return user


def reset_daily_claim_if_stale(db: Session, user_id: int, now: Optional[datetime] = None) -> User:
    """Clear the daily flags only if ``last_login`` is older than the staleness threshold."""
    user = get_user(db, user_id)
    threshold = as_utc(now or utcnow()) - _stale_after()
    stale_user = select(User.id).where(User.id == user.id, User.last_login < threshold)
    db.query(UserDailyReward).filter(UserDailyReward.user_id.in_(stale_user)).update(
        {UserDailyReward.claimed: False}, synchronize_session=False
    )
    db.commit()
    db.refresh(user)
    return user


def reconcile_daily_rewards(db: Session, user: User, now: Optional[datetime] = None) -> User:
    """Login maintenance for the daily slots. Idempotent.

    Keeps at most seven slots, seeds configured keys that are missing, and
    resets every flag when all are claimed or the last login is stale.
    """
    now = as_utc(now or utcnow())
    slots = sorted(user.daily_rewards, key=lambda r: (r.position, r.id or 0))

    for extra in slots[DAILY_SLOT_LIMIT:]:
        user.daily_rewards.remove(extra)
    slots = slots[:DAILY_SLOT_LIMIT]

    present = {slot.claim_key for slot in slots}
    for position, key in enumerate(settings.daily_reward_keys()):
        if len(slots) >= DAILY_SLOT_LIMIT:
            break
        if key not in present:
            slot = UserDailyReward(claim_key=key, position=position, claimed=False)
            user.daily_rewards.append(slot)
            slots.append(slot)

    last_login = as_utc(user.last_login)
    all_claimed = bool(slots) and all(slot.claimed for slot in slots)
    stale = last_login is not None and now - last_login > _stale_after()
    if all_claimed or stale:
        for slot in slots:
            slot.claimed = False

    db.commit()
    db.refresh(user)
    return user


def _raise_missing_or_claimed(db: Session, model, user_pk: int, claim_key: str) -> None:
    entry = db.query(model).filter(model.user_id == user_pk, model.claim_key == claim_key).first()
    if entry is None:
        raise NotFound("User or claimTreshold not found")
    raise AlreadyClaimed(f"Reward {claim_key!r} already claimed")
