"""Identity and referral registry.

Users are keyed by their Telegram id (``external_id``). Every user carries a
unique ``referral_code`` minted once, and the ``referrer_code`` they signed up
with. A referrer is credited exactly once, when a brand-new user row is
committed with a non-empty referrer code.
"""
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aidogs.core.config import settings
from aidogs.errors import CodeSpaceExhausted, NotFound, ReferrerResolutionFailure
from aidogs.models.user import User, UserDailyReward
from aidogs.schemas.common import TelegramProfile
from aidogs.services.codes import mint_unique_code
from aidogs.services.effects import best_effort
from aidogs.utils.clock import utcnow

logger = logging.getLogger(__name__)


def find_user(db: Session, user_id: int) -> Optional[User]:
    # Keyed by the Telegram id alone: usernames can change or be missing, the id cannot
    return db.query(User).filter(User.external_id == user_id).first()


def get_user(db: Session, user_id: int) -> User:
    user = find_user(db, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _new_user(profile: TelegramProfile, referral_code: str, referrer_code: str, now: datetime) -> User:
    user = User(
        external_id=profile.id,
        username=profile.username,
        first_name=profile.first_name,
        last_name=profile.last_name,
        language_code=profile.language_code,
        allows_write_to_pm=profile.allows_write_to_pm if profile.allows_write_to_pm is not None else True,
        points_no=0,
        referral_points=0,
        referral_contest=0,
        referral_code=referral_code,
        referrer_code=referrer_code,
        referred_by=bool(referrer_code),
        points_today=0,
        last_login=now,
    )
    user.daily_rewards = [
        UserDailyReward(claim_key=key, position=i, claimed=False)
        for i, key in enumerate(settings.daily_reward_keys())
    ]
    return user


def get_or_create_user(
    db: Session,
    profile: TelegramProfile,
    referral_code: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Tuple[User, bool]:
    """Return ``(user, is_new)``. Existing users are never re-credited."""
    existing = find_user(db, profile.id)
    if existing is not None:
        return existing, False

    now = now or utcnow()
    referrer_code = (referral_code or "").strip()

    for _ in range(settings.CODE_MAX_ATTEMPTS):
        code = mint_unique_code(db, User.referral_code)
        user = _new_user(profile, code, referrer_code, now)
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            existing = find_user(db, profile.id)
            if existing is not None:
                # A concurrent request created this user first
                return existing, False
            logger.warning("Referral code %s was taken concurrently, retrying", code)
            continue
        break
    else:
        raise CodeSpaceExhausted("Could not mint a unique referral code")

    logger.info("Created user %s with referral code %s", profile.id, user.referral_code)
    if referrer_code and referrer_code != user.referral_code:
        credit_referrer(db, referrer_code)
    return user, True


def _increment_referrals(db: Session, referral_code: str) -> None:
    updated = (
        db.query(User)
        .filter(User.referral_code == referral_code)
        .update(
            {
                User.referral_points: User.referral_points + 1,
                User.referral_contest: User.referral_contest + 1,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        raise ReferrerResolutionFailure(f"no user holds referral code {referral_code!r}")
    db.commit()


def credit_referrer(db: Session, referral_code: str) -> bool:
    with best_effort(db, f"referral credit for code {referral_code!r}"):
        _increment_referrals(db, referral_code)
        return True
    return False


def ensure_referral_code(db: Session, user: User) -> User:
    """Mint a code for legacy users that have none. Never replaces an existing one."""
    if user.referral_code:
        return user
    for _ in range(settings.CODE_MAX_ATTEMPTS):
        code = mint_unique_code(db, User.referral_code)
        try:
            db.query(User).filter(User.id == user.id, User.referral_code.is_(None)).update(
                {User.referral_code: code}, synchronize_session=False
            )
            db.commit()
        except IntegrityError:
            db.rollback()
            continue
        db.refresh(user)
        logger.info("Referral code generated for user %s: %s", user.external_id, user.referral_code)
        return user
    raise CodeSpaceExhausted("Could not mint a unique referral code")


def ensure_last_login(db: Session, user: User, now: Optional[datetime] = None) -> User:
    if user.last_login is None:
        db.query(User).filter(User.id == user.id, User.last_login.is_(None)).update(
            {User.last_login: now or utcnow()}, synchronize_session=False
        )
        db.commit()
        db.refresh(user)
    return user


def list_referrals(db: Session, referral_code: str, limit: int = 50) -> List[User]:
    return (
        db.query(User)
        .filter(User.referrer_code == referral_code)
        .order_by(User.id)
        .limit(limit)
        .all()
    )
