import logging
import math
from typing import Optional

from sqlalchemy.orm import Session

from aidogs.core.config import settings
from aidogs.errors import NotFound, ReferrerResolutionFailure, ValidationError
from aidogs.models.user import User
from aidogs.schemas.common import TelegramProfile
from aidogs.services.effects import best_effort
from aidogs.services.referrals import find_user, get_or_create_user

logger = logging.getLogger(__name__)


def _check_delta(delta: float) -> None:
    if delta is None or not math.isfinite(delta) or delta < 0:
        raise ValidationError("pointsNo must be a non-negative number")
    if delta > settings.MAX_POINTS_CREDIT:
        raise ValidationError(f"pointsNo must not exceed {settings.MAX_POINTS_CREDIT:g}")


def apply_points(db: Session, user_id: int, delta: float) -> float:
    """Atomically add ``delta`` to the user's balance and return the new balance."""
    _check_delta(delta)
    updated = (
        db.query(User)
        .filter(User.external_id == user_id)
        .update({User.points_no: User.points_no + delta}, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        raise NotFound("User not found")
    db.commit()
    return db.query(User.points_no).filter(User.external_id == user_id).scalar()


def _credit_pass_through(db: Session, user: User, delta: float) -> None:
    share = delta / settings.REFERRAL_PASS_THROUGH_DIVISOR
    updated = (
        db.query(User)
        .filter(User.referral_code == user.referrer_code, User.id != user.id)
        .update({User.points_no: User.points_no + share}, synchronize_session=False)
    )
    if not updated:
        db.rollback()
        raise ReferrerResolutionFailure(f"no referrer holds code {user.referrer_code!r}")
    db.commit()


def award_points(
    db: Session,
    profile: TelegramProfile,
    delta: float,
    *,
    early_adopter: bool = False,
) -> User:
    """Credit task or early-adopter points, passing 1/20 through to the referrer.

    Unknown users are created on write instead of failing.
    """
    _check_delta(delta)
    user: Optional[User] = find_user(db, profile.id)
    if user is None:
        user, _ = get_or_create_user(db, profile)

    values = {User.points_no: User.points_no + delta}
    if early_adopter:
        values[User.early_adopter_bonus_claimed] = True
    db.query(User).filter(User.id == user.id).update(values, synchronize_session=False)
    db.commit()

    if user.referrer_code:
        with best_effort(db, f"referral pass-through for user {user.external_id}"):
            _credit_pass_through(db, user, delta)

    db.refresh(user)
    return user
