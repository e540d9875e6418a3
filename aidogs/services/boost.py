"""Boost competition: a separate, code-gated point pool with live ranks."""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aidogs.core.config import settings
from aidogs.errors import ReferrerResolutionFailure, ValidationError
from aidogs.models.boost import BoostEntry
from aidogs.services.codes import code_taken, mint_unique_code
from aidogs.services.effects import best_effort
from aidogs.services.points import apply_points
from aidogs.utils.clock import utcnow

logger = logging.getLogger(__name__)

BOOST_KEY_NOT_VALID = "Boost key not valid"
BOOST_ALREADY_ACTIVATED = "Boost already activated"
BOOST_ACTIVATED = "Points updated successfully"


@dataclass
class BoostActivation:
    message: str
    entry: Optional[BoostEntry]
    rank: Optional[int] = None
    activated: bool = False


def get_entry(db: Session, user_id: int) -> Optional[BoostEntry]:
    return db.query(BoostEntry).filter(BoostEntry.user_id == user_id).first()


def boost_rank(db: Session, user_id: int) -> Optional[int]:
    """1-based position by (points desc, registration time asc), computed per call."""
    entry = get_entry(db, user_id)
    if entry is None:
        return None
    ahead = (
        db.query(func.count(BoostEntry.id))
        .filter(
            or_(
                BoostEntry.points_no > entry.points_no,
                and_(
                    BoostEntry.points_no == entry.points_no,
                    BoostEntry.registration_time < entry.registration_time,
                ),
                and_(
                    BoostEntry.points_no == entry.points_no,
                    BoostEntry.registration_time == entry.registration_time,
                    BoostEntry.id < entry.id,
                ),
            )
        )
        .scalar()
    )
    return ahead + 1


def count_participants(db: Session) -> int:
    return db.query(func.count(BoostEntry.id)).scalar()


def _credit_referrer_entry(db: Session, referrer_boost_code: str) -> None:
    updated = (
        db.query(BoostEntry)
        .filter(BoostEntry.boost_code == referrer_boost_code)
        .update(
            {
                BoostEntry.points_no: BoostEntry.points_no + settings.BOOST_REFERRER_BONUS,
                BoostEntry.referral_points: BoostEntry.referral_points + 1,
            },
            synchronize_session=False,
        )
    )
    if not updated:
        db.rollback()
        raise ReferrerResolutionFailure(f"boost code {referrer_boost_code!r} vanished")
    db.commit()


def activate_boost(
    db: Session,
    user_id: int,
    own_boost_code: Optional[str],
    referrer_boost_code: str,
    *,
    now: Optional[datetime] = None,
) -> BoostActivation:
    referrer = db.query(BoostEntry).filter(BoostEntry.boost_code == referrer_boost_code).first()
    existing = get_entry(db, user_id)
    if referrer is None:
        logger.warning("Boost activation for %s with unknown code %r", user_id, referrer_boost_code)
        return BoostActivation(BOOST_KEY_NOT_VALID, existing)
    if existing is not None:
        return BoostActivation(BOOST_ALREADY_ACTIVATED, existing, boost_rank(db, user_id))

    own_boost_code = (own_boost_code or "").strip()
    if not own_boost_code:
        own_boost_code = mint_unique_code(db, BoostEntry.boost_code)
    elif code_taken(db, BoostEntry.boost_code, own_boost_code):
        raise ValidationError("Boost code already in use")

    entry = BoostEntry(
        user_id=user_id,
        points_no=settings.BOOST_START_BONUS,
        referral_points=0,
        boost_code=own_boost_code,
        referrer_boost_code=referrer_boost_code,
        boost_activated=True,
        registration_time=now or utcnow(),
    )
    db.add(entry)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_entry(db, user_id)
        if existing is not None:
            return BoostActivation(BOOST_ALREADY_ACTIVATED, existing, boost_rank(db, user_id))
        raise ValidationError("Boost code already in use")

    referrer_user_id = referrer.user_id
    with best_effort(db, f"boost start bonus mirror for user {user_id}"):
        apply_points(db, user_id, settings.BOOST_START_BONUS)
    with best_effort(db, f"boost referrer credit for code {referrer_boost_code!r}"):
        _credit_referrer_entry(db, referrer_boost_code)
    with best_effort(db, f"boost referrer bonus mirror for user {referrer_user_id}"):
        apply_points(db, referrer_user_id, settings.BOOST_REFERRER_BONUS)

    db.refresh(entry)
    logger.info("Boost activated for user %s via %r", user_id, referrer_boost_code)
    return BoostActivation(BOOST_ACTIVATED, entry, boost_rank(db, user_id), activated=True)
