"""Leaderboard materializer.

Ranked snapshots are recomputed on a schedule and replaced wholesale
(delete-all then bulk insert in one transaction). Request handlers only read
the snapshot tables and never rank live.
"""
import json
import logging
import random
import time
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aidogs.core.config import settings
from aidogs.models.leaderboard import LeaderboardEntry, ReferralLeaderboardEntry
from aidogs.models.user import User

logger = logging.getLogger(__name__)


class SnapshotKind(str, Enum):
    SCORE = "score"
    REFERRAL = "referral"


SNAPSHOT_MODELS = {
    SnapshotKind.SCORE: LeaderboardEntry,
    SnapshotKind.REFERRAL: ReferralLeaderboardEntry,
}


class SnapshotCache:
    """Per-kind cache of the last materialized rows, expiring after ``ttl_seconds``."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[SnapshotKind, Tuple[float, List[dict]]] = {}

    def get(self, kind: SnapshotKind) -> Optional[List[dict]]:
        entry = self._entries.get(kind)
        if entry is None:
            return None
        stored_at, rows = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[kind]
            return None
        return rows

    def put(self, kind: SnapshotKind, rows: List[dict]) -> None:
        self._entries[kind] = (self._clock(), rows)

    def clear(self) -> None:
        self._entries.clear()


snapshot_cache = SnapshotCache(settings.LEADERBOARD_CACHE_TTL_SECONDS)


def compute_top_users(db: Session, kind: SnapshotKind, limit: Optional[int] = None) -> List[dict]:
    limit = limit or settings.LEADERBOARD_SIZE
    if kind is SnapshotKind.SCORE:
        score = (User.points_no * User.referral_points).label("score")
    else:
        score = User.referral_contest.label("score")

    rows = db.query(User, score).order_by(desc(score), User.id).limit(limit).all()

    result = []
    for position, (user, value) in enumerate(rows, start=1):
        row = {
            "position": position,
            "user_id": user.id,
            "external_id": user.external_id,
            "first_name": user.first_name,
            "last_name": user.last_name,
            "username": user.username,
            "points_no": user.points_no,
        }
        if kind is SnapshotKind.SCORE:
            row["referral_points"] = user.referral_points
            row["total_score"] = value or 0
        else:
            row["referral_points"] = user.referral_contest
        result.append(row)
    return result


def materialize(
    db: Session,
    kind: SnapshotKind,
    *,
    cache: Optional[SnapshotCache] = None,
    limit: Optional[int] = None,
) -> List[dict]:
    """Recompute and replace one snapshot. Within the cache TTL the previous rows are returned."""
    cache = cache if cache is not None else snapshot_cache
    cached = cache.get(kind)
    if cached is not None:
        logger.debug("Leaderboard %s served from cache", kind.value)
        return cached

    rows = compute_top_users(db, kind, limit)
    model = SNAPSHOT_MODELS[kind]
    try:
        db.query(model).delete(synchronize_session=False)
        db.bulk_insert_mappings(model, rows)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to replace %s leaderboard", kind.value)
        raise

    cache.put(kind, rows)
    logger.info("Leaderboard %s updated with %d rows", kind.value, len(rows))
    return rows


def read_snapshot(db: Session, kind: SnapshotKind):
    model = SNAPSHOT_MODELS[kind]
    return db.query(model).order_by(model.position).all()


def reset_points_today(db: Session) -> int:
    count = db.query(User).update({User.points_today: 0}, synchronize_session=False)
    db.commit()
    logger.info("Reset pointsToday for %d users", count)
    return count


# ---------- Reference accounts ----------

def load_roster(path: str) -> List[int]:
    """Read the reference-account roster: a JSON list of ids or ``{"userId": ...}`` objects."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    roster = []
    for item in data:
        if isinstance(item, dict):
            item = item.get("userId", item.get("id"))
        if item is not None:
            roster.append(int(item))
    return roster


class ReferenceAccountRotation:
    """Round-robin cursor over the roster, one fixed-size batch per run."""

    def __init__(self, roster: Sequence[int], batch_size: Optional[int] = None):
        self.roster = list(roster)
        self.batch_size = batch_size or settings.REF_ACCOUNTS_BATCH_SIZE
        self.cursor = 0

    def next_batch(self) -> List[int]:
        batch = self.roster[self.cursor:self.cursor + self.batch_size]
        if not batch:
            return []
        self.cursor += self.batch_size
        if self.cursor >= len(self.roster):
            self.cursor = 0
        return batch


def top_up_reference_accounts(
    db: Session,
    batch: Sequence[int],
    *,
    rng: Optional[random.Random] = None,
    visible_top: Optional[int] = None,
) -> List[int]:
    """Bump every account of ``batch`` that is not in the current referral top. Returns the bumped ids."""
    rng = rng or random.Random()
    visible_top = visible_top or settings.REF_ACCOUNTS_VISIBLE_TOP

    visible = {
        external_id
        for (external_id,) in db.query(ReferralLeaderboardEntry.external_id)
        .order_by(ReferralLeaderboardEntry.position)
        .limit(visible_top)
        .all()
    }

    bumped = []
    for user_id in batch:
        if user_id in visible:
            continue
        updated = (
            db.query(User)
            .filter(User.external_id == user_id)
            .update(
                {
                    User.points_no: User.points_no + rng.uniform(0, settings.REF_TOPUP_MAX_POINTS),
                    User.referral_points: User.referral_points
                    + rng.randint(settings.REF_TOPUP_REFERRALS_MIN, settings.REF_TOPUP_REFERRALS_MAX),
                    User.referral_contest: User.referral_contest
                    + rng.randint(settings.REF_TOPUP_REFERRALS_MIN, settings.REF_TOPUP_REFERRALS_MAX),
                },
                synchronize_session=False,
            )
        )
        if updated:
            bumped.append(user_id)
        else:
            logger.warning("Reference account %s not found", user_id)
    db.commit()
    return bumped
