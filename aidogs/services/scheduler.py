"""
Background jobs: leaderboard materialization, reference-account top-ups and
the midnight pointsToday reset. Started from the FastAPI lifespan.
"""
import asyncio
import logging
from typing import Callable, List, Optional

from aidogs.core.config import settings
from aidogs.database import SessionLocal
from aidogs.services.leaderboard import (
    ReferenceAccountRotation,
    SnapshotKind,
    load_roster,
    materialize,
    reset_points_today,
    top_up_reference_accounts,
)
from aidogs.utils.clock import seconds_until_next_midnight, utcnow

logger = logging.getLogger(__name__)

HOUR = 3600


def materialize_job(kind: SnapshotKind) -> int:
    with SessionLocal() as db:
        return len(materialize(db, kind))


def reset_points_today_job() -> int:
    with SessionLocal() as db:
        return reset_points_today(db)


def reference_top_up_job(rotation: ReferenceAccountRotation) -> int:
    batch = rotation.next_batch()
    if not batch:
        return 0
    with SessionLocal() as db:
        return len(top_up_reference_accounts(db, batch))


async def _run_job(name: str, job: Callable[[], object]) -> None:
    try:
        result = await asyncio.to_thread(job)
        logger.info("[scheduler] %s finished: %s", name, result)
    except Exception:
        # A failed run must not stop the schedule
        logger.exception("[scheduler] %s failed", name)


async def run_every(name: str, interval_seconds: float, job: Callable[[], object]) -> None:
    # First run happens at startup so a restart never postpones the job
    while True:
        await _run_job(name, job)
        await asyncio.sleep(interval_seconds)


async def run_at_midnight(name: str, job: Callable[[], object]) -> None:
    while True:
        await asyncio.sleep(seconds_until_next_midnight(utcnow()))
        await _run_job(name, job)


def _reference_rotation() -> Optional[ReferenceAccountRotation]:
    if not settings.REF_ACCOUNTS_FILE:
        return None
    try:
        roster = load_roster(settings.REF_ACCOUNTS_FILE)
    except (OSError, ValueError):
        logger.exception("[scheduler] could not read reference accounts from %s", settings.REF_ACCOUNTS_FILE)
        return None
    return ReferenceAccountRotation(roster)


def start_background_tasks() -> List[asyncio.Task]:
    """
    Start the scheduled jobs as asyncio tasks on the running loop.
    Call this from the app lifespan and cancel the returned tasks on shutdown.
    """
    logger.info("[scheduler] starting background jobs")
    leaderboard_interval = settings.LEADERBOARD_INTERVAL_HOURS * HOUR
    tasks = [
        asyncio.create_task(
            run_every("score leaderboard", leaderboard_interval, lambda: materialize_job(SnapshotKind.SCORE))
        ),
        asyncio.create_task(
            run_every("referral leaderboard", leaderboard_interval, lambda: materialize_job(SnapshotKind.REFERRAL))
        ),
        asyncio.create_task(run_at_midnight("pointsToday reset", reset_points_today_job)),
    ]

    rotation = _reference_rotation()
    if rotation is not None:
        tasks.append(
            asyncio.create_task(
                run_every(
                    "reference accounts",
                    settings.REF_ACCOUNTS_INTERVAL_HOURS * HOUR,
                    lambda: reference_top_up_job(rotation),
                )
            )
        )
    return tasks
