# services/codes.py
import logging
import secrets
from typing import Callable, Optional

from sqlalchemy import exists
from sqlalchemy.orm import Session

from aidogs.core.config import settings
from aidogs.errors import CodeSpaceExhausted

logger = logging.getLogger(__name__)


def generate_code(nbytes: Optional[int] = None) -> str:
    return secrets.token_hex(nbytes or settings.REFERRAL_CODE_BYTES)


def code_taken(db: Session, column, code: str) -> bool:
    return db.query(exists().where(column == code)).scalar()


def mint_unique_code(
    db: Session,
    column,
    *,
    max_attempts: Optional[int] = None,
    generator: Callable[[], str] = generate_code,
) -> str:
    """Draw random hex tokens until one is not held in ``column``.

    The caller still inserts under a unique constraint; this only keeps
    collisions from reaching the database in the common case.
    """
    attempts = max_attempts or settings.CODE_MAX_ATTEMPTS
    for attempt in range(1, attempts + 1):
        code = generator()
        if not code_taken(db, column, code):
            return code
        logger.warning("Code collision on %s (attempt %d/%d)", column.key, attempt, attempts)
    raise CodeSpaceExhausted(f"No free code for {column.key} after {attempts} attempts")
