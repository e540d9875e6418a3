import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aidogs.errors import NotFound, ReferrerResolutionFailure

logger = logging.getLogger(__name__)


@contextmanager
def best_effort(db: Session, description: str):
    """Run a secondary write whose failure must not fail the primary operation.

    The primary write is already committed when this runs; nothing is rolled
    back across the two.
    """
    try:
        yield
    except (ReferrerResolutionFailure, NotFound) as exc:
        logger.warning("Skipped %s: %s", description, exc.message)
    except SQLAlchemyError:
        db.rollback()
        logger.warning("Failed %s", description, exc_info=True)
