"""Unit of work: commit-or-rollback scope around a set of writes."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.orm import Session

from collabhub.errors import CollabError

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Run the enclosed writes as one transaction.

    Commits on normal exit. Any exception rolls back everything written inside
    the block and is re-raised unchanged; callers never observe a partial write.
    Domain failures (CollabError) are expected and not logged here.
    """
    try:
        yield db
        db.commit()
    except CollabError:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception("unit_of_work_rolled_back")
        raise
