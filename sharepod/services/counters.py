"""Atomic view/download counters on share records."""

from __future__ import annotations

import enum
import logging

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sharepod.metrics import COUNTER_INCREMENTS
from sharepod.models.share import ShareRecord
from sharepod.services.exceptions import ShareStoreUnavailableError

logger = logging.getLogger(__name__)


class CounterOutcome(enum.Enum):
    incremented = "incremented"
    limit_reached = "limit_reached"
    not_found = "not_found"


class ShareCounterService:
    """Single-statement conditional increments.

    The download increment only applies while the resulting count stays
    within ``max_downloads`` (0 means no ceiling), so concurrent requests
    can never push ``download_count`` past the limit.
    """

    def increment_view(self, db: Session, share_id: str, *, commit: bool = True) -> CounterOutcome:
        stmt = (
            update(ShareRecord)
            .where(ShareRecord.share_id == share_id)
            .values(view_count=ShareRecord.view_count + 1)
            .execution_options(synchronize_session=False)
        )
        return self._apply(db, stmt, share_id, "view", commit=commit)

    def increment_download(
        self, db: Session, share_id: str, *, commit: bool = True
    ) -> CounterOutcome:
        stmt = (
            update(ShareRecord)
            .where(ShareRecord.share_id == share_id)
            .where(
                or_(
                    ShareRecord.max_downloads == 0,
                    ShareRecord.download_count < ShareRecord.max_downloads,
                )
            )
            .values(download_count=ShareRecord.download_count + 1)
            .execution_options(synchronize_session=False)
        )
        return self._apply(db, stmt, share_id, "download", commit=commit)

    def _apply(self, db: Session, stmt, share_id: str, counter: str, *, commit: bool) -> CounterOutcome:
        try:
            result = db.execute(stmt)
            if result.rowcount == 1:
                outcome = CounterOutcome.incremented
                if commit:
                    db.commit()
            else:
                outcome = self._classify_miss(db, share_id)
                db.rollback()
        except SQLAlchemyError as exc:
            db.rollback()
            COUNTER_INCREMENTS.labels(counter=counter, outcome="error").inc()
            logger.error(
                "share_counter_failed share_id=%s counter=%s error=%s", share_id, counter, exc
            )
            raise ShareStoreUnavailableError() from exc

        COUNTER_INCREMENTS.labels(counter=counter, outcome=outcome.value).inc()
        if outcome is not CounterOutcome.incremented:
            logger.info(
                "share_counter_refused share_id=%s counter=%s outcome=%s",
                share_id,
                counter,
                outcome.value,
            )
        return outcome

    @staticmethod
    def _classify_miss(db: Session, share_id: str) -> CounterOutcome:
        exists = db.execute(
            select(ShareRecord.id).where(ShareRecord.share_id == share_id)
        ).first()
        if exists is None:
            return CounterOutcome.not_found
        return CounterOutcome.limit_reached

    @staticmethod
    def read_counts(db: Session, share_id: str) -> tuple[int, int] | None:
        """Current ``(view_count, download_count)`` straight from the store."""
        row = db.execute(
            select(ShareRecord.view_count, ShareRecord.download_count).where(
                ShareRecord.share_id == share_id
            )
        ).first()
        if row is None:
            return None
        return int(row[0]), int(row[1])
