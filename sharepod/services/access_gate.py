"""Ordered access checks for public share requests.

The gate runs a fixed sequence of checks against a fresh read of the share
record and stops at the first failure:

1. existence
2. expiry
3. download limit (download intent only)
4. access code
5. password (download intent only)

It never mutates the record. Callers invoke the counter service only after
an allowed decision.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sharepod.metrics import GATE_DECISIONS
from sharepod.models.share import ShareRecord
from sharepod.services.common import as_utc
from sharepod.services.credentials import CredentialVerifier, access_code_matches
from sharepod.services.exceptions import DenialReason, ShareStoreUnavailableError

logger = logging.getLogger(__name__)


class AccessIntent(enum.Enum):
    view = "view"
    download = "download"


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: DenialReason | None = None
    record: ShareRecord | None = None

    @classmethod
    def allow(cls, record: ShareRecord) -> "GateDecision":
        return cls(allowed=True, record=record)

    @classmethod
    def deny(cls, reason: DenialReason, record: ShareRecord | None = None) -> "GateDecision":
        return cls(allowed=False, reason=reason, record=record)


def _now() -> datetime:
    return datetime.now(UTC)


def _supplied(value: str | None) -> bool:
    return value is not None and value.strip() != ""


def is_expired(record: ShareRecord, now: datetime) -> bool:
    expires_at = as_utc(record.expires_at)
    return expires_at is not None and now >= expires_at


def downloads_exhausted(record: ShareRecord) -> bool:
    return record.max_downloads > 0 and record.download_count >= record.max_downloads


class AccessGate:
    """Allow/deny decisions for view and download requests."""

    def __init__(
        self,
        verifier: CredentialVerifier,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.verifier = verifier
        self.clock = clock

    def load(self, db: Session, share_id: str) -> ShareRecord | None:
        stmt = (
            select(ShareRecord)
            .where(ShareRecord.share_id == share_id)
            .execution_options(populate_existing=True)
        )
        try:
            return db.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            logger.error("share_lookup_failed share_id=%s error=%s", share_id, exc)
            raise ShareStoreUnavailableError() from exc

    def check(
        self,
        record: ShareRecord | None,
        *,
        access_code: str | None,
        password: str | None,
        intent: AccessIntent,
    ) -> GateDecision:
        """Evaluate an already-loaded record snapshot."""
        if record is None:
            return GateDecision.deny(DenialReason.not_found)

        if is_expired(record, as_utc(self.clock())):
            return GateDecision.deny(DenialReason.expired, record)

        if intent is AccessIntent.download and downloads_exhausted(record):
            return GateDecision.deny(DenialReason.download_limit_reached, record)

        if record.has_access_code:
            if not _supplied(access_code):
                return GateDecision.deny(DenialReason.access_code_required, record)
            if not access_code_matches(record.access_code, access_code):
                return GateDecision.deny(DenialReason.access_code_invalid, record)

        if intent is AccessIntent.download and record.is_password_protected:
            if not _supplied(password):
                return GateDecision.deny(DenialReason.password_required, record)
            if not self.verifier.verify_password(password, record.password_hash):
                return GateDecision.deny(DenialReason.password_invalid, record)

        return GateDecision.allow(record)

    def evaluate(
        self,
        db: Session,
        share_id: str,
        *,
        access_code: str | None = None,
        password: str | None = None,
        intent: AccessIntent = AccessIntent.view,
    ) -> GateDecision:
        record = self.load(db, share_id) if share_id else None
        decision = self.check(
            record, access_code=access_code, password=password, intent=intent
        )
        outcome = "allowed" if decision.allowed else decision.reason.value
        GATE_DECISIONS.labels(intent=intent.value, outcome=outcome).inc()
        if not decision.allowed:
            logger.info(
                "share_access_denied share_id=%s intent=%s reason=%s",
                share_id,
                intent.value,
                outcome,
            )
        return decision
