"""Public view and download flows for share links."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sharepod.models.share import ShareRecord
from sharepod.services.access_gate import AccessGate, AccessIntent
from sharepod.services.counters import CounterOutcome, ShareCounterService
from sharepod.services.exceptions import (
    DenialReason,
    LinkIssueError,
    ShareAccessDenied,
    ShareStoreUnavailableError,
)
from sharepod.services.links import DownloadLink, LinkIssuer

logger = logging.getLogger(__name__)

_COUNTER_DENIALS = {
    CounterOutcome.not_found: DenialReason.not_found,
    CounterOutcome.limit_reached: DenialReason.download_limit_reached,
}


@dataclass(frozen=True)
class DownloadGrant:
    share_id: str
    links: list[DownloadLink]
    expires_in: int


class ShareAccessService:
    """Gate, count, then hand out the record or its download links."""

    def __init__(
        self,
        gate: AccessGate,
        counters: ShareCounterService,
        issuer: LinkIssuer,
    ) -> None:
        self.gate = gate
        self.counters = counters
        self.issuer = issuer

    def view(self, db: Session, share_id: str, access_code: str | None = None) -> ShareRecord:
        decision = self.gate.evaluate(
            db, share_id, access_code=access_code, intent=AccessIntent.view
        )
        if not decision.allowed:
            raise ShareAccessDenied(decision.reason)

        outcome = self.counters.increment_view(db, share_id)
        if outcome is not CounterOutcome.incremented:
            raise ShareAccessDenied(_COUNTER_DENIALS[outcome])

        record = decision.record
        try:
            db.refresh(record)
        except SQLAlchemyError as exc:
            raise ShareStoreUnavailableError() from exc
        return record

    def download(
        self,
        db: Session,
        share_id: str,
        access_code: str | None = None,
        password: str | None = None,
    ) -> DownloadGrant:
        """Consume one download and return fresh presigned URLs for every file.

        The conditional increment, link issuance and commit share one
        transaction: a presign failure rolls the increment back, and a failed
        commit returns no URLs.
        """
        decision = self.gate.evaluate(
            db,
            share_id,
            access_code=access_code,
            password=password,
            intent=AccessIntent.download,
        )
        if not decision.allowed:
            raise ShareAccessDenied(decision.reason)

        outcome = self.counters.increment_download(db, share_id, commit=False)
        if outcome is not CounterOutcome.incremented:
            raise ShareAccessDenied(_COUNTER_DENIALS[outcome])

        record = decision.record
        try:
            links = self.issuer.issue_download_links(record)
        except LinkIssueError:
            db.rollback()
            raise

        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("share_download_commit_failed share_id=%s error=%s", share_id, exc)
            raise ShareStoreUnavailableError() from exc

        logger.info("share_download_granted share_id=%s files=%s", share_id, len(links))
        return DownloadGrant(
            share_id=share_id,
            links=links,
            expires_in=self.issuer.presign_ttl_seconds,
        )
