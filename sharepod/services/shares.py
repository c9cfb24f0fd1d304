"""Share creation, listing and cascading deletion."""

from __future__ import annotations

import logging
import mimetypes
import re
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sharepod.metrics import STORAGE_FAILURES
from sharepod.models.share import SharedFile, ShareRecord, file_kind_for_mime
from sharepod.services.common import as_utc, parse_record_id
from sharepod.services.credentials import (
    CredentialVerifier,
    generate_access_code,
    generate_share_id,
    is_valid_access_code,
    normalize_access_code,
)
from sharepod.services.exceptions import (
    ShareNotFoundError,
    ShareOwnershipError,
    ShareStoreUnavailableError,
    ShareValidationError,
)
from sharepod.services.object_storage import (
    ObjectNotFoundError,
    ObjectStorageError,
    StorageService,
)

logger = logging.getLogger(__name__)

SAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9._ -]+")
SAFE_SEGMENT_RE = re.compile(r"[^A-Za-z0-9_-]+")


@dataclass(frozen=True)
class NewShareFile:
    """A file already placed in object storage."""

    original_name: str
    storage_key: str
    size: int
    mime_type: str
    thumbnail_key: str | None = None


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    content_type: str | None
    data: bytes


@dataclass
class ShareOptions:
    description: str | None = None
    is_public: bool = False
    password_protected: bool = False
    password: str | None = None
    access_code: str | None = None
    access_code_enabled: bool = True
    expires_at: datetime | None = None
    max_downloads: int = 0


@dataclass
class ShareDeletionReport:
    record_id: str
    share_id: str
    deleted_keys: list[str] = field(default_factory=list)
    failed_keys: list[str] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(UTC)


def sanitize_filename(filename: str) -> str:
    name = Path(filename or "").name
    cleaned = SAFE_FILENAME_RE.sub("_", name).strip().strip(".")
    return cleaned[:255] or "file"


def display_filename(filename: str) -> str:
    """Client filename minus directories and header-breaking characters."""
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]
    cleaned = name.replace('"', "").replace("\r", "").replace("\n", "").strip()
    return cleaned[:255] or "file"


def _owner_segment(owner_id: str) -> str:
    return SAFE_SEGMENT_RE.sub("_", owner_id)[:100] or "owner"


class ShareLifecycleService:
    """Owns creation and owner-initiated deletion of share records."""

    def __init__(
        self,
        storage: StorageService,
        verifier: CredentialVerifier,
        *,
        access_code_length: int = 6,
        max_files: int = 10,
        max_file_bytes: int = 100 * 1024 * 1024,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self.storage = storage
        self.verifier = verifier
        self.access_code_length = access_code_length
        self.max_files = max_files
        self.max_file_bytes = max_file_bytes
        self.clock = clock

    # Creation

    def _resolve_access_code(self, options: ShareOptions) -> str | None:
        supplied = normalize_access_code(options.access_code)
        if supplied is not None:
            return supplied
        if options.access_code_enabled:
            return generate_access_code(self.access_code_length)
        return None

    def _validate(self, title: str, file_count: int, options: ShareOptions) -> None:
        if file_count == 0:
            raise ShareValidationError("At least one file is required")
        if file_count > self.max_files:
            raise ShareValidationError(f"A share may contain at most {self.max_files} files")
        if not title or not title.strip():
            raise ShareValidationError("Title is required")
        if options.password_protected and not (options.password or "").strip():
            raise ShareValidationError("Password protection requires a password")
        supplied_code = normalize_access_code(options.access_code)
        if supplied_code is not None and not is_valid_access_code(supplied_code):
            raise ShareValidationError("Access code must be 4-12 letters or digits")
        if options.max_downloads < 0:
            raise ShareValidationError("max_downloads must be zero or positive")
        expires_at = as_utc(options.expires_at)
        if expires_at is not None and expires_at <= as_utc(self.clock()):
            raise ShareValidationError("Expiry must be in the future")

    def create(
        self,
        db: Session,
        *,
        owner_id: str,
        title: str,
        files: Sequence[NewShareFile],
        options: ShareOptions | None = None,
    ) -> ShareRecord:
        options = options or ShareOptions()
        if not owner_id:
            raise ShareValidationError("Owner is required")
        self._validate(title, len(files), options)

        password_hash = None
        if options.password_protected:
            password_hash = self.verifier.hash_password(options.password)

        record = ShareRecord(
            share_id=generate_share_id(),
            access_code=self._resolve_access_code(options),
            is_password_protected=password_hash is not None,
            password_hash=password_hash,
            title=title.strip()[:200],
            description=(options.description or "").strip() or None,
            is_public=options.is_public,
            expires_at=as_utc(options.expires_at),
            max_downloads=options.max_downloads,
            download_count=0,
            view_count=0,
            owner_id=owner_id,
            created_at=as_utc(self.clock()),
        )
        record.files = [
            SharedFile(
                position=index,
                original_name=item.original_name,
                storage_key=item.storage_key,
                size=item.size,
                mime_type=item.mime_type,
                file_kind=file_kind_for_mime(item.mime_type),
                thumbnail_key=item.thumbnail_key,
            )
            for index, item in enumerate(files)
        ]
        try:
            db.add(record)
            db.commit()
            db.refresh(record)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("share_create_failed owner=%s error=%s", owner_id, exc)
            raise ShareStoreUnavailableError() from exc

        logger.info(
            "share_created share_id=%s record_id=%s owner=%s files=%s protected=%s",
            record.share_id,
            record.id,
            owner_id,
            len(record.files),
            record.is_password_protected,
        )
        return record

    def upload_and_create(
        self,
        db: Session,
        *,
        owner_id: str,
        title: str,
        uploads: Sequence[UploadedFile],
        options: ShareOptions | None = None,
    ) -> ShareRecord:
        """Store every upload, then create the record; never leaves a partial share."""
        options = options or ShareOptions()
        if not owner_id:
            raise ShareValidationError("Owner is required")
        self._validate(title, len(uploads), options)
        for upload in uploads:
            if not upload.data:
                raise ShareValidationError(f"File {upload.filename!r} is empty")
            if len(upload.data) > self.max_file_bytes:
                raise ShareValidationError(
                    f"File {upload.filename!r} exceeds maximum allowed size"
                )

        batch = uuid.uuid4().hex
        stored: list[NewShareFile] = []
        try:
            for index, upload in enumerate(uploads):
                display_name = display_filename(upload.filename)
                safe_name = sanitize_filename(display_name)
                content_type = (
                    upload.content_type
                    or mimetypes.guess_type(display_name)[0]
                    or "application/octet-stream"
                )
                key = f"shares/{_owner_segment(owner_id)}/{batch}/{index:02d}-{safe_name}"
                self.storage.upload(key, upload.data, content_type)
                stored.append(
                    NewShareFile(
                        original_name=display_name,
                        storage_key=key,
                        size=len(upload.data),
                        mime_type=content_type,
                    )
                )
            return self.create(
                db, owner_id=owner_id, title=title, files=stored, options=options
            )
        except ObjectStorageError as exc:
            STORAGE_FAILURES.labels(operation="upload").inc()
            logger.error("share_upload_failed owner=%s batch=%s error=%s", owner_id, batch, exc)
            self._discard([item.storage_key for item in stored])
            raise ShareStoreUnavailableError("File storage is temporarily unavailable") from exc
        except Exception:
            self._discard([item.storage_key for item in stored])
            raise

    def _discard(self, keys: Sequence[str]) -> list[str]:
        """Best-effort object removal; returns the keys that could not be deleted."""
        failed: list[str] = []
        for key in keys:
            try:
                self.storage.delete(key)
            except ObjectNotFoundError:
                logger.info("share_object_already_absent key=%s", key)
            except ObjectStorageError as exc:
                STORAGE_FAILURES.labels(operation="delete").inc()
                logger.error("share_object_delete_failed key=%s error=%s", key, exc)
                failed.append(key)
        return failed

    # Reads

    def get(self, db: Session, record_id: str | uuid.UUID) -> ShareRecord:
        try:
            record_uuid = parse_record_id(record_id)
        except ValueError as exc:
            raise ShareNotFoundError() from exc
        try:
            record = db.get(ShareRecord, record_uuid)
        except SQLAlchemyError as exc:
            raise ShareStoreUnavailableError() from exc
        if record is None:
            raise ShareNotFoundError()
        return record

    def get_owned(self, db: Session, record_id: str | uuid.UUID, owner_id: str) -> ShareRecord:
        record = self.get(db, record_id)
        if record.owner_id != owner_id:
            logger.warning(
                "share_owner_mismatch record_id=%s owner=%s requester=%s",
                record.id,
                record.owner_id,
                owner_id,
            )
            raise ShareOwnershipError()
        return record

    def list_for_owner(
        self, db: Session, owner_id: str, limit: int = 50, offset: int = 0
    ) -> list[ShareRecord]:
        stmt = (
            select(ShareRecord)
            .where(ShareRecord.owner_id == owner_id)
            .order_by(ShareRecord.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        try:
            return list(db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise ShareStoreUnavailableError() from exc

    def list_public(self, db: Session, limit: int = 50, offset: int = 0) -> list[ShareRecord]:
        now = as_utc(self.clock())
        stmt = (
            select(ShareRecord)
            .where(ShareRecord.is_public.is_(True))
            .where(or_(ShareRecord.expires_at.is_(None), ShareRecord.expires_at > now))
            .order_by(ShareRecord.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        try:
            return list(db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise ShareStoreUnavailableError() from exc

    # Deletion

    def delete(self, db: Session, record_id: str | uuid.UUID, owner_id: str) -> ShareDeletionReport:
        record = self.get_owned(db, record_id, owner_id)
        keys = record.storage_keys
        failed = self._discard(keys)
        report = ShareDeletionReport(
            record_id=str(record.id),
            share_id=record.share_id,
            deleted_keys=[key for key in keys if key not in failed],
            failed_keys=failed,
        )
        try:
            db.delete(record)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("share_delete_failed record_id=%s error=%s", report.record_id, exc)
            raise ShareStoreUnavailableError() from exc

        logger.info(
            "share_deleted record_id=%s share_id=%s objects=%s failed_objects=%s",
            report.record_id,
            report.share_id,
            len(report.deleted_keys),
            len(report.failed_keys),
        )
        return report
