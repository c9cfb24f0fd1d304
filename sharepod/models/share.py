"""Share record and shared file models."""

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sharepod.db import Base


class FileKind(enum.Enum):
    document = "document"
    image = "image"
    video = "video"
    audio = "audio"
    archive = "archive"
    other = "other"


def file_kind_for_mime(mime_type: str | None) -> FileKind:
    value = (mime_type or "").lower()
    if value.startswith("image/"):
        return FileKind.image
    if value.startswith("video/"):
        return FileKind.video
    if value.startswith("audio/"):
        return FileKind.audio
    if "pdf" in value or "doc" in value or "text" in value:
        return FileKind.document
    if "zip" in value or "rar" in value or "tar" in value:
        return FileKind.archive
    return FileKind.other


class ShareRecord(Base):
    """One upload batch published behind a share link."""

    __tablename__ = "share_records"
    __table_args__ = (
        Index("ix_share_records_owner_created", "owner_id", "created_at"),
        Index("ix_share_records_public_expiry", "is_public", "expires_at"),
        CheckConstraint("max_downloads >= 0", name="ck_share_records_max_downloads"),
        CheckConstraint("download_count >= 0", name="ck_share_records_download_count"),
        CheckConstraint("view_count >= 0", name="ck_share_records_view_count"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    share_id: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    access_code: Mapped[str | None] = mapped_column(String(12))
    is_password_protected: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255))
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    max_downloads: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    download_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    owner_id: Mapped[str] = mapped_column(String(100), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC)
    )

    files: Mapped[list["SharedFile"]] = relationship(
        back_populates="share",
        order_by="SharedFile.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def has_access_code(self) -> bool:
        return bool(self.access_code)

    @property
    def storage_keys(self) -> list[str]:
        keys: list[str] = []
        for item in self.files:
            keys.append(item.storage_key)
            if item.thumbnail_key:
                keys.append(item.thumbnail_key)
        return keys

    def __repr__(self) -> str:
        return f"<ShareRecord {self.share_id}: {self.title}>"


class SharedFile(Base):
    """File descriptor attached to a share record; immutable after creation."""

    __tablename__ = "shared_files"
    __table_args__ = (
        UniqueConstraint("share_record_id", "position", name="uq_shared_files_position"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    share_record_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("share_records.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_key: Mapped[str] = mapped_column(String(1024), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    file_kind: Mapped[FileKind] = mapped_column(
        Enum(FileKind), default=FileKind.other, nullable=False
    )
    thumbnail_key: Mapped[str | None] = mapped_column(String(1024))

    share: Mapped[ShareRecord] = relationship(back_populates="files")
