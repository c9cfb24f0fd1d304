"""Pydantic schemas for share links.

No schema here exposes ``password_hash``.
"""

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from sharepod.models.share import FileKind


class SharedFileRead(BaseModel):
    id: UUID
    position: int
    original_name: str
    size: int
    mime_type: str
    file_kind: FileKind

    model_config = {"from_attributes": True}


class SharePublicRead(BaseModel):
    """What anyone holding the link (and code) may see."""

    share_id: str
    title: str
    description: str | None
    files: list[SharedFileRead]
    is_password_protected: bool
    expires_at: datetime | None
    max_downloads: int
    download_count: int
    view_count: int
    created_at: datetime

    model_config = {"from_attributes": True}


class ShareListItem(BaseModel):
    share_id: str
    title: str
    description: str | None
    file_count: int
    is_password_protected: bool
    requires_access_code: bool
    expires_at: datetime | None
    created_at: datetime


class ShareOwnerRead(BaseModel):
    """Owner view of a share, including its access code and counters."""

    id: UUID
    share_id: str
    access_code: str | None
    share_url: str
    title: str
    description: str | None
    files: list[SharedFileRead]
    is_public: bool
    is_password_protected: bool
    expires_at: datetime | None
    max_downloads: int
    download_count: int
    view_count: int
    created_at: datetime


class ShareCreatedResponse(ShareOwnerRead):
    qr_code: str | None = None
    share_text: str
    share_links: dict[str, str]


class ShareDownloadRequest(BaseModel):
    """Credentials for a download; both are optional and checked by the gate."""

    access_code: str | None = Field(
        default=None, validation_alias=AliasChoices("access_code", "accessCode")
    )
    password: str | None = None


class DownloadLinkRead(BaseModel):
    file_id: str
    file_name: str
    size: int
    mime_type: str
    url: str
    expires_in: int

    model_config = {"from_attributes": True}


class ShareDownloadResponse(BaseModel):
    share_id: str
    files: list[DownloadLinkRead]
    expires_in: int


class ShareDeleteResponse(BaseModel):
    message: str
    record_id: str
    share_id: str
    deleted_objects: int
    failed_objects: list[str]


class ShareQRCodeResponse(BaseModel):
    share_url: str
    qr_code: str
