"""Share link endpoints: owner management and public view/download."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from sharepod.api.deps import ShareServices, get_current_owner, get_db, get_share_services
from sharepod.models.share import ShareRecord
from sharepod.schemas.share import (
    DownloadLinkRead,
    ShareCreatedResponse,
    ShareDeleteResponse,
    ShareDownloadRequest,
    ShareDownloadResponse,
    ShareListItem,
    ShareOwnerRead,
    SharePublicRead,
    ShareQRCodeResponse,
    SharedFileRead,
)
from sharepod.services.exceptions import ShareRenderError, ShareValidationError
from sharepod.services.shares import ShareOptions, UploadedFile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/shares", tags=["shares"])


def _read_upload(item: UploadFile, max_bytes: int) -> UploadedFile:
    """Reads at most ``max_bytes + 1`` bytes of the upload."""
    name = item.filename or "file"
    if item.size is not None and item.size > max_bytes:
        raise ShareValidationError(f"File {name!r} exceeds maximum allowed size")
    data = item.file.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise ShareValidationError(f"File {name!r} exceeds maximum allowed size")
    return UploadedFile(filename=name, content_type=item.content_type, data=data)


def _owner_read(record: ShareRecord, services: ShareServices) -> dict:
    return {
        "id": record.id,
        "share_id": record.share_id,
        "access_code": record.access_code,
        "share_url": services.issuer.share_url(record.share_id),
        "title": record.title,
        "description": record.description,
        "files": [SharedFileRead.model_validate(item) for item in record.files],
        "is_public": record.is_public,
        "is_password_protected": record.is_password_protected,
        "expires_at": record.expires_at,
        "max_downloads": record.max_downloads,
        "download_count": record.download_count,
        "view_count": record.view_count,
        "created_at": record.created_at,
    }


@router.post("", response_model=ShareCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_share(
    files: list[UploadFile] | None = File(default=None),
    title: str = Form(default=""),
    description: str | None = Form(default=None),
    is_public: bool = Form(default=False),
    password_protected: bool = Form(default=False),
    password: str | None = Form(default=None),
    access_code: str | None = Form(default=None),
    access_code_enabled: bool = Form(default=True),
    expiry_days: int | None = Form(default=None),
    max_downloads: int = Form(default=0),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    services: ShareServices = Depends(get_share_services),
):
    if expiry_days is not None and expiry_days < 0:
        raise ShareValidationError("expiry_days must be zero or positive")
    expires_at = None
    if expiry_days:
        expires_at = datetime.now(UTC) + timedelta(days=expiry_days)

    max_bytes = services.lifecycle.max_file_bytes
    uploads = [_read_upload(item, max_bytes) for item in files or []]
    record = services.lifecycle.upload_and_create(
        db,
        owner_id=owner_id,
        title=title,
        uploads=uploads,
        options=ShareOptions(
            description=description,
            is_public=is_public,
            password_protected=password_protected,
            password=password,
            access_code=access_code,
            access_code_enabled=access_code_enabled,
            expires_at=expires_at,
            max_downloads=max_downloads,
        ),
    )

    payload = _owner_read(record, services)
    share_url = payload["share_url"]
    try:
        qr_code = services.issuer.qr_code_data_url(share_url)
    except ShareRenderError as exc:
        logger.error("share_qr_failed share_id=%s error=%s", record.share_id, exc)
        qr_code = None
    payload.update(
        qr_code=qr_code,
        share_text=services.issuer.share_text(record, share_url),
        share_links=services.issuer.social_links(record, share_url),
    )
    return payload


@router.get("", response_model=list[ShareOwnerRead])
def list_my_shares(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    services: ShareServices = Depends(get_share_services),
):
    records = services.lifecycle.list_for_owner(db, owner_id, limit=limit, offset=offset)
    return [_owner_read(record, services) for record in records]


@router.get("/public", response_model=list[ShareListItem])
def list_public_shares(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    services: ShareServices = Depends(get_share_services),
):
    records = services.lifecycle.list_public(db, limit=limit, offset=offset)
    return [
        ShareListItem(
            share_id=record.share_id,
            title=record.title,
            description=record.description,
            file_count=len(record.files),
            is_password_protected=record.is_password_protected,
            requires_access_code=record.has_access_code,
            expires_at=record.expires_at,
            created_at=record.created_at,
        )
        for record in records
    ]


@router.get("/{share_id}", response_model=SharePublicRead)
def view_share(
    share_id: str,
    access_code: str | None = Query(default=None),
    access_code_camel: str | None = Query(default=None, alias="accessCode"),
    db: Session = Depends(get_db),
    services: ShareServices = Depends(get_share_services),
):
    return services.access.view(db, share_id, access_code or access_code_camel)


@router.post("/{share_id}/download", response_model=ShareDownloadResponse)
def download_share(
    share_id: str,
    payload: ShareDownloadRequest | None = Body(default=None),
    db: Session = Depends(get_db),
    services: ShareServices = Depends(get_share_services),
):
    credentials = payload or ShareDownloadRequest()
    grant = services.access.download(
        db, share_id, access_code=credentials.access_code, password=credentials.password
    )
    return ShareDownloadResponse(
        share_id=grant.share_id,
        files=[DownloadLinkRead.model_validate(link) for link in grant.links],
        expires_in=grant.expires_in,
    )


@router.delete("/{record_id}", response_model=ShareDeleteResponse)
def delete_share(
    record_id: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    services: ShareServices = Depends(get_share_services),
):
    report = services.lifecycle.delete(db, record_id, owner_id)
    return ShareDeleteResponse(
        message="Share deleted successfully",
        record_id=report.record_id,
        share_id=report.share_id,
        deleted_objects=len(report.deleted_keys),
        failed_objects=report.failed_keys,
    )


@router.get("/{record_id}/qrcode", response_model=ShareQRCodeResponse)
def share_qr_code(
    record_id: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner),
    services: ShareServices = Depends(get_share_services),
):
    record = services.lifecycle.get_owned(db, record_id, owner_id)
    share_url = services.issuer.share_url(record.share_id)
    return ShareQRCodeResponse(
        share_url=share_url,
        qr_code=services.issuer.qr_code_data_url(share_url),
    )
