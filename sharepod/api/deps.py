from dataclasses import dataclass
from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from sharepod.config import settings
from sharepod.db import get_db
from sharepod.services.access_gate import AccessGate
from sharepod.services.auth import decode_access_token, extract_bearer_token
from sharepod.services.counters import ShareCounterService
from sharepod.services.credentials import CredentialVerifier
from sharepod.services.links import LinkIssuer
from sharepod.services.object_storage import get_share_storage
from sharepod.services.share_access import ShareAccessService
from sharepod.services.shares import ShareLifecycleService


@dataclass(frozen=True)
class ShareServices:
    lifecycle: ShareLifecycleService
    access: ShareAccessService
    issuer: LinkIssuer


@lru_cache(maxsize=1)
def get_share_services() -> ShareServices:
    """Wire the share services from settings once per process."""
    storage = get_share_storage()
    verifier = CredentialVerifier(rounds=settings.password_hash_rounds)
    issuer = LinkIssuer(
        storage,
        base_url=settings.public_base_url,
        presign_ttl_seconds=settings.presign_ttl_seconds,
    )
    lifecycle = ShareLifecycleService(
        storage,
        verifier,
        access_code_length=settings.access_code_length,
        max_files=settings.share_max_files,
        max_file_bytes=settings.share_max_file_bytes,
    )
    access = ShareAccessService(AccessGate(verifier), ShareCounterService(), issuer)
    return ShareServices(lifecycle=lifecycle, access=access, issuer=issuer)


def require_owner_auth(authorization: str | None = Header(default=None)) -> dict:
    token = extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")
    payload = decode_access_token(token)
    return {"owner_id": str(payload["sub"])}


def get_current_owner(auth=Depends(require_owner_auth)) -> str:
    return auth["owner_id"]


__all__ = [
    "ShareServices",
    "get_current_owner",
    "get_db",
    "get_share_services",
    "require_owner_auth",
]
