"""Share domain errors.

Every error carries a stable ``code`` and the HTTP ``status_code`` the API
layer renders it with. Access-gate denials keep their specific reason so
clients can tell an access-code prompt from a password prompt or an
expired link.
"""

from __future__ import annotations

import enum
from typing import Any


class DenialReason(enum.Enum):
    not_found = "not_found"
    expired = "expired"
    download_limit_reached = "download_limit_reached"
    access_code_required = "access_code_required"
    access_code_invalid = "access_code_invalid"
    password_required = "password_required"
    password_invalid = "password_invalid"


DENIAL_STATUS: dict[DenialReason, int] = {
    DenialReason.not_found: 404,
    DenialReason.expired: 410,
    DenialReason.download_limit_reached: 410,
    DenialReason.access_code_required: 401,
    DenialReason.access_code_invalid: 403,
    DenialReason.password_required: 401,
    DenialReason.password_invalid: 401,
}

DENIAL_MESSAGES: dict[DenialReason, str] = {
    DenialReason.not_found: "Share not found",
    DenialReason.expired: "This share has expired",
    DenialReason.download_limit_reached: "Maximum downloads reached",
    DenialReason.access_code_required: "Access code required",
    DenialReason.access_code_invalid: "Invalid access code",
    DenialReason.password_required: "Password required",
    DenialReason.password_invalid: "Invalid password",
}


class ShareError(Exception):
    """Base class for share failures surfaced to callers."""

    code = "share_error"
    status_code = 400

    def __init__(self, message: str | None = None, details: Any = None) -> None:
        self.message = message or self.__class__.__doc__ or self.code
        self.details = details
        super().__init__(self.message)


class ShareNotFoundError(ShareError):
    """Share not found"""

    code = "not_found"
    status_code = 404


class ShareAccessDenied(ShareError):
    """The access gate refused the request."""

    def __init__(self, reason: DenialReason) -> None:
        self.reason = reason
        self.code = reason.value
        self.status_code = DENIAL_STATUS[reason]
        super().__init__(DENIAL_MESSAGES[reason])


class ShareOwnershipError(ShareError):
    """Not authorized to manage this share"""

    code = "unauthorized"
    status_code = 403


class ShareValidationError(ShareError, ValueError):
    """Share request is invalid"""

    code = "validation_error"
    status_code = 400


class ShareStoreUnavailableError(ShareError):
    """Share store is temporarily unavailable"""

    code = "infrastructure_error"
    status_code = 503


class LinkIssueError(ShareError):
    """Download links could not be issued for every file"""

    code = "link_issue_failed"
    status_code = 502

    def __init__(self, failures: list[dict[str, str]]) -> None:
        self.failures = failures
        super().__init__(details={"files": failures})


class ShareRenderError(ShareError):
    """QR code could not be rendered"""

    code = "render_failed"
    status_code = 500
