"""Share URLs, social share text, QR codes and temporary download links."""

from __future__ import annotations

import base64
import io
import logging
from dataclasses import dataclass
from urllib.parse import quote

from sharepod.metrics import STORAGE_FAILURES
from sharepod.models.share import ShareRecord
from sharepod.services.exceptions import LinkIssueError, ShareRenderError
from sharepod.services.object_storage import ObjectStorageError, StorageService

logger = logging.getLogger(__name__)

BRAND = "SharePod"


@dataclass(frozen=True)
class DownloadLink:
    file_id: str
    file_name: str
    size: int
    mime_type: str
    url: str
    expires_in: int


class LinkIssuer:
    def __init__(
        self,
        storage: StorageService,
        base_url: str,
        presign_ttl_seconds: int = 300,
    ) -> None:
        self.storage = storage
        self.base_url = base_url.rstrip("/")
        self.presign_ttl_seconds = presign_ttl_seconds

    def share_url(self, share_id: str) -> str:
        return f"{self.base_url}/share/{share_id}"

    def share_text(self, record: ShareRecord, url: str) -> str:
        lines = [record.title, "", f"Download link: {url}"]
        if record.access_code:
            lines.append(f"Access code: {record.access_code}")
        if record.is_password_protected:
            lines.append("Password required")
        lines.extend(["", f"Shared via {BRAND}"])
        return "\n".join(lines)

    def social_links(self, record: ShareRecord, url: str) -> dict[str, str]:
        text = self.share_text(record, url)
        short = f"{record.title}\n{url}"
        if record.access_code:
            short += f"\nAccess code: {record.access_code}"
        subject = quote(f"File shared: {record.title}")
        return {
            "whatsapp": f"https://wa.me/?text={quote(text)}",
            "email": f"mailto:?subject={subject}&body={quote(text)}",
            "twitter": f"https://twitter.com/intent/tweet?text={quote(short)}",
            "facebook": f"https://www.facebook.com/sharer/sharer.php?u={quote(url, safe='')}",
            "telegram": (
                f"https://t.me/share/url?url={quote(url, safe='')}&text={quote(short)}"
            ),
        }

    def qr_code_data_url(self, url: str) -> str:
        """Render ``url`` as a high error-correction SVG QR code data URL."""
        try:
            import qrcode
            from qrcode.image.svg import SvgPathImage
        except ImportError as exc:
            raise ShareRenderError("qrcode is required for QR rendering") from exc
        try:
            qr = qrcode.QRCode(
                error_correction=qrcode.ERROR_CORRECT_H,
                box_size=10,
                border=4,
                image_factory=SvgPathImage,
            )
            qr.add_data(url)
            qr.make(fit=True)
            buffer = io.BytesIO()
            qr.make_image().save(buffer)
        except Exception as exc:
            raise ShareRenderError() from exc
        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return f"data:image/svg+xml;base64,{encoded}"

    def issue_download_links(self, record: ShareRecord) -> list[DownloadLink]:
        """Presign one fresh URL per file; any failure fails the whole batch."""
        links: list[DownloadLink] = []
        failures: list[dict[str, str]] = []
        for item in record.files:
            try:
                url = self.storage.presign(
                    item.storage_key, self.presign_ttl_seconds, item.original_name
                )
            except ObjectStorageError as exc:
                STORAGE_FAILURES.labels(operation="presign").inc()
                logger.error(
                    "share_presign_failed share_id=%s file_id=%s key=%s error=%s",
                    record.share_id,
                    item.id,
                    item.storage_key,
                    exc,
                )
                failures.append(
                    {"file_id": str(item.id), "file_name": item.original_name, "error": str(exc)}
                )
                continue
            links.append(
                DownloadLink(
                    file_id=str(item.id),
                    file_name=item.original_name,
                    size=item.size,
                    mime_type=item.mime_type,
                    url=url,
                    expires_in=self.presign_ttl_seconds,
                )
            )
        if failures:
            raise LinkIssueError(failures)
        return links
