import base64
import io

import qrcode
from bson.objectid import ObjectId
from qrcode.exceptions import DataOverflowError
from qrcode.image.pil import PilImage

from devalyze.models.base import TimestampEvent
from devalyze.models.qr_code import QRCode
from devalyze.models.user import User
from devalyze.utils.base import utcnow
from devalyze.utils.config import settings
from devalyze.utils.errors import EncodingFailed, NotFound, NotFoundOrForbidden
from devalyze.utils.validation import is_http_url


ERROR_CORRECTION = {
    "L": qrcode.constants.ERROR_CORRECT_L,
    "M": qrcode.constants.ERROR_CORRECT_M,
    "Q": qrcode.constants.ERROR_CORRECT_Q,
    "H": qrcode.constants.ERROR_CORRECT_H,
}


def encode(url: str) -> str:
    """Render `url` as a PNG QR code and return it as a data URL.

    Pure and deterministic for a given input and rendering settings.
    """
    if not is_http_url(url):
        raise EncodingFailed(details=[{"field": "longUrl", "message": "Must be an absolute http(s) URL"}])

    level = ERROR_CORRECTION.get(settings.qr_error_correction.upper(), qrcode.constants.ERROR_CORRECT_M)
    qr = qrcode.QRCode(box_size=settings.qr_box_size, border=settings.qr_border, error_correction=level)
    qr.add_data(url)
    try:
        qr.make(fit=True)
    except DataOverflowError:
        raise EncodingFailed("URL is too long to fit in a QR code")

    img = qr.make_image(image_factory=PilImage)
    buffer = io.BytesIO()
    img.save(buffer)
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def scan_url(base_url: str, qr_id: str) -> str:
    base = (settings.public_base_url or base_url).rstrip("/")
    return f"{base}/api/qr/redirect/{qr_id}"


def create_qr(long_url: str, owner: User, base_url: str) -> QRCode:
    """Store a QR code whose image points at the scan-tracking redirect, not at `long_url` itself."""
    if not is_http_url(long_url):
        raise EncodingFailed(details=[{"field": "longUrl", "message": "Must be an absolute http(s) URL"}])
    qr_id = ObjectId()
    record = QRCode(
        id=qr_id,
        owner=owner,
        long_url=long_url,
        qr_code_url=encode(scan_url(base_url, str(qr_id))),
        scans=0,
    )
    record.save(force_insert=True)
    return record


def list_qrs(owner: User) -> list[QRCode]:
    return list(QRCode.objects(owner=owner).exclude("scan_history").order_by("-created_at"))


def delete_qr(qr_id: str, owner: User) -> QRCode:
    if not ObjectId.is_valid(qr_id):
        raise NotFoundOrForbidden("QR Code not found")
    record: QRCode | None = QRCode.objects(id=qr_id, owner=owner).first()
    if not record:
        raise NotFoundOrForbidden("QR Code not found")
    record.delete()
    return record


def record_scan(qr_id: str) -> str:
    """Count a scan atomically and return the destination."""
    if not ObjectId.is_valid(qr_id):
        raise NotFound("QR Code not found")
    record: QRCode | None = QRCode.objects(id=qr_id).modify(
        new=True,
        inc__scans=1,
        push__scan_history=TimestampEvent(timestamp=utcnow()),
    )
    if record is None:
        raise NotFound("QR Code not found")
    return record.long_url
