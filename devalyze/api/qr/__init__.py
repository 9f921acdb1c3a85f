from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import Field

from devalyze.api.url import request_base_url
from devalyze.models.user import User
from devalyze.services import qr
from devalyze.services.auth import get_current_user
from devalyze.services.rate_limit import limit_requests
from devalyze.utils.validation import MAX_URL_LENGTH, CamelModel


router = APIRouter()


class CreateQRBody(CamelModel):
    long_url: str = Field(max_length=MAX_URL_LENGTH)


@router.post("", status_code=201, dependencies=[Depends(limit_requests("qr"))])
def create_qr(
    body: CreateQRBody,
    request: Request,
    current_user: User = Depends(get_current_user),
) -> dict:
    """PROTECTED | RATE-LIMITED: Store a QR code that counts scans before redirecting."""
    record = qr.create_qr(body.long_url.strip(), current_user, base_url=request_base_url(request))
    return record.to_output(exclude=["scan_history", "metadata"])


@router.get("")
def list_qrs(current_user: User = Depends(get_current_user)) -> list[dict]:
    """PROTECTED: The current user's QR codes, newest first."""
    return [record.to_output(exclude=["scan_history", "metadata"]) for record in qr.list_qrs(current_user)]


@router.get("/redirect/{qr_id}")
def scan(qr_id: str) -> RedirectResponse:
    """PUBLIC: Scan target encoded in every stored QR image."""
    return RedirectResponse(qr.record_scan(qr_id), status_code=302)


@router.delete("/{qr_id}")
def delete_qr(qr_id: str, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Delete one of the current user's QR codes."""
    record = qr.delete_qr(qr_id, current_user)
    return {"message": "QR Code deleted successfully", "id": str(record.id)}
