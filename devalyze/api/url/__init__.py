from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import Field

from devalyze.models.user import User
from devalyze.services import links, qr
from devalyze.services.auth import get_current_user
from devalyze.services.rate_limit import limit_requests
from devalyze.utils.base import SortField, SortOrder
from devalyze.utils.validation import MAX_URL_LENGTH, CamelModel


router = APIRouter()


def request_base_url(request: Request) -> str:
    return f"{request.url.scheme}://{request.url.netloc}"


class ShortenBody(CamelModel):
    long_url: str = Field(max_length=MAX_URL_LENGTH)
    custom_alias: str | None = None


@router.post("/shorten", status_code=201, dependencies=[Depends(limit_requests("shorten"))])
def shorten(
    body: ShortenBody,
    request: Request,
    current_user: User = Depends(get_current_user),
) -> dict:
    """PROTECTED | RATE-LIMITED: Create a short link, optionally under a custom alias."""
    alias = (body.custom_alias or "").strip() or None
    link, short_url = links.create(body.long_url, current_user, alias=alias, base_url=request_base_url(request))
    return {"shortUrl": short_url, "shortCode": link.short_code, "url": links.to_output(link, request_base_url(request))}


@router.get("/my-urls")
def my_urls(
    request: Request,
    limit: int = Query(25, ge=1, le=100),
    sort: SortField = SortField.CREATED_AT,
    order: SortOrder = SortOrder.DESC,
    search: str | None = Query(None, max_length=100),
    current_user: User = Depends(get_current_user),
) -> list[dict]:
    """PROTECTED: List the current user's links."""
    base_url = request_base_url(request)
    found = links.list_links(current_user, limit=limit, sort=sort.value, order=order.value, search=search)
    return [links.to_output(link, base_url) for link in found]


class QRBody(CamelModel):
    long_url: str = Field(max_length=MAX_URL_LENGTH)


@router.post("/qr", dependencies=[Depends(limit_requests("qr"))])
def encode_qr(body: QRBody) -> dict:
    """PUBLIC | RATE-LIMITED: Encode a URL as a QR code image without storing anything."""
    return {"qrCodeUrl": qr.encode(body.long_url.strip())}


@router.delete("/{link_id}")
def delete_url(
    link_id: str,
    request: Request,
    current_user: User = Depends(get_current_user),
) -> dict:
    """PROTECTED: Delete one of the current user's links."""
    link = links.delete(link_id, current_user)
    return {"message": "URL deleted successfully", "url": links.to_output(link, request_base_url(request))}


@router.get("/{short_code}")
def redirect(short_code: str) -> RedirectResponse:
    """PUBLIC: Follow a short link; every hit is counted."""
    return RedirectResponse(links.resolve(short_code), status_code=302)
