import logging
import re

from bson.objectid import ObjectId
from mongoengine.errors import NotUniqueError

from devalyze.models.base import TimestampEvent
from devalyze.models.short_link import ShortLink
from devalyze.models.user import User
from devalyze.services import identifier
from devalyze.utils.base import SortField, SortOrder, utcnow
from devalyze.utils.config import settings
from devalyze.utils.errors import (
    AliasTaken,
    InvalidAlias,
    NotFound,
    NotFoundOrForbidden,
    TransientInfrastructureError,
    ValidationError,
)
from devalyze.utils.validation import is_http_url


logger = logging.getLogger(__name__)

ALIAS_PATTERN = re.compile(r"^[A-Za-z0-9]{3,50}$")

SORT_FIELDS = {
    SortField.CREATED_AT.value: "created_at",
    SortField.CLICKS.value: "clicks",
    SortField.LONG_URL.value: "long_url",
}


def compose_short_url(base_url: str, code: str) -> str:
    base = (settings.public_base_url or base_url).rstrip("/")
    return f"{base}/{code}"


def validate_destination(url: str) -> str:
    url = (url or "").strip()
    if not is_http_url(url):
        raise ValidationError.for_field("longUrl", "Must be an absolute http(s) URL of at most 2048 characters")
    return url


def validate_alias(alias: str) -> str:
    if not ALIAS_PATTERN.match(alias) or identifier.is_reserved(alias):
        raise InvalidAlias(details=[{"field": "customAlias", "message": InvalidAlias.message}])
    return alias


def create(destination_url: str, owner: User, alias: str | None = None, base_url: str = "") -> tuple[ShortLink, str]:
    """Persist a new mapping and return it with its composed short URL.

    Aliases are globally unique regardless of owner. Generated codes are
    retried on a unique index violation; the index is the authority, the
    pre-check only saves a round trip in the common case.
    """
    long_url = validate_destination(destination_url)

    if alias:
        code = validate_alias(alias)
        if ShortLink.objects(short_code=code).first():
            raise AliasTaken()
        link = ShortLink(long_url=long_url, short_code=code, owner=owner)
        try:
            link.save(force_insert=True)
        except NotUniqueError:
            raise AliasTaken()
        return link, compose_short_url(base_url, code)

    for attempt in range(1, settings.short_code_max_attempts + 1):
        code = identifier.generate()
        if ShortLink.objects(short_code=code).only("id").first():
            continue
        link = ShortLink(long_url=long_url, short_code=code, owner=owner)
        try:
            link.save(force_insert=True)
        except NotUniqueError:
            logger.warning("Short code collision on insert (attempt %s)", attempt)
            continue
        return link, compose_short_url(base_url, code)

    logger.error("Could not allocate a unique short code after %s attempts", settings.short_code_max_attempts)
    raise TransientInfrastructureError("Could not allocate a short code, please retry")


def resolve(code: str) -> str:
    """Return the destination for `code`, counting the click in the same atomic update."""
    link: ShortLink | None = ShortLink.objects(short_code=code).modify(
        new=True,
        inc__clicks=1,
        push__click_history=TimestampEvent(timestamp=utcnow()),
    )
    if link is None:
        raise NotFound("URL not found")
    return link.long_url


def list_links(
    owner: User,
    limit: int = 25,
    sort: str = SortField.CREATED_AT.value,
    order: str = SortOrder.DESC.value,
    search: str | None = None,
) -> list[ShortLink]:
    queryset = ShortLink.objects(owner=owner).exclude("click_history")
    if search:
        # icontains escapes the term, so user input is matched literally
        queryset = queryset.filter(long_url__icontains=search.strip())
    prefix = "-" if order == SortOrder.DESC.value else "+"
    return list(queryset.order_by(f"{prefix}{SORT_FIELDS[sort]}").limit(limit))


def delete(link_id: str, owner: User) -> ShortLink:
    if not ObjectId.is_valid(link_id):
        raise NotFoundOrForbidden("URL not found")
    link: ShortLink | None = ShortLink.objects(id=link_id, owner=owner).first()
    if not link:
        raise NotFoundOrForbidden("URL not found")
    link.delete()
    return link


def to_output(link: ShortLink, base_url: str) -> dict:
    output = link.to_output(exclude=["click_history", "metadata"])
    output["shortUrl"] = compose_short_url(base_url, link.short_code)
    return output
