import logging
import re
import secrets
from typing import Any

from mongoengine.errors import NotUniqueError

from devalyze.models.base import TimestampEvent
from devalyze.models.page import USERNAME_PATTERN, Page, PageLink
from devalyze.models.user import User
from devalyze.utils.base import PageTheme, utcnow
from devalyze.utils.errors import ConflictError, NotFound, ValidationError
from devalyze.utils.validation import is_http_url


logger = logging.getLogger(__name__)

USERNAME_RE = re.compile(USERNAME_PATTERN)
USERNAME_MIN, USERNAME_MAX = 3, 30

# Path segments under /api/pages that a public username would shadow.
RESERVED_USERNAMES = frozenset({"my-page", "stats", "check-username", "u"})


def public_path(username: str) -> str:
    return f"/@{username}"


def username_problem(username: str) -> str | None:
    """Return why `username` cannot be used as a page handle, or None."""
    if not USERNAME_RE.match(username):
        return "Invalid format (use lowercase letters, numbers, _ or - only)"
    if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
        return f"Username must be {USERNAME_MIN}-{USERNAME_MAX} characters"
    if username in RESERVED_USERNAMES:
        return "Username is reserved"
    return None


def _username_taken(username: str) -> ConflictError:
    return ConflictError(
        "Username already taken",
        code="USERNAME_TAKEN",
        extra={"suggestion": f"{username}_{secrets.randbelow(1000)}"},
    )


def _build_links(links: list[dict[str, Any]]) -> list[PageLink]:
    out = []
    for i, link in enumerate(links):
        url = (link.get("url") or "").strip()
        if not is_http_url(url):
            raise ValidationError.for_field(f"links.{i}.url", "Link URL must be an absolute http(s) URL")
        out.append(PageLink(
            title=link["title"].strip(),
            url=url,
            icon=link.get("icon") or "",
            order=link.get("order", i),
        ))
    return sorted(out, key=lambda entry: entry.order)


def save_page(
    user: User,
    username: str,
    profile_name: str = "",
    bio: str = "",
    profile_image: str = "",
    theme: str | None = None,
    links: list[dict[str, Any]] | None = None,
) -> tuple[Page, bool]:
    """Create or replace the user's single page and publish it. Returns (page, created)."""
    username = (username or "").strip().lower()
    problem = username_problem(username)
    if problem:
        raise ValidationError.for_field("username", problem)
    theme = theme or PageTheme.LAKE_WHITE.value
    if theme not in PageTheme.values():
        raise ValidationError.for_field("theme", f"Theme must be one of {', '.join(PageTheme.values())}")
    entries = _build_links(links or [])

    holder: Page | None = Page.objects(username=username).only("user").first()
    if holder and holder.user.id != user.id:
        raise _username_taken(username)

    page: Page | None = Page.objects(user=user).first()
    created = page is None
    if created:
        page = Page(user=user)
    page.username = username
    page.profile_name = profile_name or ""
    page.bio = bio or ""
    page.profile_image = profile_image or ""
    page.theme = theme
    page.links = entries
    page.is_published = True
    try:
        page.save()
    except NotUniqueError:
        # Concurrent save claimed the username (or this user's page) first.
        raise _username_taken(username)

    logger.info("Page %s for user %s", "created" if created else "updated", user.id)
    return page, created


def get_my_page(user: User) -> Page | None:
    return Page.objects(user=user).exclude("view_history").first()


def check_username(user: User, username: str) -> dict[str, Any]:
    username = username.strip().lower()
    problem = username_problem(username)
    if problem:
        return {"available": False, "username": username, "reason": problem}
    page: Page | None = Page.objects(username=username).only("user").first()
    available = page is None or page.user.id == user.id
    return {
        "available": available,
        "username": username,
        "reason": None if available else "Username already taken",
    }


def page_stats(user: User) -> dict[str, Any]:
    page = get_my_page(user)
    if not page:
        return {"exists": False, "stats": None}
    return {
        "exists": True,
        "stats": {
            "totalViews": page.views,
            "totalLinks": len(page.links),
            "username": page.username,
            "profileName": page.profile_name,
            "bio": page.bio,
            "profileImage": page.profile_image,
            "theme": page.theme,
            "url": public_path(page.username),
            "isPublished": page.is_published,
            "createdAt": page.to_output(fields=["created_at"])["createdAt"],
            "updatedAt": page.to_output(fields=["updated_at"])["updatedAt"],
        },
    }


def delete_my_page(user: User) -> Page:
    page: Page | None = Page.objects(user=user).first()
    if not page:
        raise NotFound("No page found to delete")
    page.delete()
    logger.info("Page deleted for user %s", user.id)
    return page


def view_public_page(username: str) -> dict[str, Any]:
    """Return the published page for `username`, counting the view in the same atomic update."""
    page: Page | None = Page.objects(username=username.strip().lower(), is_published=True).modify(
        new=True,
        inc__views=1,
        push__view_history=TimestampEvent(timestamp=utcnow()),
    )
    if page is None:
        raise NotFound("Page not found")
    return page.to_public()
