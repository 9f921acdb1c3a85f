from fastapi import APIRouter, Depends, Response
from pydantic import AliasChoices, Field

from devalyze.models.user import User
from devalyze.services import pages
from devalyze.services.auth import get_current_user
from devalyze.utils.validation import MAX_URL_LENGTH, CamelModel


router = APIRouter()


class PageLinkBody(CamelModel):
    # Older clients send LinkTitle / LinkUrl / socialIcon.
    title: str = Field(min_length=1, max_length=100, validation_alias=AliasChoices("title", "LinkTitle"))
    url: str = Field(max_length=MAX_URL_LENGTH, validation_alias=AliasChoices("url", "LinkUrl"))
    icon: str = Field("", validation_alias=AliasChoices("icon", "socialIcon"))
    order: int | None = None


class SavePageBody(CamelModel):
    username: str
    profile_name: str = Field("", max_length=100)
    bio: str = Field("", max_length=500)
    profile_image: str = ""
    theme: str | None = None
    links: list[PageLinkBody] = []


@router.post("")
def save_page(body: SavePageBody, response: Response, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Create or replace the current user's page (201 on first save)."""
    links = [link.model_dump(exclude_none=True) for link in body.links]
    page, created = pages.save_page(
        current_user,
        username=body.username,
        profile_name=body.profile_name,
        bio=body.bio,
        profile_image=body.profile_image,
        theme=body.theme,
        links=links,
    )
    if created:
        response.status_code = 201
    return {
        "message": "Page created successfully" if created else "Page updated successfully",
        "page": page.to_output(exclude=["view_history", "metadata"]),
        "url": pages.public_path(page.username),
    }


@router.get("/my-page")
def my_page(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: The current user's page, or `page: null` when none exists yet."""
    page = pages.get_my_page(current_user)
    if not page:
        return {"message": "No page found. Create one to get started!", "page": None}
    return {"page": page.to_output(exclude=["view_history", "metadata"])}


@router.get("/stats")
def stats(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: View and link counts for the current user's page."""
    return pages.page_stats(current_user)


@router.get("/check-username/{username}")
def check_username(username: str, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Whether the current user may take `username`."""
    return pages.check_username(current_user, username)


@router.delete("/my-page")
def delete_my_page(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Delete the current user's page."""
    page = pages.delete_my_page(current_user)
    return {"message": "Page deleted successfully", "username": page.username}


@router.get("/{username}")
def public_page(username: str) -> dict:
    """PUBLIC: A published page by username; each read counts as a view."""
    return pages.view_public_page(username)
