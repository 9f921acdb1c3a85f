from fastapi import APIRouter, Depends
from pydantic import Field

from devalyze.models.user import User
from devalyze.services import auth
from devalyze.services.auth import get_current_user
from devalyze.services.rate_limit import limit_requests
from devalyze.utils.validation import CamelModel


router = APIRouter()


@router.get("/me")
def me(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: The current user's profile."""
    return current_user.to_public()


class UpdateProfileBody(CamelModel):
    full_name: str | None = Field(None, min_length=1, max_length=100)
    surname: str | None = Field(None, max_length=100)
    other_names: str | None = Field(None, max_length=100)
    language: str | None = Field(None, max_length=50)
    country: str | None = Field(None, max_length=100)


@router.patch("/me")
def update_me(body: UpdateProfileBody, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Update profile fields; omitted fields stay as they are."""
    user = auth.update_profile(current_user, body.model_dump(exclude_unset=True))
    return user.to_public()


class ChangePasswordBody(CamelModel):
    current_password: str = Field(min_length=1)
    new_password: str


@router.patch("/me/password", dependencies=[Depends(limit_requests("password"))])
def change_password(body: ChangePasswordBody, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED | RATE-LIMITED: Change password; every previously issued token stops working."""
    session = auth.change_password(current_user, body.current_password, body.new_password)
    return {
        "success": True,
        "message": "Password updated successfully",
        "token": session.token,
        "tokenType": session.token_type,
        "expiresIn": session.expires_in,
    }
