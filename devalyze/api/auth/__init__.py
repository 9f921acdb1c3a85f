from fastapi import APIRouter, Depends, Response
from pydantic import EmailStr, Field

from devalyze.models.user import User
from devalyze.services import auth
from devalyze.services.auth import IdentityVerifier, SessionToken, get_current_user, get_identity_verifier
from devalyze.services.csrf import clear_token
from devalyze.services.rate_limit import limit_requests
from devalyze.utils.config import settings
from devalyze.utils.validation import CamelModel


router = APIRouter(dependencies=[Depends(limit_requests("auth"))])


def session_response(user: User, session: SessionToken, message: str, **extra) -> dict:
    body = {
        "success": True,
        "message": message,
        "token": session.token,
        "tokenType": session.token_type,
        "expiresIn": session.expires_in,
        "user": user.to_public(),
    }
    body.update(extra)
    return body


def dev_echo(key: str, raw_token: str | None) -> dict:
    # Email delivery is out of scope; local builds hand the token back so flows can be exercised.
    if raw_token and settings.is_development:
        return {key: raw_token}
    return {}


class RegisterBody(CamelModel):
    full_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str


@router.post("/register", status_code=201)
def register(body: RegisterBody) -> dict:
    """PUBLIC | RATE-LIMITED: Create a password account and log it in."""
    user, session = auth.register(body.full_name, body.email, body.password)
    verification = auth.issue_verification_token(user)
    return session_response(user, session, "User registered successfully", **dev_echo("verificationToken", verification))


class LoginBody(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


@router.post("/login")
def login(body: LoginBody) -> dict:
    """PUBLIC | RATE-LIMITED: Password login with lockout after repeated failures."""
    user, session = auth.authenticate(body.email, body.password)
    return session_response(user, session, "Logged in successfully")


@router.post("/refresh")
def refresh(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Exchange a still valid session token for a fresh one."""
    return session_response(current_user, auth.issue_session_token(current_user), "Token refreshed")


class GoogleBody(CamelModel):
    token: str = Field(min_length=1)


@router.post("/google")
def google(body: GoogleBody, verifier: IdentityVerifier = Depends(get_identity_verifier)) -> dict:
    """PUBLIC | RATE-LIMITED: Sign in or sign up with a Google ID token."""
    user, session, is_new = auth.authenticate_federated(body.token, verifier)
    message = "Account created successfully with Google" if is_new else "Successfully authenticated with Google"
    return session_response(user, session, message, isNewUser=is_new)


@router.post("/logout")
def logout(response: Response, current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Invalidate all of the user's tokens and drop the CSRF cookie."""
    auth.logout(current_user)
    clear_token(response)
    return {"success": True, "message": "Logged out successfully"}


class TokenBody(CamelModel):
    token: str = Field(min_length=1)


@router.post("/verify-email")
def verify_email(body: TokenBody) -> dict:
    """PUBLIC: Confirm an email address with the token sent out of band."""
    user = auth.confirm_email(body.token)
    return {"success": True, "message": "Email verified successfully", "user": user.to_public()}


@router.post("/verify-email/resend")
def resend_verification(current_user: User = Depends(get_current_user)) -> dict:
    """PROTECTED: Issue a new verification token (replaces any earlier one)."""
    if current_user.is_verified:
        return {"success": True, "message": "Email already verified"}
    raw = auth.issue_verification_token(current_user)
    return {"success": True, "message": "Verification email sent", **dev_echo("verificationToken", raw)}


class ForgotPasswordBody(CamelModel):
    email: EmailStr


@router.post("/forgot-password", dependencies=[Depends(limit_requests("reset"))])
def forgot_password(body: ForgotPasswordBody) -> dict:
    """PUBLIC | RATE-LIMITED: Start a password reset; answers alike for known and unknown emails."""
    raw = auth.issue_reset_token(body.email)
    return {
        "success": True,
        "message": "If an account exists for that email, a reset link has been sent",
        **dev_echo("resetToken", raw),
    }


class ResetPasswordBody(CamelModel):
    token: str = Field(min_length=1)
    new_password: str


@router.post("/reset-password", dependencies=[Depends(limit_requests("reset"))])
def reset_password(body: ResetPasswordBody) -> dict:
    """PUBLIC | RATE-LIMITED: Set a new password with a reset token; signs out every session."""
    auth.reset_password(body.token, body.new_password)
    return {"success": True, "message": "Password reset successfully"}
