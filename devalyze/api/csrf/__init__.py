from fastapi import APIRouter, Depends

from devalyze.services.csrf import csrf_protect


router = APIRouter()


@router.get("/csrf-token")
def csrf_token(token: str = Depends(csrf_protect)) -> dict:
    """PUBLIC: Hand out the session's CSRF token, setting the cookie on first contact."""
    return {"csrfToken": token, "message": "CSRF token generated successfully"}
