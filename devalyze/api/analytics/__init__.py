from fastapi import APIRouter, Depends

from devalyze.models.user import User
from devalyze.services import analytics
from devalyze.services.auth import get_current_user


router = APIRouter()


@router.get("")
def get_analytics(current_user: User = Depends(get_current_user)) -> list[dict]:
    """PROTECTED: Daily clicks and scans across the current user's links and QR codes."""
    return analytics.series(current_user)
