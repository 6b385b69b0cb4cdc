from fastapi import APIRouter, Depends, Request

from ...auth.dependencies import get_current_user
from ...models.auth_models import MessageResponse
from ...models.user import User
from ...services.auth_service import get_auth_service
from ...services.rate_limiter import get_request_session_token

router = APIRouter(prefix="/session", tags=["session"])


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, current_user: User = Depends(get_current_user)):
    """End the current session"""
    await get_auth_service().logout(get_request_session_token(request))
    return MessageResponse(message="Logged out successfully", username=current_user.username)


@router.post("/delete-session", response_model=MessageResponse)
async def delete_session(current_user: User = Depends(get_current_user)):
    """Clear the caller's synced tabs and end the session, keeping the account"""
    await get_auth_service().delete_session_data(current_user.username)
    return MessageResponse(message="Session data cleared, user account remains.", username=current_user.username)
