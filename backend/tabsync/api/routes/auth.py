import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...api.errors import InvalidSessionError, UserNotFoundError
from ...auth.dependencies import get_current_user
from ...models.user import User
from ...models.auth_models import (
    UserRegistrationRequest, RegistrationResponse, VerifyRequest,
    LoginResponse, UsernameRequest, MessageResponse
)
from ...services.auth_service import get_auth_service
from ...services.rate_limiter import auth_limiter, get_request_session_token

router = APIRouter(prefix="/auth", tags=["authentication"], dependencies=[Depends(auth_limiter)])
logger = logging.getLogger(__name__)


def _require_owner(current_user: User, username: str):
    if current_user.username != username:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden. Session does not belong to this user.")


@router.post("/register", response_model=RegistrationResponse, status_code=status.HTTP_201_CREATED)
async def register_user(request: UserRegistrationRequest):
    """Register a new account and return its TOTP provisioning URI"""
    try:
        result = await get_auth_service().register_user(request.username, request.email)
        return RegistrationResponse(
            username=result["user"].username,
            otpauth_url=result["otpauth_url"],
            secret=result["user"].totp_secret
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/verify", response_model=LoginResponse)
async def verify_otp(request: VerifyRequest):
    """Verify an OTP and start a new session, revoking any previous one"""
    auth_service = get_auth_service()
    success, user, message = await auth_service.verify_otp(request.username, request.otp)

    if not success:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    tabs = await auth_service.get_active_tabs(user.username)
    return LoginResponse(
        message=message,
        session_token=user.session_token,
        tabs=[tab.to_payload() for tab in tabs]
    )


@router.post("/logout", response_model=MessageResponse)
async def logout_user(request: Request):
    """End the session identified by the Bearer token"""
    session_token = get_request_session_token(request)
    if not session_token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No session token provided")

    if not await get_auth_service().logout(session_token):
        raise InvalidSessionError()

    return MessageResponse(message="Logged out successfully")


@router.post("/delete-session", response_model=MessageResponse)
async def delete_session(request: UsernameRequest, current_user: User = Depends(get_current_user)):
    """Clear synced tabs and the session, keeping the account"""
    _require_owner(current_user, request.username)
    if not await get_auth_service().delete_session_data(request.username):
        raise UserNotFoundError(request.username)

    return MessageResponse(message="Session data cleared, user account remains.", username=request.username)


@router.post("/delete-user", response_model=MessageResponse)
async def delete_user(request: UsernameRequest, current_user: User = Depends(get_current_user)):
    """Delete the account and all of its synced data"""
    _require_owner(current_user, request.username)
    if not await get_auth_service().delete_user(request.username):
        raise UserNotFoundError(request.username)

    return MessageResponse(message="User account and all data deleted.", username=request.username)
