import time

from fastapi import Request

from ..api.errors import BannedError, InvalidSessionError
from ..models.user import User
from ..services.auth_service import get_auth_service
from ..services.rate_limiter import get_client_ip, get_request_session_token


async def get_current_user(request: Request) -> User:
    """
    Dependency that validates the Bearer session token.
    Use this on all protected endpoints.
    """
    session_token = get_request_session_token(request)
    if not session_token:
        raise InvalidSessionError("Forbidden. Missing credentials.")

    user = await get_auth_service().validate_session(session_token)
    if not user:
        raise InvalidSessionError("Forbidden. Invalid session.")

    if user.is_banned(get_client_ip(request), int(time.time() * 1000)):
        raise BannedError()

    return user
