from .auth_service import AuthenticationService, get_auth_service
from .otp_service import OTPService, get_otp_service
from .background_tasks import BackgroundTaskManager

__all__ = [
    "AuthenticationService",
    "get_auth_service",
    "OTPService",
    "get_otp_service",
    "BackgroundTaskManager"
]
