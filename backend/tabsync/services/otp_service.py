import logging
from typing import Optional

import pyotp

from tabsync.core.config import settings

logger = logging.getLogger(__name__)


class OTPService:
    """TOTP secrets, provisioning URIs and code verification"""

    def __init__(
        self,
        issuer: Optional[str] = None,
        interval: Optional[int] = None,
        valid_window: Optional[int] = None
    ):
        self.issuer = issuer or settings.TOTP_ISSUER
        self.interval = interval or settings.TOTP_INTERVAL
        self.valid_window = settings.TOTP_VALID_WINDOW if valid_window is None else valid_window

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(secret, interval=self.interval)

    def generate_secret(self) -> str:
        """Generate a new base32 TOTP secret"""
        return pyotp.random_base32()

    def provisioning_uri(self, secret: str, username: str) -> str:
        """otpauth:// URI for authenticator apps (rendered as a QR code by the client)"""
        return self._totp(secret).provisioning_uri(name=username, issuer_name=self.issuer)

    def current_otp(self, secret: str) -> str:
        return self._totp(secret).now()

    def verify(self, secret: str, otp: str) -> bool:
        """Accept the code of the current step and of valid_window steps either side"""
        if not otp:
            return False
        try:
            return self._totp(secret).verify(otp.strip(), valid_window=self.valid_window)
        except Exception as e:
            logger.warning(f"OTP verification error: {e}")
            return False


# Singleton instance
_otp_service = None

def get_otp_service() -> OTPService:
    """Get singleton OTPService instance"""
    global _otp_service
    if _otp_service is None:
        _otp_service = OTPService()
    return _otp_service
