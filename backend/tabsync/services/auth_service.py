import logging
import re
import uuid
from typing import Optional, Dict, Any, List, Tuple

from tabsync.db.repositories import UserRepository, tab_repository, ALL_RESOURCE_REPOSITORIES
from tabsync.models.resources import Tab, TabStatus
from tabsync.models.user import User, UserStatus
from .otp_service import get_otp_service

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]{3,20}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class AuthenticationService:
    """Registration, OTP login and session lifecycle"""

    def __init__(self):
        self.users = UserRepository
        self.otp_service = get_otp_service()

    def _generate_session_token(self) -> str:
        return uuid.uuid4().hex

    async def register_user(self, username: str, email: str) -> Dict[str, Any]:
        """Create an unverified account with a fresh TOTP secret"""
        if not USERNAME_PATTERN.match(username):
            raise ValueError("Invalid username. Use 3-20 characters: letters, numbers, underscores.")
        if not EMAIL_PATTERN.match(email):
            raise ValueError("Invalid email format.")

        if await self.users.exists(username, email):
            raise ValueError("You are already registered, enter the OTP.")

        secret = self.otp_service.generate_secret()
        user = await self.users.create(User(username=username, email=email, totp_secret=secret))

        logger.info(f"New user registered: {username}")
        return {
            "user": user,
            "otpauth_url": self.otp_service.provisioning_uri(secret, username),
        }

    async def verify_otp(self, username: str, otp: str) -> Tuple[bool, Optional[User], str]:
        """Check an OTP, issuing a new session on success"""
        user = await self.users.find_by_username(username)
        if not user:
            return False, None, "Invalid username"

        if not self.otp_service.verify(user.totp_secret, otp):
            return False, None, "Invalid OTP, please try again"

        await self.create_session(user)
        logger.info(f"User verified: {username}")
        return True, user, "Login successful"

    async def create_session(self, user: User) -> str:
        """Issue a new session token, which revokes any previous one"""
        user.session_token = self._generate_session_token()
        user.user_status = UserStatus.VERIFIED
        await self.users.start_session(user.username, user.session_token)
        return user.session_token

    async def validate_session(self, session_token: str) -> Optional[User]:
        """Return the user currently holding session_token"""
        if not session_token:
            return None
        return await self.users.find_by_session_token(session_token)

    async def get_active_tabs(self, username: str) -> List[Tab]:
        return await tab_repository.find_all_by_owner(username, {"status": TabStatus.ACTIVE.value})

    async def logout(self, session_token: str) -> bool:
        """End the session identified by session_token"""
        user = await self.validate_session(session_token)
        if not user:
            return False

        if not await self.users.clear_session_token(user.username, session_token):
            return False
        logger.info(f"User logged out: {user.username}")
        return True

    async def delete_session_data(self, username: str) -> bool:
        """Drop synced tabs and end the session, keeping the account"""
        user = await self.users.find_by_username(username)
        if not user:
            return False

        await tab_repository.delete_all_by_owner(username)
        await self.users.clear_session_token(username)
        logger.info(f"Session data cleared for user {username}")
        return True

    async def delete_user(self, username: str) -> bool:
        """Delete the account and every collection it owns"""
        user = await self.users.find_by_username(username)
        if not user:
            return False

        for repository in ALL_RESOURCE_REPOSITORIES:
            await repository.delete_all_by_owner(username)
        await self.users.delete(username)
        logger.info(f"User account and all data deleted: {username}")
        return True


# Singleton instance
_auth_service = None

def get_auth_service() -> AuthenticationService:
    """Get singleton AuthenticationService instance"""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthenticationService()
    return _auth_service
