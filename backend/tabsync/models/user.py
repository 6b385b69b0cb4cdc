from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class UserStatus(str, Enum):
    """Account lifecycle: created at registration, verified on first OTP check"""
    INIT = "init"
    VERIFIED = "verified"


@dataclass
class User:
    """Session store record"""
    username: str
    email: str
    totp_secret: str
    user_status: UserStatus = UserStatus.INIT
    session_token: Optional[str] = None
    ban_ip: Optional[str] = None
    banned_until: Optional[int] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.created_at is None:
            self.created_at = datetime.now()
        self.user_status = UserStatus(self.user_status)

    def is_banned(self, ip: str, now_ms: int) -> bool:
        """Whether this account carries an unexpired ban for the given IP"""
        return (
            self.ban_ip is not None
            and self.ban_ip == ip
            and self.banned_until is not None
            and self.banned_until > now_ms
        )

    def to_dict(self):
        """Convert to dictionary for database storage"""
        return {
            "username": self.username,
            "email": self.email,
            "totp_secret": self.totp_secret,
            "user_status": self.user_status.value,
            "session_token": self.session_token,
            "ban_ip": self.ban_ip,
            "banned_until": self.banned_until,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict):
        """Create User from database row"""
        data = dict(data)
        if data.get("created_at"):
            data["created_at"] = datetime.fromisoformat(data["created_at"])
        return cls(**data)
