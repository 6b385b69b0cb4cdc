from datetime import datetime
from typing import Optional

from tabsync.db.database import get_db
from tabsync.models.user import User, UserStatus


class UserRepository:
    """Repository for the user/session store"""

    @staticmethod
    async def create(user: User) -> User:
        """Create a new user"""
        db = get_db()
        data = user.to_dict()

        columns = ", ".join(data.keys())
        placeholders = ", ".join(["?" for _ in data])

        await db.write(
            f"INSERT INTO users ({columns}) VALUES ({placeholders})",
            tuple(data.values())
        )
        return user

    @staticmethod
    async def find_by_username(username: str) -> Optional[User]:
        """Get user by username"""
        db = get_db()
        row = await db.fetch_one(
            "SELECT * FROM users WHERE username = ?", (username,)
        )
        return User.from_dict(row) if row else None

    @staticmethod
    async def find_by_username_and_token(username: str, session_token: str) -> Optional[User]:
        """Get user only when both username and current session token match"""
        db = get_db()
        row = await db.fetch_one(
            "SELECT * FROM users WHERE username = ? AND session_token = ?",
            (username, session_token)
        )
        return User.from_dict(row) if row else None

    @staticmethod
    async def find_by_session_token(session_token: str) -> Optional[User]:
        """Get user holding the given session token"""
        db = get_db()
        row = await db.fetch_one(
            "SELECT * FROM users WHERE session_token = ?", (session_token,)
        )
        return User.from_dict(row) if row else None

    @staticmethod
    async def exists(username: str, email: str) -> bool:
        """Check if the username or the email is already registered"""
        db = get_db()
        row = await db.fetch_one(
            "SELECT username FROM users WHERE username = ? OR email = ?",
            (username, email)
        )
        return row is not None

    @staticmethod
    async def save(user: User) -> User:
        """Persist every mutable field of an existing user"""
        db = get_db()
        data = user.to_dict()
        username = data.pop("username")

        set_clause = ", ".join([f"{k} = ?" for k in data.keys()])
        values = list(data.values())
        values.append(username)

        await db.write(
            f"UPDATE users SET {set_clause} WHERE username = ?",
            tuple(values)
        )
        return user

    @staticmethod
    async def start_session(username: str, session_token: str) -> bool:
        """Install a new session token and mark the account verified"""
        db = get_db()
        rowcount = await db.write(
            "UPDATE users SET session_token = ?, user_status = ? WHERE username = ?",
            (session_token, UserStatus.VERIFIED.value, username)
        )
        return rowcount > 0

    @staticmethod
    async def clear_session_token(username: str, expected_token: Optional[str] = None) -> bool:
        """
        Revoke the session of username.

        With expected_token the token is cleared only while it is still the
        stored one, so a session issued in the meantime survives.
        """
        db = get_db()
        if expected_token is None:
            rowcount = await db.write(
                "UPDATE users SET session_token = NULL WHERE username = ?", (username,)
            )
        else:
            rowcount = await db.write(
                "UPDATE users SET session_token = NULL WHERE username = ? AND session_token = ?",
                (username, expected_token)
            )
        return rowcount > 0

    @staticmethod
    async def set_ban(username: str, ip: str, banned_until: int):
        """Record an IP ban on the account, leaving every other column untouched"""
        db = get_db()
        await db.write(
            "UPDATE users SET ban_ip = ?, banned_until = ? WHERE username = ?",
            (ip, banned_until, username)
        )

    @staticmethod
    async def delete(username: str) -> bool:
        """Delete a user"""
        db = get_db()
        rowcount = await db.write("DELETE FROM users WHERE username = ?", (username,))
        return rowcount > 0

    @staticmethod
    async def delete_unverified(created_before: datetime) -> int:
        """Delete accounts that never completed OTP verification"""
        db = get_db()
        return await db.write(
            "DELETE FROM users WHERE user_status = ? AND created_at < ?",
            (UserStatus.INIT.value, created_before.isoformat())
        )
