"""
In-memory per-IP rate limiting with temporary bans
"""

import logging
import time
from collections import deque
from typing import Deque, Dict, Optional

from fastapi import Request

from tabsync.api.errors import BannedError, RateLimitExceededError
from tabsync.core.config import settings
from tabsync.db.repositories import UserRepository

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, else the socket peer"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


def get_request_session_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.replace("Bearer ", "")
    return request.headers.get("sessiontoken")


class BanList:
    """IP bans shared by every limiter"""

    def __init__(self):
        self._banned: Dict[str, float] = {}

    def ban(self, ip: str, duration: float, now: Optional[float] = None):
        now = time.monotonic() if now is None else now
        self._banned[ip] = now + duration

    def is_banned(self, ip: str, now: Optional[float] = None) -> bool:
        now = time.monotonic() if now is None else now
        # Drop expired bans
        for banned_ip, until in list(self._banned.items()):
            if until <= now:
                del self._banned[banned_ip]
        return ip in self._banned

    def clear(self):
        self._banned.clear()


ban_list = BanList()


class RateLimiter:
    """
    Sliding-window limiter used as a FastAPI dependency.

    A client over the limit is banned for BAN_DURATION_SECONDS; when the
    request carries a session token the ban is recorded on the account.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        bans: BanList = ban_list,
        max_tracked: Optional[int] = None
    ):
        self.max_requests = max_requests
        self.window = window_seconds
        self.bans = bans
        self.max_tracked = max_tracked or settings.RATE_LIMIT_MAX_TRACKED_IPS
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = 0.0

    def hit(self, ip: str, now: Optional[float] = None) -> bool:
        """Record a request, False when it exceeds the limit"""
        now = time.monotonic() if now is None else now
        if now - self._last_sweep >= self.window:
            self._sweep(now)

        hits = self._hits.pop(ip, None) or deque()
        while hits and hits[0] <= now - self.window:
            hits.popleft()
        hits.append(now)

        # Most recently seen IPs sit at the end; drop the oldest past the cap
        while len(self._hits) >= self.max_tracked:
            del self._hits[next(iter(self._hits))]
        self._hits[ip] = hits
        return len(hits) <= self.max_requests

    def _sweep(self, now: float):
        """Forget IPs with no request inside the window"""
        stale = [ip for ip, hits in self._hits.items() if not hits or hits[-1] <= now - self.window]
        for ip in stale:
            del self._hits[ip]
        self._last_sweep = now

    def tracked_count(self) -> int:
        return len(self._hits)

    def reset(self):
        self._hits.clear()
        self._last_sweep = 0.0

    async def __call__(self, request: Request):
        ip = get_client_ip(request)
        now_ms = int(time.time() * 1000)

        if self.bans.is_banned(ip):
            raise BannedError()

        session_token = get_request_session_token(request)
        user = await UserRepository.find_by_session_token(session_token) if session_token else None
        if user and user.is_banned(ip, now_ms):
            raise BannedError()

        if not self.hit(ip):
            logger.warning(f"Rate limit exceeded for IP: {ip}")
            self.bans.ban(ip, settings.BAN_DURATION_SECONDS)
            if user:
                await UserRepository.set_ban(user.username, ip, now_ms + settings.BAN_DURATION_SECONDS * 1000)
            raise RateLimitExceededError()


auth_limiter = RateLimiter(settings.RATE_LIMIT_AUTH_REQUESTS, settings.RATE_LIMIT_AUTH_WINDOW_SECONDS)
global_limiter = RateLimiter(settings.RATE_LIMIT_GLOBAL_REQUESTS, settings.RATE_LIMIT_GLOBAL_WINDOW_SECONDS)
search_limiter = RateLimiter(settings.RATE_LIMIT_SEARCH_REQUESTS, settings.RATE_LIMIT_SEARCH_WINDOW_SECONDS)
