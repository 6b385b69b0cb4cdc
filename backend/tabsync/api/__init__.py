from .errors import (
    UserNotFoundError,
    InvalidSessionError,
    BannedError,
    RateLimitExceededError
)

__all__ = [
    "UserNotFoundError",
    "InvalidSessionError",
    "BannedError",
    "RateLimitExceededError"
]
