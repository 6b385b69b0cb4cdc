from .database import db, get_db, init_db

__all__ = [
    "db",
    "get_db",
    "init_db"
]
