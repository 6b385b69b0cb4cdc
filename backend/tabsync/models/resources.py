"""
Per-user synchronized records: tabs, shortcuts, history, bookmarks and notes.

Every record carries the owning ``username``. Ownership is not enforced by the
database, only by the action handlers that always query on (id, username).
"""

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Optional, Tuple


def new_record_id() -> str:
    return uuid.uuid4().hex


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


class TabStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class Record:
    """Shared (de)serialization for resource dataclasses"""

    # Database table and the columns a client may patch
    table: ClassVar[str] = ""
    patchable: ClassVar[Tuple[str, ...]] = ()
    _datetime_fields: ClassVar[Tuple[str, ...]] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for database storage"""
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                value = value.isoformat()
            elif isinstance(value, Enum):
                value = value.value
            data[f.name] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """Create record from database row"""
        data = dict(data)
        for name in cls._datetime_fields:
            if isinstance(data.get(name), str):
                data[name] = datetime.fromisoformat(data[name])
        return cls(**data)

    def to_payload(self) -> Dict[str, Any]:
        """Wire representation sent to clients"""
        return {_to_camel(key): value for key, value in self.to_dict().items()}


@dataclass
class Tab(Record):
    username: str
    title: str
    url: str
    group: str = "default"
    status: TabStatus = TabStatus.ACTIVE
    id: str = field(default_factory=new_record_id)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    table: ClassVar[str] = "tabs"
    patchable: ClassVar[Tuple[str, ...]] = ("group", "status")
    _datetime_fields: ClassVar[Tuple[str, ...]] = ("created_at", "updated_at")

    def __post_init__(self):
        now = datetime.now()
        if self.created_at is None:
            self.created_at = now
        if self.updated_at is None:
            self.updated_at = self.created_at
        self.status = TabStatus(self.status)


@dataclass
class Shortcut(Record):
    username: str
    title: str
    url: str
    id: str = field(default_factory=new_record_id)

    table: ClassVar[str] = "shortcuts"
    patchable: ClassVar[Tuple[str, ...]] = ("title", "url")


@dataclass
class HistoryEntry(Record):
    username: str
    title: str
    url: str
    id: str = field(default_factory=new_record_id)
    timestamp: Optional[datetime] = None

    table: ClassVar[str] = "history"
    _datetime_fields: ClassVar[Tuple[str, ...]] = ("timestamp",)

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


@dataclass
class Bookmark(Record):
    username: str
    title: str
    url: str
    id: str = field(default_factory=new_record_id)
    timestamp: Optional[datetime] = None

    table: ClassVar[str] = "bookmarks"
    patchable: ClassVar[Tuple[str, ...]] = ("title", "url")
    _datetime_fields: ClassVar[Tuple[str, ...]] = ("timestamp",)

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


@dataclass
class Note(Record):
    username: str
    content: str
    id: str = field(default_factory=new_record_id)
    timestamp: Optional[datetime] = None

    table: ClassVar[str] = "notes"
    patchable: ClassVar[Tuple[str, ...]] = ("content",)
    _datetime_fields: ClassVar[Tuple[str, ...]] = ("timestamp",)

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()
