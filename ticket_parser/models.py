"""Shared value types for sales, fixtures and calendar events"""
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Tuple


class Status(Enum):
    """Status of a sale or registration window"""
    PENDING = "pending"
    AVAILABLE = "available"
    ENDED = "ended"


class Venue(str, Enum):
    """Home (H), away (A), neutral (N) or unknown (U)"""
    HOME = "H"
    AWAY = "A"
    NEUTRAL = "N"
    UNKNOWN = "U"


class ChangeState(Enum):
    """Outcome of comparing a fixture against its stored fingerprint"""
    UNKNOWN = "unknown"
    CHANGED = "changed"
    UNCHANGED = "unchanged"


EVENT_DURATION_MINUTES = 60
BUSY = "BUSY"


@dataclass(frozen=True)
class CalendarEvent:
    """A single calendar entry (start is club wall-clock time, not UTC)"""
    title: str
    start: Tuple[int, int, int, int, int]
    duration_minutes: int = EVENT_DURATION_MINUTES
    busy_status: str = BUSY

    @property
    def start_datetime(self) -> datetime:
        """Start as a naive datetime in club wall-clock time"""
        return datetime(*self.start)

    def with_title(self, title: str) -> "CalendarEvent":
        return replace(self, title=title)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "start": list(self.start),
            "duration": {"minutes": self.duration_minutes},
            "busyStatus": self.busy_status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CalendarEvent":
        duration = data.get("duration") or {}
        return cls(
            title=data["title"],
            start=tuple(int(part) for part in data["start"]),
            duration_minutes=int(duration.get("minutes", EVENT_DURATION_MINUTES)),
            busy_status=data.get("busyStatus", BUSY),
        )
