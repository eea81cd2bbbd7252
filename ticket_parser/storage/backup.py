"""Backup of calendar events that have not yet been emailed"""
import json
from datetime import date, datetime
from typing import List, Optional, Union

from ..models import CalendarEvent
from ..utils.timezone import now_club


class Backup:
    """
    One day's worth of events awaiting a successful send.

    Backups are stored against their creation date (YYYYMMDD) and removed
    once an email containing their events has gone out.
    """

    def __init__(self, created: Union[date, datetime], events: List[CalendarEvent], attempts: int = 1):
        """
        Args:
            created: Date the events were first due to be sent
            events: Calendar events awaiting sending
            attempts: Number of runs that have tried to send them
        """
        self.date = created.date() if isinstance(created, datetime) else created
        self.events = list(events)
        self.attempts = attempts

    @property
    def key(self) -> str:
        return Backup.format_date(self.date)

    def is_today(self, today: Optional[date] = None) -> bool:
        today = today or now_club().date()
        return self.date == today

    def merge(self, other: "Backup"):
        """Add another backup's events, skipping exact duplicates"""
        for event in other.events:
            if event not in self.events:
                self.events.append(event)

    def to_json(self) -> str:
        return json.dumps([event.to_dict() for event in self.events], ensure_ascii=False)

    @classmethod
    def from_json(cls, created: Union[date, datetime], raw: str, attempts: int = 1) -> "Backup":
        events = [CalendarEvent.from_dict(item) for item in json.loads(raw)]
        return cls(created, events, attempts)

    @staticmethod
    def format_date(value: Union[date, datetime]) -> str:
        return f"{value.year}{value.month:02d}{value.day:02d}"

    @staticmethod
    def parse_date(key: str) -> date:
        return date(int(key[0:4]), int(key[4:6]), int(key[6:8]))
