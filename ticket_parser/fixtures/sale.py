"""A single sale (or registration) window belonging to a fixture"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from ..models import CalendarEvent, Status
from ..utils.timezone import to_club_time
from .fingerprint import SaleFingerprint

# Month abbreviations as the club writes them ("Sept" rather than "Sep")
MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sept", "Oct", "Nov", "Dec",
)


@dataclass(frozen=True, eq=False)
class Sale:
    """
    A sale or registration window for a fixture.

    Attributes:
        description: Sale type (e.g. "Members Sale") plus any credit suffix
        status: Pending, currently available or ended
        date: When the sale opens (None if the page gives no date)
    """
    description: str
    status: Status
    date: Optional[datetime] = None

    def is_valid(self) -> bool:
        """Whether the sale belongs in a calendar"""
        return (
            self.status == Status.PENDING
            and self.date is not None
            and not self.description.startswith("Local")
            and "ambulant" not in self.description
            and "Hospitality" not in self.description
        )

    def _minute_key(self) -> Optional[Tuple[int, int, int, int, int]]:
        if self.date is None:
            return None
        local = to_club_time(self.date)
        return (local.year, local.month, local.day, local.hour, local.minute)

    def __eq__(self, other):
        if not isinstance(other, Sale):
            return NotImplemented
        return (
            self.description == other.description
            and self.status == other.status
            and self._minute_key() == other._minute_key()
        )

    def __hash__(self):
        return hash((self.description, self.status, self._minute_key()))

    def to_calendar_event(self, prefix: Optional[str] = None) -> Optional[CalendarEvent]:
        """
        Build the calendar entry for this sale

        Args:
            prefix: Optional fixture label placed before the description

        Returns:
            CalendarEvent in club wall-clock time, or None if the sale is invalid
        """
        if not self.is_valid():
            return None
        title = f"{prefix} : {self.description}" if prefix else self.description
        return CalendarEvent(title=title, start=self._minute_key())

    def to_fingerprint(self) -> Optional[SaleFingerprint]:
        if not self.is_valid():
            return None
        return SaleFingerprint(description=self.description, date=to_club_time(self.date))

    def title(self) -> Optional[str]:
        """Human readable line for the email body, e.g. '1 Sept 2024, 9:00 : Members Sale'"""
        if not self.is_valid():
            return None
        local = to_club_time(self.date)
        month = MONTH_ABBREVIATIONS[local.month - 1]
        return (
            f"{local.day} {month} {local.year}, {local.hour}:{local.minute:02d} : "
            f"{self.description}"
        )
