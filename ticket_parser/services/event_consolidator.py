"""Merging of same-time sales into bulk entries and ICS encoding"""
import re
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple
from uuid import NAMESPACE_DNS, uuid5

import pytz
from icalendar import Calendar, Event

from ..models import CalendarEvent
from ..utils.logger import setup_logger
from ..utils.timezone import now_club, to_club_time

logger = setup_logger(__name__)

PRODUCT_ID = "-//ticket-sales-parser//lfctickets/ics//EN"

REGISTRATION = "Registration"
BULK_SALE = "Bulk Sale"
GENERAL = "General"

# 'Chelsea (H) : Members Sale (13+)'
TITLE_PATTERN = re.compile(r"^(?P<opposition>.+?) \((?P<venue>[HANU])\) : (?P<detail>.+)$")
# 'Bulk Sale (Chelsea, Aston Villa) : Members Sale (13+, 4+)'
MERGED_PATTERN = re.compile(
    r"^(?P<kind>Bulk Sale|Registration) \((?P<oppositions>.+?)\) : (?P<detail>.+)$"
)
# Trailing '(13+)' or '(13+, General)' on a description
CRITERIA_PATTERN = re.compile(r"^(?P<base>.*?)(?: \((?P<criteria>[^()]*)\))?$")


class CalendarEncodingError(Exception):
    """Raised when calendar events cannot be encoded as ICS"""


def _kind(detail: str) -> str:
    return REGISTRATION if REGISTRATION in detail else BULK_SALE


def _split_criteria(detail: str, kind: str) -> Tuple[str, List[str]]:
    """Separate a description from its credit criteria"""
    match = CRITERIA_PATTERN.match(detail)
    base, criteria = match.group("base"), match.group("criteria")
    if criteria:
        return base, [c.strip() for c in criteria.split(",") if c.strip()]
    return base, ([GENERAL] if kind == BULK_SALE else [])


def _join(kind: str, oppositions: List[str], base: str, criteria: List[str]) -> str:
    detail = f"{base} ({', '.join(criteria)})" if criteria else base
    return f"{kind} ({', '.join(oppositions)}) : {detail}"


def merge_titles(existing: str, candidate: str) -> Optional[str]:
    """
    Fold a candidate event's title into an event at the same time

    Credit criteria are compared as whole list items rather than substrings,
    so '3+' is added alongside an existing '13+'.

    Args:
        existing: Title of the accumulated event, plain or already merged
        candidate: Plain title of the event being absorbed

    Returns:
        The merged title, or None if the titles cannot be merged
    """
    incoming = TITLE_PATTERN.match(candidate)
    if not incoming:
        return None
    kind = _kind(incoming.group("detail"))
    _, new_criteria = _split_criteria(incoming.group("detail"), kind)

    merged = MERGED_PATTERN.match(existing)
    if merged:
        if merged.group("kind") != kind:
            return None
        oppositions = [o.strip() for o in merged.group("oppositions").split(",")]
        base, criteria = _split_criteria(merged.group("detail"), kind)
    else:
        original = TITLE_PATTERN.match(existing)
        if not original or _kind(original.group("detail")) != kind:
            return None
        oppositions = [original.group("opposition")]
        base, criteria = _split_criteria(original.group("detail"), kind)

    opposition = incoming.group("opposition")
    if opposition not in oppositions:
        oppositions.append(opposition)
    for criterion in new_criteria:
        if criterion not in criteria:
            criteria.append(criterion)

    return _join(kind, oppositions, base, criteria)


class EventConsolidator:
    """Prepares calendar events for a single ICS attachment"""

    def __init__(self, prodid: str = PRODUCT_ID, clock: Callable[[], datetime] = now_club):
        """
        Args:
            prodid: PRODID written to the calendar
            clock: Source of the current time (club timezone)
        """
        self.prodid = prodid
        self.clock = clock

    def consolidate(self, events: List[CalendarEvent]) -> List[CalendarEvent]:
        """
        Drop duplicates, merge same-time events and remove expired ones

        Args:
            events: Calendar events in the order they were collected

        Returns:
            A new list of events, each strictly in the future
        """
        accumulated: List[CalendarEvent] = []

        for candidate in events:
            if candidate in accumulated:
                logger.debug(f"Dropping duplicate event: {candidate.title}")
                continue

            absorbed = False
            for index, event in enumerate(accumulated):
                if event.start != candidate.start:
                    continue
                title = merge_titles(event.title, candidate.title)
                if title is not None:
                    accumulated[index] = event.with_title(title)
                    absorbed = True
                    break

            if not absorbed:
                accumulated.append(candidate)

        now = to_club_time(self.clock()).replace(tzinfo=None)
        upcoming = [event for event in accumulated if event.start_datetime > now]
        if len(upcoming) < len(accumulated):
            logger.info(f"Discarded {len(accumulated) - len(upcoming)} expired events")
        return upcoming

    def encode(self, events: List[CalendarEvent]) -> str:
        """
        Encode events as an iCalendar document

        Raises:
            CalendarEncodingError: If there are no events or encoding fails
        """
        if not events:
            raise CalendarEncodingError("Cannot create a calendar without events")

        try:
            calendar = Calendar()
            calendar.add('prodid', self.prodid)
            calendar.add('version', '2.0')

            stamp = datetime.now(pytz.utc)
            for item in events:
                event = Event()
                event.add('uid', str(uuid5(NAMESPACE_DNS, f"{item.title}-{item.start}")))
                event.add('dtstamp', stamp)
                event.add('summary', item.title)
                # Floating time, so the event shows club time wherever it is opened
                event.add('dtstart', item.start_datetime)
                event.add('duration', timedelta(minutes=item.duration_minutes))
                event.add('transp', 'OPAQUE')
                event.add('X-MICROSOFT-CDO-BUSYSTATUS', item.busy_status)
                calendar.add_component(event)

            return calendar.to_ical().decode('utf-8')
        except Exception as e:
            raise CalendarEncodingError(f"Unable to create calendar file: {e}") from e

    def build(self, events: List[CalendarEvent]) -> Tuple[List[CalendarEvent], str]:
        """
        Consolidate and encode in one step

        Returns:
            The consolidated events and the ICS text ('' when nothing is left)
        """
        consolidated = self.consolidate(events)
        if not consolidated:
            return [], ""
        return consolidated, self.encode(consolidated)
