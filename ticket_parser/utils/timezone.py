"""Club timezone utilities"""
from datetime import datetime
import pytz

# Sales and kick-offs are published in the club's local time
CLUB_TIMEZONE = "Europe/London"


def localize(dt: datetime, tz: str = CLUB_TIMEZONE) -> datetime:
    """
    Attach a timezone to a naive datetime.
    
    Args:
        dt: Datetime object (naive or timezone-aware)
        tz: Timezone the naive datetime is assumed to be in
    
    Returns:
        Timezone-aware datetime (aware input is returned unchanged)
    """
    if dt.tzinfo is None:
        return pytz.timezone(tz).localize(dt)
    return dt


def to_club_time(dt: datetime, tz: str = CLUB_TIMEZONE) -> datetime:
    """
    Convert a datetime to the club's wall-clock time.
    
    The offset between the datetime's own zone and the club's zone is
    applied, so the result always reads as local time at the club regardless
    of the zone the host process runs in.
    
    Args:
        dt: Datetime object (naive datetimes are assumed to be club time)
        tz: Club timezone
    
    Returns:
        Timezone-aware datetime in the club's timezone
    """
    zone = pytz.timezone(tz)
    return localize(dt, tz).astimezone(zone)


def now_club(tz: str = CLUB_TIMEZONE) -> datetime:
    """Get current time in the club's timezone"""
    return datetime.now(pytz.timezone(tz))
