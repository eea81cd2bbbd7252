"""HTML extraction for the ticket availability index and fixture pages

Index page: every fixture is an ``a.ticket-card.fixture`` anchor::

    <a class="ticket-card fixture" href="/tickets/tickets-availability/...">
      <div class="info">
        <p>Liverpool FC v Chelsea</p>
        <span>Sat 19 Oct 2024, 5:30pm</span>
      </div>
      <span class="match-location">H</span>
      <span class="comp-text">Premier League</span>
      <img alt="Champions League" class="league-crest">   (when there is no text)
    </a>

Fixture page: a heading naming both teams followed by one ``div.sale-item``
per sale, carrying a name, an optional prerequisite, a status and either an
inline date (``p.sale-date``) or a ``p.buy-from`` time with a separate
``p.buy-from-date`` day and month.
"""
import re
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from ..fixtures.sale import Sale
from ..models import Status, Venue
from ..utils.logger import setup_logger
from ..utils.timezone import localize

logger = setup_logger(__name__)

DEFAULT_HOME_TEAM = "Liverpool FC"

# Credit thresholds never realistically go beyond nineteen
NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19,
}
TENS_WORDS = ("twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty", "ninety")

_UNITS = "|".join(sorted(NUMBER_WORDS, key=len, reverse=True))
_TENS = "|".join(TENS_WORDS)
NUMBER_TOKEN = rf"\d+|(?:{_TENS})(?:-(?:{_UNITS}))?|hundred|{_UNITS}"

DESCRIPTION_PHRASES = [
    (re.compile(r"season ticket holders", re.I), "ST Holders"),
    (re.compile(r"official members", re.I), "Members"),
    (re.compile(r"\bregistration\b", re.I), "Registration"),
    (re.compile(r"\band\b", re.I), "and"),
]

TEAMS_PATTERN = re.compile(r"^(.+?)\s+v\s+(.+?)$")
DAY_MONTH_PATTERN = re.compile(r"(\d{1,2})(?:st|nd|rd|th)?\s+([A-Za-z]{3,})\.?(?:\s+(\d{4}))?")
TWELVE_HOUR_PATTERN = re.compile(r"(\d{1,2})(?:[:.](\d{2}))?\s*([ap]m)", re.I)
BUY_FROM_PATTERN = re.compile(r"buy\s+from\s+(\d{1,2})[:.](\d{2})", re.I)
CREDITS_PATTERN = re.compile(
    rf"\b({NUMBER_TOKEN})\+?\s+(?:or\s+more\s+)?(?:[a-z]+\s+){{0,2}}credits?\b", re.I
)

MONTHS = ["", "jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"]


class ParseError(Exception):
    """Raised when a ticket availability page cannot be parsed"""


class EmptyPageError(ParseError):
    """Raised when there is no HTML to parse"""


class PageStructureError(ParseError):
    """Raised when the page no longer has the expected structure"""


class FixtureMismatchError(ParseError):
    """Raised when a fixture page describes a different match"""


class UnsupportedCreditCountError(ParseError):
    """Raised when a credit threshold is written as a number word above nineteen"""


@dataclass
class FixtureCard:
    """The details of one fixture as listed on the index page"""
    url: str
    opposition: str
    venue: Venue
    competition: str
    kickoff: datetime


def _text(element) -> str:
    return " ".join(element.get_text(" ", strip=True).split()) if element else ""


def _month_number(name: str) -> int:
    try:
        return MONTHS.index(name[:3].lower())
    except ValueError:
        raise PageStructureError(f"Unrecognised month '{name}'")


def _day_month_year(text: str) -> Tuple[int, int, Optional[int]]:
    match = DAY_MONTH_PATTERN.search(text)
    if not match:
        raise PageStructureError(f"No date found in '{text}'")
    year = int(match.group(3)) if match.group(3) else None
    return int(match.group(1)), _month_number(match.group(2)), year


def _twelve_hour(text: str) -> Tuple[int, int]:
    match = TWELVE_HOUR_PATTERN.search(text)
    if not match:
        raise PageStructureError(f"No time found in '{text}'")
    hour = int(match.group(1)) % 12
    if match.group(3).lower() == "pm":
        hour += 12
    return hour, int(match.group(2) or 0)


def _resolve_year(day: int, month: int, year: Optional[int], kickoff: datetime) -> int:
    """Sales precede the match, so a date later in the year than kick-off is last year's"""
    if year is not None:
        return year
    if (month, day) > (kickoff.month, kickoff.day):
        return kickoff.year - 1
    return kickoff.year


def parse_kickoff(text: str) -> datetime:
    """
    Parse an index page kick-off such as 'Sat 19 Oct 2024, 5:30pm'

    Returns:
        Timezone-aware datetime in club time
    """
    day, month, year = _day_month_year(text)
    if year is None:
        raise PageStructureError(f"No year in kick-off '{text}'")
    hour, minute = _twelve_hour(text)
    return localize(datetime(year, month, day, hour, minute))


def parse_credits(text: str) -> Optional[int]:
    """
    Find a credit threshold in free text ('13+ credits', 'four or more credits')

    Returns:
        The threshold as an integer, or None if the text has none

    Raises:
        UnsupportedCreditCountError: For number words beyond nineteen
    """
    match = CREDITS_PATTERN.search(text)
    if not match:
        return None
    token = match.group(1).lower()
    if token.isdigit():
        return int(token)
    if token not in NUMBER_WORDS:
        raise UnsupportedCreditCountError(f"Unsupported credit count in '{text}'")
    return NUMBER_WORDS[token]


def classify_status(text: str) -> Status:
    lowered = text.lower()
    if "ended" in lowered or "sold out" in lowered:
        return Status.ENDED
    if "available" in lowered or "buy now" in lowered:
        return Status.AVAILABLE
    return Status.PENDING


def normalise_description(name: str, credits: Optional[int] = None) -> str:
    """
    Tidy a sale name into a short description

    'Season Ticket Holders and Official Members' with 4 credits becomes
    'ST Holders and Members Sale (4+)'.
    """
    description = " ".join(name.split())
    for pattern, replacement in DESCRIPTION_PHRASES:
        description = pattern.sub(replacement, description)
    lowered = description.lower()
    if not (lowered.endswith("sale") or lowered.endswith("registration")):
        description += " Sale"
    if credits is not None:
        description += f" ({credits}+)"
    return description


def parse_index_page(html: str, home_team: str = DEFAULT_HOME_TEAM) -> List[FixtureCard]:
    """
    Extract the fixtures listed on the ticket availability index page

    Args:
        html: Index page HTML
        home_team: Name the club uses for itself on the page

    Returns:
        List of FixtureCard objects in page order (women's fixtures skipped)

    Raises:
        EmptyPageError: If the HTML is empty
        PageStructureError: If a fixture card is not in the expected format
    """
    if not html:
        raise EmptyPageError('HTML for the "Tickets Availability" index page is empty')

    soup = BeautifulSoup(html, 'html.parser')
    cards = []

    for anchor in soup.select("a.ticket-card.fixture"):
        info = anchor.select_one("div.info")
        teams = TEAMS_PATTERN.match(_text(info.find("p") if info else None))
        kickoff_text = _text(info.find("span") if info else None)
        if not teams or not kickoff_text:
            raise PageStructureError("Invalid HTML format for fixture card")

        home, away = teams.group(1), teams.group(2)
        opposition = away if home == home_team else home
        # Only the men's team is covered
        if "women" in opposition.lower() or "ladies" in opposition.lower():
            logger.debug(f"Skipping women's fixture against {opposition}")
            continue

        location = _text(anchor.select_one("span.match-location"))
        venue = Venue(location) if location in ("H", "A") else Venue.UNKNOWN

        # Some fixtures show the competition logo rather than its name
        competition = _text(anchor.select_one("span.comp-text"))
        if not competition:
            crest = anchor.select_one("img.league-crest")
            competition = crest.get("alt", "").strip() if crest else ""

        cards.append(FixtureCard(
            url=anchor.get("href", ""),
            opposition=opposition,
            venue=venue,
            competition=competition or "Unknown",
            kickoff=parse_kickoff(kickoff_text)
        ))

    return cards


def _sale_date(item, kickoff: datetime) -> Optional[datetime]:
    inline = _text(item.select_one("p.sale-date"))
    if inline:
        day, month, year = _day_month_year(inline)
        hour, minute = _twelve_hour(inline)
        year = _resolve_year(day, month, year, kickoff)
        return localize(datetime(year, month, day, hour, minute))

    buy_from = BUY_FROM_PATTERN.search(_text(item.select_one("p.buy-from")))
    if buy_from:
        day, month, year = _day_month_year(_text(item.select_one("p.buy-from-date")))
        year = _resolve_year(day, month, year, kickoff)
        return localize(datetime(year, month, day, int(buy_from.group(1)), int(buy_from.group(2))))

    return None


def parse_detail_page(
    html: str,
    opposition: str,
    kickoff: datetime,
    home_team: str = DEFAULT_HOME_TEAM
) -> List[Sale]:
    """
    Extract every sale listed on a fixture's ticket availability page

    Args:
        html: Fixture page HTML
        opposition: Expected opposition, checked against the page heading
        kickoff: Fixture kick-off, used to infer years missing from dates
        home_team: Name the club uses for itself on the page

    Returns:
        List of Sale objects in page order

    Raises:
        EmptyPageError: If the HTML is empty
        FixtureMismatchError: If the page is not for this fixture
        PageStructureError: If a sale block is not in the expected format
    """
    if not html:
        raise EmptyPageError(f"HTML for the {opposition} fixture page is empty")

    soup = BeautifulSoup(html, 'html.parser')
    heading = _text(soup.find("h1"))
    home, away = re.escape(home_team), re.escape(opposition)
    if not re.search(rf"({home}\s+v\s+{away}|{away}\s+v\s+{home})", heading, re.I):
        raise FixtureMismatchError(
            f"Fixture page '{heading}' does not match {opposition} v {home_team}"
        )

    sales = []
    for item in soup.select("div.sale-item"):
        name = _text(item.select_one(".sale-name"))
        status_text = _text(item.select_one(".sale-status"))
        if not name or not status_text:
            raise PageStructureError(f"Invalid sale block on the {opposition} fixture page")

        credits = parse_credits(_text(item.select_one(".sale-prerequisite")))
        sales.append(Sale(
            description=normalise_description(name, credits),
            status=classify_status(status_text),
            date=_sale_date(item, kickoff)
        ))

    return sales
