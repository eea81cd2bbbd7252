"""A single upcoming fixture and the sales listed for it"""
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from ..models import CalendarEvent, ChangeState, Status, Venue
from ..services.page_fetcher import PageFetcher
from ..services.page_parser import DEFAULT_HOME_TEAM, parse_detail_page
from ..utils.logger import setup_logger
from ..utils.timezone import now_club
from .fingerprint import FixtureFingerprint
from .sale import Sale

if TYPE_CHECKING:
    from ..storage.client import SyncResult

logger = setup_logger(__name__)


class Fixture:
    """
    An upcoming fixture, identified independently of its kick-off time.

    The ID combines season, opposition, venue and competition so that a
    rescheduled kick-off is still recognised as the same fixture.
    """

    def __init__(
        self,
        url: str,
        opposition: str,
        venue: Venue,
        competition: str,
        kickoff: datetime,
        home_team: str = DEFAULT_HOME_TEAM
    ):
        """
        Args:
            url: Site-relative URL of the fixture's ticket availability page
            opposition: Name of the opposition
            venue: Home, away, neutral or unknown
            competition: Competition name (e.g. 'Premier League')
            kickoff: Kick-off date and time
            home_team: Name the club uses for itself on its pages
        """
        self.url = url
        self.opposition = opposition
        self.venue = Venue(venue)
        self.competition = competition
        self.kickoff = kickoff
        self.home_team = home_team

        # Seasons run August to May and are named after their first year
        self.season = kickoff.year - (1 if kickoff.month - 1 < 5 else 0)
        key = f"{self.season}-{opposition}-{self.venue.value}-{competition}".lower()
        self.id = key.replace("&amp; ", "").replace("& ", "").replace(" ", "-")

        self.sales: List[Sale] = []
        self.html = ""
        self.change_state = ChangeState.UNKNOWN

    def __repr__(self):
        return f"Fixture({self.id!r})"

    def download(self, fetcher: PageFetcher) -> bool:
        """
        Download the fixture's ticket availability page

        Returns:
            True if HTML was retrieved, False on any failure or missing domain
        """
        html = fetcher.fetch_path(self.url)
        if not html:
            logger.warning(f"Unable to download the fixture page for {self.opposition}")
            return False
        self.html = html
        return True

    def parse_detail_page(self) -> int:
        """
        Parse the downloaded page into Sale objects

        Returns:
            Number of sales found

        Raises:
            ParseError: If the page is empty, for another fixture or malformed
        """
        self.sales = parse_detail_page(self.html, self.opposition, self.kickoff, self.home_team)
        return len(self.sales)

    @property
    def active_sale_count(self) -> int:
        return sum(1 for sale in self.sales if sale.is_valid())

    def match_label(self) -> str:
        """e.g. 'Brentford (H) - Premier League (2024-25)'"""
        return (
            f"{self.opposition} ({self.venue.value}) - {self.competition} "
            f"({self.season}-{(self.season + 1) % 100:02d})"
        )

    def fingerprint(self) -> Optional[FixtureFingerprint]:
        """Change-detection fingerprint, or None when there are no active sales"""
        if self.active_sale_count == 0:
            return None
        return FixtureFingerprint(
            id=self.id,
            match=self.match_label(),
            sales=tuple(sale.to_fingerprint() for sale in self.sales if sale.is_valid())
        )

    def calendar_events(self) -> List[CalendarEvent]:
        prefix = f"{self.opposition} ({self.venue.value})"
        return [sale.to_calendar_event(prefix) for sale in self.sales if sale.is_valid()]

    def summary_lines(self) -> List[str]:
        """Display lines for each valid sale, used in the email body"""
        return [sale.title() for sale in self.sales if sale.is_valid()]

    def equals(self, stored: FixtureFingerprint, now: Optional[datetime] = None) -> bool:
        """
        Compare live sales against a stored fingerprint

        Sales drop off the page once they are over, so a stored sale that is
        missing from the live page only counts as a change while its date is
        still in the future.

        Args:
            stored: Fingerprint persisted on a previous run
            now: Current time (defaults to now in club time)

        Returns:
            True if nothing has changed
        """
        now = now or now_club()
        stored_sales = [Sale(s.description, Status.PENDING, s.date) for s in stored.sales]

        for sale in self.sales:
            if sale.is_valid() and sale not in stored_sales:
                return False

        for sale in stored_sales:
            if sale not in self.sales and sale.date > now:
                return False

        return True

    def set_changed(self, changed: bool):
        self.change_state = ChangeState.CHANGED if changed else ChangeState.UNCHANGED

    def apply(self, result: "SyncResult"):
        """Record the outcome of syncing this fixture with the store"""
        self.change_state = result.state

    def has_changed(self) -> bool:
        """Fixtures count as changed until a sync says otherwise"""
        return self.change_state != ChangeState.UNCHANGED
