"""The ticket availability index page and the fixtures listed on it"""
from typing import TYPE_CHECKING, List, Optional

from ..models import CalendarEvent
from ..services.page_fetcher import PageFetcher
from ..services.page_parser import DEFAULT_HOME_TEAM, ParseError, parse_index_page
from ..utils.logger import setup_logger
from .fixture import Fixture

if TYPE_CHECKING:
    from ..storage.client import Client, SyncResult

logger = setup_logger(__name__)

NO_SALES = (1, 0)


def _sale_date_key(fixture: Fixture):
    """Earliest valid sale as a single comparable number (inactive fixtures last)"""
    starts = [event.start for event in fixture.calendar_events()]
    if not starts:
        return NO_SALES
    year, month, day, hour, minute = min(starts)
    return (0, year * 100000000 + month * 1000000 + day * 10000 + hour * 100 + minute)


class FixtureList:
    """Fixtures found on the index page, in page order"""

    def __init__(self, index_url: Optional[str] = None, home_team: str = DEFAULT_HOME_TEAM):
        """
        Args:
            index_url: Site-relative URL of the ticket availability index page
            home_team: Name the club uses for itself on its pages
        """
        self.index_url = index_url
        self.home_team = home_team
        self.html = ""
        self.fixtures: List[Fixture] = []

    def download(self, fetcher: PageFetcher) -> bool:
        """
        Download the index page

        Returns:
            True if HTML was retrieved, False on any failure or missing configuration
        """
        if not self.index_url:
            logger.warning("No index URL configured, skipping fixture list download")
            return False
        html = fetcher.fetch_path(self.index_url)
        if not html:
            return False
        self.html = html
        return True

    def parse_index_page(self) -> int:
        """
        Build a Fixture for every fixture card on the index page

        Returns:
            Total number of fixtures found

        Raises:
            ParseError: If the page is empty or not in the expected format
        """
        for card in parse_index_page(self.html, self.home_team):
            self.fixtures.append(Fixture(
                url=card.url,
                opposition=card.opposition,
                venue=card.venue,
                competition=card.competition,
                kickoff=card.kickoff,
                home_team=self.home_team
            ))
        return len(self.fixtures)

    def parse_all(self, fetcher: PageFetcher) -> bool:
        """
        Download and parse every fixture page, one at a time

        Failures are logged and the remaining fixtures are still processed.

        Returns:
            True only if every fixture downloaded and parsed
        """
        success = True
        for fixture in self.fixtures:
            if not fixture.download(fetcher):
                success = False
                continue
            try:
                count = fixture.parse_detail_page()
                logger.debug(f"Found {count} sales for {fixture.id}")
            except ParseError as e:
                logger.error(f"Unable to parse fixture {fixture.id}: {e}")
                success = False
        return success

    def get_fixtures(self, sort_by_sale_date: bool = False) -> List[Fixture]:
        """
        Args:
            sort_by_sale_date: Order by earliest valid sale (fixtures without one last)

        Returns:
            A new list of fixtures (the stored order is left untouched)
        """
        if not sort_by_sale_date:
            return list(self.fixtures)
        return sorted(self.fixtures, key=_sale_date_key)

    def apply_sync(self, client: "Client") -> List["SyncResult"]:
        """Sync every fixture with the store and record each outcome on the fixture"""
        results = []
        for fixture in self.fixtures:
            result = client.sync(fixture)
            fixture.apply(result)
            if not result.success:
                logger.warning(f"Sync incomplete for {fixture.id}: {result.error or 'store write failed'}")
            results.append(result)
        return results

    def changed_fixtures(self) -> List[Fixture]:
        return [f for f in self.fixtures if f.has_changed() and f.active_sale_count > 0]

    def has_changed(self) -> bool:
        return len(self.changed_fixtures()) > 0

    def get_changes(self) -> List[CalendarEvent]:
        """Calendar events for every valid sale of changed, active fixtures"""
        events = []
        for fixture in self.changed_fixtures():
            events.extend(fixture.calendar_events())
        return events
