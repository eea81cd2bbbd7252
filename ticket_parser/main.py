"""Main entry point for the LFC ticket sales parser"""
import argparse
import sys
from datetime import datetime
from typing import Callable, List, Optional

from .config import Config
from .fixtures.fixture_list import FixtureList
from .models import CalendarEvent
from .services.email_client import DeliveryStatus, EmailClient
from .services.email_service import EmailService
from .services.event_consolidator import CalendarEncodingError
from .services.page_fetcher import PageFetcher
from .storage.backup import Backup
from .storage.client import Client
from .storage.factory import PersistenceFactory
from .utils.logger import setup_logger
from .utils.timezone import now_club

logger = setup_logger(__name__)


class TicketParser:
    """Run orchestrator: scrape, detect changes, email, back up on failure"""

    def __init__(
        self,
        config: Optional[Config] = None,
        fetcher: Optional[PageFetcher] = None,
        client: Optional[Client] = None,
        email_client: Optional[EmailClient] = None,
        clock: Callable[[], datetime] = now_club
    ):
        """
        Initialize parser components

        Args:
            config: Configuration (loaded from the environment if omitted)
            fetcher: Page fetcher
            client: Storage client (built from DB_CLIENT if omitted)
            email_client: Mail transport
            clock: Source of the current time (club timezone)
        """
        self.config = config or Config()
        self.clock = clock
        self.fetcher = fetcher or PageFetcher(self.config.domain, self.config.request_timeout)
        self.client = client
        if self.client is None and self.config.persistence_enabled:
            self.client = PersistenceFactory.get_client(
                self.config.db_client,
                self.config.db_table,
                self.config.db_backup_table,
                clock=clock,
                **self.config.db_options()
            )

        email_client = email_client or EmailClient(
            host=self.config.email_host,
            port=self.config.email_port,
            secure=self.config.email_secure,
            username=self.config.email_user,
            password=self.config.email_pass,
            sender=self.config.email_from,
            from_name=EmailService.FROM_NAME,
            timeout=self.config.request_timeout
        )
        self.email = EmailService(email_client, self.config.email_to, clock=clock)

    def run(self) -> bool:
        """
        Run one complete parse

        Returns:
            True if the run completed and any changes were emailed (or kept for retry)
        """
        try:
            return self._run()
        except Exception as e:
            logger.error(f"Ticket parsing failed: {e}", exc_info=True)
            self.email.send_error("Error trying to send LFC sales email", e)
            return False

    def _init_persistence(self) -> bool:
        """Create tables, reporting (but surviving) any failure"""
        if self.client is None:
            logger.info("Persistence disabled, every fixture with sales counts as changed")
            return False
        try:
            logger.info(f"Initialising {self.config.db_client} database")
            if self.client.init():
                return True
            raise RuntimeError("database initialisation returned failure")
        except Exception as e:
            logger.error(f"Unable to initialise database: {e}")
            self.email.send_error(
                "Error trying to initialise DB",
                f"{e}\r\nThe email should still send but may contain details already sent."
            )
            return False

    def _run(self) -> bool:
        persistable = self._init_persistence()

        logger.info("Downloading fixture list")
        fixtures = FixtureList(self.config.index_url, self.config.home_team)
        if not fixtures.download(self.fetcher):
            raise RuntimeError("Unable to retrieve fixtures")

        count = fixtures.parse_index_page()
        logger.info(f"{count} fixtures found")

        events: List[CalendarEvent] = []
        summary: List[str] = []
        if count > 0:
            if not fixtures.parse_all(self.fetcher):
                logger.warning("Some fixtures could not be parsed, continuing with the rest")
            if persistable:
                logger.info("Syncing with database")
                fixtures.apply_sync(self.client)
            events = fixtures.get_changes()
            changed = fixtures.changed_fixtures()
            for fixture in fixtures.get_fixtures(sort_by_sale_date=True):
                if fixture in changed:
                    summary.append(fixture.match_label())
                    summary.extend(f"  {line}" for line in fixture.summary_lines())

        backups = self.client.restore() if persistable else []
        fresh = Backup(self.clock(), events)
        pending = Backup(self.clock(), events)
        for backup in backups:
            logger.info(f"Retrying {len(backup.events)} events from {backup.key} (attempt {backup.attempts})")
            pending.merge(backup)

        if not pending.events:
            logger.info("No changes since last email")
            return True

        try:
            upcoming = self.email.construct(pending.events, summary)
        except CalendarEncodingError:
            self._keep_for_retry(persistable, fresh, backups)
            raise

        if upcoming == 0:
            logger.info("All changed sales have already passed, nothing to send")
            self._clear(persistable, backups)
            return True

        logger.info(f"Emailing {upcoming} calendar events")
        status = self.email.send_events()
        if status == DeliveryStatus.SENT:
            self._clear(persistable, backups)
            return True
        if status == DeliveryStatus.NOT_CONFIGURED:
            logger.warning("Email not configured, calendar events were not sent")
            return True

        logger.error("Unable to send email, backing up events for the next run")
        self._keep_for_retry(persistable, fresh, backups)
        return False

    def _clear(self, persistable: bool, backups: List[Backup]):
        if persistable and backups:
            self.client.reset([backup.key for backup in backups])

    def _keep_for_retry(self, persistable: bool, fresh: Backup, backups: List[Backup]):
        """
        Back up this run's events under today's key

        Earlier days keep their own backups until a send succeeds. An existing
        backup for today absorbs the new events and keeps its attempt count.
        """
        if not persistable:
            return
        existing = next((backup for backup in backups if backup.is_today(fresh.date)), None)
        if existing is not None:
            existing.merge(fresh)
            self.client.backup(existing)
        elif fresh.events:
            self.client.backup(fresh)

    def setup(self) -> bool:
        """Create the storage tables"""
        if self.client is None:
            logger.error("DB_CLIENT is not set, nothing to set up")
            return False
        return self.client.init()

    def teardown(self) -> bool:
        """Drop the storage tables"""
        if self.client is None:
            logger.error("DB_CLIENT is not set, nothing to tear down")
            return False
        return self.client.destroy()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description="Email newly announced LFC ticket sale dates")
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--setup', action='store_true', help='Create the storage tables and exit')
    group.add_argument('--teardown', action='store_true', help='Drop the storage tables and exit')
    args = parser.parse_args(argv)

    try:
        ticket_parser = TicketParser()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.setup:
        success = ticket_parser.setup()
    elif args.teardown:
        success = ticket_parser.teardown()
    else:
        logger.info("Running LFC Ticket Parser")
        success = ticket_parser.run()
        logger.info("Ticket parsing complete")
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
