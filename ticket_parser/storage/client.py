"""Persistence capability shared by every storage backend"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from ..fixtures.fingerprint import FixtureFingerprint
from ..fixtures.fixture import Fixture
from ..models import ChangeState
from ..utils.logger import setup_logger
from ..utils.timezone import now_club
from .backup import Backup

logger = setup_logger(__name__)


class StoreReadError(Exception):
    """Raised when a stored fingerprint cannot be read"""


@dataclass
class SyncResult:
    """Outcome of syncing one fixture with the store"""
    fixture_id: str
    state: ChangeState
    success: bool = True
    error: Optional[Exception] = None


class Client(ABC):
    """
    Stores a fingerprint per fixture (to detect changes between runs) and
    backups of events that failed to send.

    Only ``get`` raises; every other operation logs failures and reports
    them through its return value.
    """

    def __init__(self, fixtures_table: str, backup_table: str, clock: Callable[[], datetime] = now_club):
        self.fixtures_table = fixtures_table
        self.backup_table = backup_table
        self.clock = clock

    @abstractmethod
    def init(self) -> bool:
        """Create the fixture and backup tables if they do not exist"""

    @abstractmethod
    def destroy(self) -> bool:
        """Drop the fixture and backup tables"""

    @abstractmethod
    def get(self, fixture: Fixture) -> Optional[FixtureFingerprint]:
        """
        Retrieve the stored fingerprint for a fixture

        Returns:
            The stored fingerprint, or None if the fixture is new

        Raises:
            StoreReadError: If the store could not be read
        """

    @abstractmethod
    def put(self, fixture: Fixture) -> bool:
        """Store the fixture's fingerprint"""

    @abstractmethod
    def update(self, fixture: Fixture) -> bool:
        """Replace the fixture's stored fingerprint"""

    @abstractmethod
    def backup(self, backup: Backup) -> bool:
        """Store events that failed to send"""

    @abstractmethod
    def restore(self) -> List[Backup]:
        """Retrieve every stored backup, incrementing its attempt count"""

    @abstractmethod
    def reset(self, keys: List[str]) -> bool:
        """Remove the backups with the given date keys"""

    def sync(self, fixture: Fixture) -> SyncResult:
        """
        Decide whether a fixture has changed since the last run and record it

        Fixtures without active sales are never stored or treated as changed.
        If the store cannot be read the fixture is reported as UNKNOWN, which
        counts as changed, so a notification is never silently lost.

        Args:
            fixture: Fixture with its sales already parsed

        Returns:
            SyncResult describing the change state and any store failure
        """
        if fixture.active_sale_count == 0:
            return SyncResult(fixture.id, ChangeState.UNCHANGED)

        try:
            existing = self.get(fixture)
        except StoreReadError as e:
            logger.error(f"Unable to read stored sales for {fixture.id}: {e}")
            return SyncResult(fixture.id, ChangeState.UNKNOWN, success=False, error=e)

        if existing is None:
            logger.debug(f"New fixture with sales: {fixture.id}")
            return SyncResult(fixture.id, ChangeState.CHANGED, success=self.put(fixture))

        if fixture.equals(existing, now=self.clock()):
            return SyncResult(fixture.id, ChangeState.UNCHANGED)

        logger.debug(f"Sales have changed for {fixture.id}")
        return SyncResult(fixture.id, ChangeState.CHANGED, success=self.update(fixture))
