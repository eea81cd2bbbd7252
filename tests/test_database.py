import sqlite3
from datetime import date, datetime

import pytest
import pytz

from ticket_parser.fixtures.fixture import Fixture
from ticket_parser.fixtures.sale import Sale
from ticket_parser.models import CalendarEvent, Status, Venue
from ticket_parser.storage.backup import Backup
from ticket_parser.storage.database import SQLiteClient
from ticket_parser.storage.factory import DatabaseType, PersistenceFactory

LONDON = pytz.timezone("Europe/London")
NOW = LONDON.localize(datetime(2024, 8, 18, 12, 0))


@pytest.fixture
def client(tmp_path):
    client = SQLiteClient("fixtures", "backups", db_path=str(tmp_path / "data" / "tickets.db"), clock=lambda: NOW)
    assert client.init()
    return client


def _fixture(*sales):
    fixture = Fixture(
        "/brentford", "Brentford", Venue.HOME, "Premier League", LONDON.localize(datetime(2024, 8, 25, 16, 30))
    )
    fixture.sales = list(sales)
    return fixture


MEMBERS = Sale("Members Sale", Status.PENDING, LONDON.localize(datetime(2024, 8, 19, 11, 0)))
GENERAL = Sale("General Sale", Status.PENDING, LONDON.localize(datetime(2024, 8, 21, 9, 0)))


def test_init_is_idempotent(client):
    assert client.init()


def test_get_missing_fixture(client):
    assert client.get(_fixture(MEMBERS)) is None


def test_put_then_get(client):
    fixture = _fixture(MEMBERS)
    assert client.put(fixture)
    assert client.get(fixture) == fixture.fingerprint()


def test_put_without_active_sales_is_refused(client):
    assert not client.put(_fixture())


def test_update(client):
    assert client.put(_fixture(MEMBERS))
    updated = _fixture(MEMBERS, GENERAL)
    assert client.update(updated)
    assert client.get(updated) == updated.fingerprint()


def test_update_missing_fixture_fails(client):
    assert not client.update(_fixture(MEMBERS))


def test_malformed_stored_sales_read_as_missing(client):
    fixture = _fixture(MEMBERS)
    with sqlite3.connect(str(client.db_path)) as conn:
        conn.execute(
            "INSERT INTO fixtures (fixture, sales, updated_at) VALUES (?, ?, ?)",
            (fixture.id, "{not json", NOW.isoformat())
        )
    assert client.get(fixture) is None
    assert client.put(fixture)
    assert client.get(fixture) == fixture.fingerprint()


def test_backup_restore_and_reset(client):
    events = [CalendarEvent("Chelsea (H) : Members Sale (13+)", (2024, 9, 4, 8, 15))]
    assert client.backup(Backup(date(2024, 8, 17), events))
    assert client.backup(Backup(date(2024, 8, 18), events))

    restored = client.restore()
    assert [backup.key for backup in restored] == ["20240817", "20240818"]
    assert restored[0].events == events
    assert [backup.attempts for backup in restored] == [2, 2]
    assert [backup.attempts for backup in client.restore()] == [3, 3]

    assert client.reset(["20240817"])
    assert [backup.key for backup in client.restore()] == ["20240818"]


def test_backup_replaces_same_day(client):
    first = [CalendarEvent("Chelsea (H) : Members Sale", (2024, 9, 4, 8, 15))]
    second = first + [CalendarEvent("Everton (A) : Members Sale", (2024, 9, 6, 8, 15))]
    client.backup(Backup(date(2024, 8, 18), first))
    client.backup(Backup(date(2024, 8, 18), second))
    restored = client.restore()
    assert len(restored) == 1
    assert restored[0].events == second


def test_restore_with_no_backups(client):
    assert client.restore() == []


def test_destroy_drops_tables(client):
    client.put(_fixture(MEMBERS))
    assert client.destroy()
    assert client.init()
    assert client.get(_fixture(MEMBERS)) is None


def test_invalid_table_name_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        SQLiteClient("fixtures; DROP TABLE x", "backups", db_path=str(tmp_path / "t.db"))


def test_factory_builds_sqlite_client(tmp_path):
    client = PersistenceFactory.get_client("SQLite", "fixtures", "backups", db_path=str(tmp_path / "t.db"))
    assert isinstance(client, SQLiteClient)
    assert isinstance(PersistenceFactory.get_client(DatabaseType.SQLITE, "f", "b"), SQLiteClient)


def test_factory_rejects_unknown_backend():
    with pytest.raises(ValueError):
        PersistenceFactory.get_client("DynamoDB", "fixtures", "backups")
