from datetime import datetime

import pytest
import pytz

from ticket_parser.fixtures.fixture import Fixture
from ticket_parser.fixtures.sale import Sale
from ticket_parser.models import ChangeState, Status, Venue
from ticket_parser.storage.client import StoreReadError
from ticket_parser.storage.database import SQLiteClient

LONDON = pytz.timezone("Europe/London")
NOW = LONDON.localize(datetime(2024, 8, 18, 12, 0))

PAST = Sale("Members Sale (13+)", Status.PENDING, LONDON.localize(datetime(2024, 8, 16, 8, 15)))
MEMBERS = Sale("Members Sale", Status.PENDING, LONDON.localize(datetime(2024, 8, 19, 11, 0)))
GENERAL = Sale("General Sale", Status.PENDING, LONDON.localize(datetime(2024, 8, 21, 9, 0)))
ENDED = Sale("ST Holders Sale", Status.ENDED, LONDON.localize(datetime(2024, 8, 5, 9, 0)))


class Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def client(tmp_path, clock):
    client = SQLiteClient(db_path=str(tmp_path / "tickets.db"), clock=clock)
    client.init()
    return client


def _fixture(*sales):
    fixture = Fixture(
        "/brentford", "Brentford", Venue.HOME, "Premier League", LONDON.localize(datetime(2024, 8, 25, 16, 30))
    )
    fixture.sales = list(sales)
    return fixture


def test_new_fixture_with_sales_is_changed_and_stored(client):
    fixture = _fixture(MEMBERS)
    result = client.sync(fixture)
    assert result.state == ChangeState.CHANGED
    assert result.success
    assert result.fixture_id == fixture.id
    assert client.get(fixture) == fixture.fingerprint()


def test_new_fixture_without_sales_is_unchanged_and_not_stored(client):
    fixture = _fixture(ENDED)
    assert client.sync(fixture).state == ChangeState.UNCHANGED
    assert client.get(fixture) is None


def test_second_run_with_same_sales_is_unchanged(client):
    client.sync(_fixture(MEMBERS))
    assert client.sync(_fixture(MEMBERS, ENDED)).state == ChangeState.UNCHANGED


def test_added_sale_is_changed_and_updated(client):
    client.sync(_fixture(MEMBERS))
    fixture = _fixture(MEMBERS, GENERAL)
    result = client.sync(fixture)
    assert result.state == ChangeState.CHANGED
    assert result.success
    assert client.get(fixture) == fixture.fingerprint()
    assert client.sync(_fixture(MEMBERS, GENERAL)).state == ChangeState.UNCHANGED


def test_sale_dropping_off_after_it_passed_is_unchanged(client, clock):
    client.sync(_fixture(MEMBERS, GENERAL))
    clock.now = LONDON.localize(datetime(2024, 8, 20, 9, 0))
    assert client.sync(_fixture(GENERAL)).state == ChangeState.UNCHANGED


def test_future_sale_disappearing_is_changed(client):
    client.sync(_fixture(MEMBERS, GENERAL))
    assert client.sync(_fixture(GENERAL)).state == ChangeState.CHANGED


def test_stored_past_sale_missing_live_is_unchanged(client):
    client.put(_fixture(PAST, MEMBERS))
    assert client.sync(_fixture(MEMBERS)).state == ChangeState.UNCHANGED


def test_read_failure_fails_open(client, monkeypatch):
    def broken(_fixture):
        raise StoreReadError("database is locked")

    monkeypatch.setattr(client, "get", broken)
    result = client.sync(_fixture(MEMBERS))
    assert result.state == ChangeState.UNKNOWN
    assert not result.success
    assert isinstance(result.error, StoreReadError)


def test_sqlite_read_error_is_raised_as_store_read_error(tmp_path):
    client = SQLiteClient(db_path=str(tmp_path / "tickets.db"))
    with pytest.raises(StoreReadError):
        client.get(_fixture(MEMBERS))


def test_write_failure_is_reported(client, monkeypatch):
    monkeypatch.setattr(client, "put", lambda _fixture: False)
    result = client.sync(_fixture(MEMBERS))
    assert result.state == ChangeState.CHANGED
    assert not result.success
