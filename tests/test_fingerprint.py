import json
from datetime import datetime

import pytest
import pytz

from ticket_parser.fixtures.fingerprint import FixtureFingerprint, SaleFingerprint

LONDON = pytz.timezone("Europe/London")


def _fingerprint():
    return FixtureFingerprint(
        id="2024-brentford-h-premier-league",
        match="Brentford (H) - Premier League (2024-25)",
        sales=(SaleFingerprint("Additional Members Sale", LONDON.localize(datetime(2024, 8, 19, 11, 0))),)
    )


def test_canonical_json():
    assert json.loads(_fingerprint().to_json()) == {
        "fixture": {
            "id": "2024-brentford-h-premier-league",
            "match": "Brentford (H) - Premier League (2024-25)",
            "sales": [{"description": "Additional Members Sale", "date": "2024-08-19T11:00:00+01:00"}],
        }
    }


def test_from_json_restores_an_equal_fingerprint():
    fingerprint = _fingerprint()
    assert FixtureFingerprint.from_json(fingerprint.to_json()) == fingerprint


@pytest.mark.parametrize("raw", [
    "not json",
    "[]",
    '{"fixture": {"id": "x", "match": "y"}}',
    '{"fixture": {"id": "x", "match": "y", "sales": [{"description": "z", "date": "yesterday"}]}}',
])
def test_malformed_json_raises_value_error(raw):
    with pytest.raises(ValueError):
        FixtureFingerprint.from_json(raw)
