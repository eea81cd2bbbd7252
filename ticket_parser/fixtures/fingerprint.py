"""Typed change-detection fingerprints persisted per fixture"""
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class SaleFingerprint:
    """The parts of a valid sale that are compared between runs"""
    description: str
    date: datetime

    def to_dict(self) -> Dict[str, str]:
        return {"description": self.description, "date": self.date.isoformat()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SaleFingerprint":
        return cls(
            description=str(data["description"]),
            date=datetime.fromisoformat(str(data["date"])),
        )


@dataclass(frozen=True)
class FixtureFingerprint:
    """Fixture identity, match label and its valid sales in page order"""
    id: str
    match: str
    sales: Tuple[SaleFingerprint, ...]

    def to_json(self) -> str:
        """Canonical JSON form stored against the fixture ID"""
        payload = {
            "fixture": {
                "id": self.id,
                "match": self.match,
                "sales": [sale.to_dict() for sale in self.sales],
            }
        }
        return json.dumps(payload, ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "FixtureFingerprint":
        """
        Rebuild a fingerprint from its stored JSON

        Raises:
            ValueError: If the JSON is malformed or missing fields
        """
        try:
            fixture = json.loads(raw)["fixture"]
            return cls(
                id=str(fixture["id"]),
                match=str(fixture["match"]),
                sales=tuple(SaleFingerprint.from_dict(sale) for sale in fixture["sales"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed fixture fingerprint: {e}") from e
