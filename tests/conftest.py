from datetime import datetime
from pathlib import Path
from typing import ClassVar, Dict, List, Optional

import pytest
import pytz
import smtplib

from ticket_parser.services.page_fetcher import PageFetcher

DATA_DIR = Path(__file__).resolve().parent / "data"

DOMAIN = "https://www.liverpoolfc.example"
INDEX_URL = "/tickets/tickets-availability"
PAGES = {
    INDEX_URL: "index.html",
    f"{INDEX_URL}/liverpool-fc-v-brentford-25-aug-2024-0430pm": "brentford.html",
    f"{INDEX_URL}/manchester-united-v-liverpool-fc-1-sep-2024-0400pm": "manchester-united.html",
    f"{INDEX_URL}/liverpool-fc-v-nottingham-forest-14-sep-2024-0300pm": "nottingham-forest.html",
    f"{INDEX_URL}/ac-milan-v-liverpool-fc-17-sep-2024-0800pm": "ac-milan.html",
    f"{INDEX_URL}/liverpool-fc-v-chelsea-19-oct-2024-0530pm": "chelsea.html",
    f"{INDEX_URL}/brighton-hove-albion-v-liverpool-fc-30-oct-2024-0730pm": "brighton.html",
}

LONDON = pytz.timezone("Europe/London")
NOW = LONDON.localize(datetime(2024, 8, 18, 12, 0))


def read_page(name: str) -> str:
    return (DATA_DIR / name).read_text(encoding="utf-8")


class FakeFetcher(PageFetcher):
    """Serves pages from tests/data instead of the network"""

    def __init__(self, pages: Optional[Dict[str, str]] = None, domain: Optional[str] = DOMAIN):
        super().__init__(domain)
        self.pages = dict(PAGES if pages is None else pages)
        self.requested: List[str] = []

    def fetch(self, url: str) -> Optional[str]:
        self.requested.append(url)
        name = self.pages.get(url[len(self.domain):])
        return read_page(name) if name else None


class DummySMTP:
    """Stands in for smtplib.SMTP and smtplib.SMTP_SSL"""

    instances: ClassVar[List["DummySMTP"]] = []
    sent: ClassVar[List[object]] = []
    fail: ClassVar[bool] = False
    refuse: ClassVar[bool] = False

    def __init__(self, host: str, port: int, timeout: Optional[float] = None, **kwargs) -> None:
        if DummySMTP.fail:
            raise smtplib.SMTPConnectError(421, b"Service not available")
        self.host = host
        self.port = port
        self.timeout = timeout
        self.context = kwargs.get("context")
        self.starttls_called = False
        self.login_args = None
        DummySMTP.instances.append(self)

    def __enter__(self) -> "DummySMTP":
        return self

    def __exit__(self, *_exc: object) -> None:
        return None

    def ehlo(self) -> None:
        return None

    def has_extn(self, name: str) -> bool:
        return name.lower() == "starttls"

    def starttls(self, *_args: object, **_kwargs: object) -> None:
        self.starttls_called = True

    def login(self, username: str, password: str) -> None:
        self.login_args = (username, password)

    def send_message(self, message: object) -> dict:
        if DummySMTP.refuse:
            return {message["To"]: (550, b"Mailbox unavailable")}
        DummySMTP.sent.append(message)
        return {}


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def load_page():
    return read_page


@pytest.fixture
def smtp(monkeypatch: pytest.MonkeyPatch):
    DummySMTP.instances = []
    DummySMTP.sent = []
    DummySMTP.fail = False
    DummySMTP.refuse = False
    monkeypatch.setattr(smtplib, "SMTP", DummySMTP)
    monkeypatch.setattr(smtplib, "SMTP_SSL", DummySMTP)
    return DummySMTP


ENV_KEYS = (
    "DOMAIN", "INDEX_URL", "HOME_TEAM", "REQUEST_TIMEOUT",
    "DB_CLIENT", "DB_PATH", "DB_TABLE", "DB_BACKUP_TABLE",
    "EMAIL_HOST", "EMAIL_PORT", "EMAIL_SECURE", "EMAIL_USER", "EMAIL_PASS", "EMAIL_FROM", "EMAIL_TO",
)


@pytest.fixture
def env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """A complete environment with the database under tmp_path"""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    values = {
        "DOMAIN": DOMAIN,
        "INDEX_URL": INDEX_URL,
        "DB_CLIENT": "SQLite",
        "DB_PATH": str(tmp_path / "tickets.db"),
        "EMAIL_HOST": "smtp.example.com",
        "EMAIL_PORT": "587",
        "EMAIL_USER": "parser",
        "EMAIL_PASS": "secret",
        "EMAIL_FROM": "parser@example.com",
        "EMAIL_TO": "fan@example.com",
    }
    for key, value in values.items():
        monkeypatch.setenv(key, value)
    return monkeypatch
