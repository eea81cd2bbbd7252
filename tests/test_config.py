import pytest

from ticket_parser.config import Config


def test_defaults(env):
    for key in ("DB_CLIENT", "DB_PATH", "EMAIL_PORT"):
        env.delenv(key)
    config = Config()
    assert config.home_team == "Liverpool FC"
    assert config.db_client == "SQLite"
    assert config.db_path == "data/tickets.db"
    assert config.db_table == "fixtures"
    assert config.db_backup_table == "backups"
    assert config.email_port == 587
    assert not config.email_secure
    assert config.request_timeout == 30
    assert config.persistence_enabled
    assert config.email_enabled


def test_secure_email(env):
    env.setenv("EMAIL_SECURE", "True")
    env.setenv("EMAIL_PORT", "465")
    config = Config()
    assert config.email_secure
    assert config.email_port == 465


def test_missing_values_are_tolerated(env):
    for key in ("DOMAIN", "INDEX_URL", "EMAIL_HOST", "EMAIL_TO"):
        env.delenv(key)
    env.setenv("DB_CLIENT", "")
    config = Config()
    assert config.domain is None
    assert not config.persistence_enabled
    assert not config.email_enabled


@pytest.mark.parametrize("key, value", [
    ("EMAIL_PORT", "smtp"),
    ("EMAIL_PORT", "0"),
    ("REQUEST_TIMEOUT", "0"),
    ("REQUEST_TIMEOUT", "soon"),
])
def test_invalid_values_raise(env, key, value):
    env.setenv(key, value)
    with pytest.raises(ValueError):
        Config()
