"""Configuration loading and validation"""
import os
from dotenv import load_dotenv

from .services.page_parser import DEFAULT_HOME_TEAM
from .utils.logger import setup_logger

logger = setup_logger(__name__)

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    def __init__(self):
        """Load and validate configuration"""
        # Ticket pages
        self.domain = os.getenv("DOMAIN")
        self.index_url = os.getenv("INDEX_URL")
        self.home_team = os.getenv("HOME_TEAM", DEFAULT_HOME_TEAM)
        self.request_timeout = self._get_int("REQUEST_TIMEOUT", 30)

        # Persistence (an empty DB_CLIENT disables change tracking and backups)
        self.db_client = os.getenv("DB_CLIENT", "SQLite")
        self.db_path = os.getenv("DB_PATH", "data/tickets.db")
        self.db_table = os.getenv("DB_TABLE", "fixtures")
        self.db_backup_table = os.getenv("DB_BACKUP_TABLE", "backups")

        # Email
        self.email_host = os.getenv("EMAIL_HOST")
        self.email_port = self._get_int("EMAIL_PORT", 587)
        self.email_secure = os.getenv("EMAIL_SECURE", "false").lower() == "true"
        self.email_user = os.getenv("EMAIL_USER")
        self.email_pass = os.getenv("EMAIL_PASS")
        self.email_from = os.getenv("EMAIL_FROM")
        self.email_to = os.getenv("EMAIL_TO")

        self._validate()
        logger.debug("Configuration loaded successfully")

    def _get_int(self, key: str, default: int) -> int:
        """Get integer environment variable"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"{key} must be an integer, got '{value}'")

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.db_client)

    @property
    def email_enabled(self) -> bool:
        return bool(self.email_host and self.email_from and self.email_to)

    def _validate(self):
        """Validate configuration values"""
        if self.request_timeout < 1:
            raise ValueError("REQUEST_TIMEOUT must be at least 1 second")

        if not 1 <= self.email_port <= 65535:
            raise ValueError("EMAIL_PORT must be between 1 and 65535")

        if not self.domain or not self.index_url:
            logger.warning("DOMAIN or INDEX_URL is not set, ticket pages will not be downloaded")
        if not self.persistence_enabled:
            logger.warning("DB_CLIENT is not set, every fixture with sales will be treated as changed")
        if not self.email_enabled:
            logger.warning("Email is not fully configured, no emails will be sent")

        logger.debug(f"Home team: {self.home_team}")
        logger.debug(f"Persistence: {self.db_client or 'disabled'}")

    def db_options(self) -> dict:
        """Backend specific options passed to the persistence factory"""
        return {"db_path": self.db_path}
