"""Fetcher for the club's ticket availability pages"""
from typing import Optional
import requests

from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class PageFetcher:
    """Downloads ticket availability pages from the club website"""

    def __init__(self, domain: Optional[str], timeout: int = 30):
        """
        Initialize page fetcher

        Args:
            domain: Base URL of the club website (e.g. 'https://www.liverpoolfc.com')
            timeout: Request timeout in seconds
        """
        self.domain = domain.rstrip('/') if domain else None
        self.timeout = timeout

    def build_url(self, path: str) -> Optional[str]:
        """Join a site-relative path onto the domain (None if no domain is configured)"""
        if not self.domain:
            return None
        return self.domain + path

    def fetch(self, url: str) -> Optional[str]:
        """
        Fetch a page

        Args:
            url: Absolute URL of the page

        Returns:
            Page HTML as string, or None if fetch failed
        """
        try:
            logger.debug(f"Fetching page: {url}")
            response = requests.get(url, timeout=self.timeout)
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            logger.error(f"Failed to fetch page {url}: {e}")
            return None

    def fetch_path(self, path: str) -> Optional[str]:
        """Fetch a site-relative page, or return None if no domain is configured"""
        url = self.build_url(path)
        if url is None:
            logger.warning("No domain configured, skipping page fetch")
            return None
        return self.fetch(url)
