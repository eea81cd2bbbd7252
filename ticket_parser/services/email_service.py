"""Composition of the sales dates and error emails"""
from datetime import datetime
from html import escape
from typing import Callable, List, Optional

from ..models import CalendarEvent
from ..utils.logger import setup_logger
from ..utils.timezone import now_club
from .email_client import DeliveryStatus, EmailAttachment, EmailClient
from .event_consolidator import EventConsolidator

logger = setup_logger(__name__)


class EmailService:
    """Builds the calendar attachment and sends it (or an error report)"""

    FROM_NAME = "LFC Ticket Sales Parser"
    SUBJECT_SALES = "Latest LFC ticket sales dates"
    SUBJECT_ERROR = "LFC Ticket Parser ERROR"
    BODY_SALES = (
        "Please find attached the latest sales dates for LFC fixtures. "
        "Load the file using your preferred calendar software."
    )
    ATTACHMENT_NAME = "lfcinfo.ics"

    def __init__(
        self,
        client: EmailClient,
        recipient: Optional[str],
        consolidator: Optional[EventConsolidator] = None,
        clock: Callable[[], datetime] = now_club
    ):
        """
        Args:
            client: Mail transport
            recipient: Address the emails go to
            consolidator: Event consolidator (one sharing the clock is created if omitted)
            clock: Source of the current time (club timezone)
        """
        self.client = client
        self.recipient = recipient
        self.clock = clock
        self.consolidator = consolidator or EventConsolidator(clock=clock)
        self.events: List[CalendarEvent] = []
        self.ics = ""
        self.summary_lines: List[str] = []

    def construct(self, events: List[CalendarEvent], summary_lines: Optional[List[str]] = None) -> int:
        """
        Prepare the calendar attachment

        Args:
            events: Calendar events to include
            summary_lines: Optional lines listed in the email body

        Returns:
            Number of events in the attachment after merging and expiry

        Raises:
            CalendarEncodingError: If the calendar file cannot be created
        """
        self.events, self.ics = self.consolidator.build(events)
        self.summary_lines = list(summary_lines or [])
        return len(self.events)

    def _html_body(self) -> str:
        items = "".join(f"<li>{escape(line)}</li>" for line in self.summary_lines)
        listing = f"<ul>{items}</ul>" if items else ""
        return f"<p>{escape(self.BODY_SALES)}</p>{listing}"

    def send_events(self) -> DeliveryStatus:
        """
        Send the sales dates email with the calendar attached

        Returns:
            DeliveryStatus of the attempt (FAILED if nothing has been constructed)
        """
        if not self.ics:
            logger.warning("No calendar has been constructed, nothing to send")
            return DeliveryStatus.FAILED

        today = self.clock()
        subject = f"{self.SUBJECT_SALES} ({today.day}/{today.month}/{today.year})"
        body = "\n".join([self.BODY_SALES, ""] + self.summary_lines)
        attachment = EmailAttachment(
            filename=self.ATTACHMENT_NAME,
            content=self.ics.encode("utf-8"),
            mimetype="text/calendar"
        )

        return self.client.send(self.recipient, subject, body, html=self._html_body(), attachment=attachment)

    def send_error(self, message: str, error: object) -> bool:
        """
        Send an error report

        Failures are logged rather than raised, since there is nowhere left to report them.

        Returns:
            True if the email was sent
        """
        body = f"{message}\r\nThe following went wrong:\r\n{error}"
        try:
            status = self.client.send(self.recipient, self.SUBJECT_ERROR, body)
        except Exception as e:
            logger.error(f"Unable to send error email: {e}")
            return False
        return status == DeliveryStatus.SENT
