"""SMTP transport for outgoing emails"""
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from enum import Enum
from typing import Optional

from ..utils.logger import setup_logger

logger = setup_logger(__name__)


class DeliveryStatus(Enum):
    """Result of an attempt to send an email"""
    SENT = "sent"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


@dataclass
class EmailAttachment:
    """A file attached to an email"""
    filename: str
    content: bytes
    mimetype: str = "application/octet-stream"


class EmailClient:
    """Sends emails through an SMTP server"""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        secure: bool = False,
        username: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        from_name: Optional[str] = None,
        timeout: float = 30
    ):
        """
        Initialize email client

        Args:
            host: SMTP server host (sending is disabled when missing)
            port: SMTP server port
            secure: Use implicit SSL rather than STARTTLS
            username: SMTP username
            password: SMTP password
            sender: From address
            from_name: Display name for the From address
            timeout: SMTP socket timeout in seconds
        """
        self.host = host
        self.port = port
        self.secure = secure
        self.username = username
        self.password = password
        self.sender = sender
        self.from_name = from_name
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.sender)

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.secure:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=context)

        smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        smtp.ehlo()
        if smtp.has_extn("starttls"):
            smtp.starttls(context=context)
            smtp.ehlo()
        return smtp

    def send(
        self,
        to: Optional[str],
        subject: str,
        body: str,
        html: Optional[str] = None,
        attachment: Optional[EmailAttachment] = None
    ) -> DeliveryStatus:
        """
        Send an email

        Args:
            to: Recipient address (comma separated for several)
            subject: Subject line
            body: Plain text body
            html: Optional HTML alternative body
            attachment: Optional file attachment

        Returns:
            DeliveryStatus of the attempt (this method never raises)
        """
        if not self.is_configured or not to:
            logger.warning("Email is not configured, skipping send")
            return DeliveryStatus.NOT_CONFIGURED

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = formataddr((self.from_name, self.sender)) if self.from_name else self.sender
        message["To"] = to
        message.set_content(body)
        if html:
            message.add_alternative(html, subtype="html")
        if attachment:
            maintype, _, subtype = attachment.mimetype.partition("/")
            message.add_attachment(
                attachment.content,
                maintype=maintype or "application",
                subtype=subtype or "octet-stream",
                filename=attachment.filename
            )

        try:
            with self._connect() as smtp:
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                refused = smtp.send_message(message)
            if refused:
                logger.error(f"Mail server refused recipients: {refused}")
                return DeliveryStatus.FAILED
            logger.info(f"Sent email '{subject}' to {to}")
            return DeliveryStatus.SENT
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {e}")
            return DeliveryStatus.FAILED
