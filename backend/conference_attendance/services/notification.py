import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import parseaddr
from typing import Optional

from conference_attendance.core.exceptions import NotificationFailure
from conference_attendance.models.verification import NotificationOutcome

logger = logging.getLogger(__name__)


class NotificationGateway(ABC):
    @abstractmethod
    def notify(self, recipient_email: Optional[str]) -> NotificationOutcome:
        """Deliver the absence notice; never raises."""


class SmtpNotificationGateway(NotificationGateway):
    """Sends the fixed absence notice over SMTP"""

    def __init__(
        self,
        sender: str,
        host: str = "localhost",
        port: int = 25,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = False,
        timeout: float = 10.0,
        subject: str = "Conference Mail",
        body: str = "You were absent",
    ):
        self.sender = sender
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout
        self.subject = subject
        self.body = body

    def build_message(self, recipient_email: str) -> EmailMessage:
        _, address = parseaddr(recipient_email or "")
        if not address or "@" not in address:
            raise NotificationFailure(f"Invalid Email: {recipient_email!r}")

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = address
        message["Subject"] = self.subject
        message.set_content(self.body)
        return message

    def _send(self, message: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.username:
                server.login(self.username, self.password or "")
            server.send_message(message)

    def notify(self, recipient_email: Optional[str]) -> NotificationOutcome:
        try:
            message = self.build_message(recipient_email)
            self._send(message)
        except NotificationFailure as e:
            logger.warning(f"📧 Email not sent: {e}")
            return NotificationOutcome.failure(str(e))
        except (smtplib.SMTPException, OSError, ValueError) as e:
            logger.error(f"❌ Email to {recipient_email} failed: {e}")
            return NotificationOutcome.failure(f"{type(e).__name__}: {e}")

        logger.info(f"📧 Absence notice sent to {recipient_email}")
        return NotificationOutcome.success()
