"""
SMTP notification transport.
Implements NotificationTransport by sending each notice as one email.

A single message is sent per notice with every recipient on the envelope;
event update notices therefore reach all confirmed customers in one send.
Delivery errors propagate to the job queue, which marks the job failed.
"""

from email.message import EmailMessage

from aiosmtplib import send

from eventbooking.services.interfaces.notification import Notice, NotificationTransport
from eventbooking.core.config import Settings
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)


class SmtpTransport(NotificationTransport):
    """
    Email delivery through an SMTP relay.

    Use when:
    - Customers should actually receive confirmations
    - A relay (local MTA, SES, Mailgun SMTP, ...) is available
    """

    name = "smtp"

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME or None
        self.password = settings.SMTP_PASSWORD or None
        self.sender = settings.SMTP_SENDER
        self.start_tls = settings.SMTP_START_TLS

    def build_message(self, notice: Notice) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(notice.recipients)
        msg["Subject"] = notice.subject
        msg.set_content(notice.body)
        return msg

    async def deliver(self, notice: Notice) -> None:
        if not notice.recipients:
            logger.warning("notification_skipped", reason="no_recipients", subject=notice.subject)
            return

        await send(
            self.build_message(notice),
            hostname=self.host,
            port=self.port,
            username=self.username,
            password=self.password,
            start_tls=self.start_tls,
        )
        logger.info(
            "notification_emailed",
            subject=notice.subject,
            recipients=len(notice.recipients),
            relay=f"{self.host}:{self.port}",
        )
