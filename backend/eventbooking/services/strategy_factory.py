"""
Notification transport factory.
Configures which delivery channel the dispatcher uses.
"""

from typing import Optional

from eventbooking.services.interfaces.notification import NotificationTransport
from eventbooking.services.interfaces.log_transport import LogTransport, MemoryTransport
from eventbooking.services.email_service import SmtpTransport
from eventbooking.core.config import Settings, get_settings


def get_notification_transport(settings: Optional[Settings] = None) -> NotificationTransport:
    """
    Get configured notification transport.

    Transport selection via NOTIFICATION_TRANSPORT:
    - log (default): structured log output
    - memory: in-process list, for tests and demos
    - smtp: email through the configured relay
    """
    settings = settings or get_settings()
    transport = settings.NOTIFICATION_TRANSPORT.lower()

    if transport == "smtp":
        return SmtpTransport(settings)
    if transport == "memory":
        return MemoryTransport()
    return LogTransport()
