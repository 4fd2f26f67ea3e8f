"""
Log-based notification transports - no external delivery.
"""

from eventbooking.services.interfaces.notification import Notice, NotificationTransport
from eventbooking.core.logging import get_logger

logger = get_logger(__name__)

RULE_WIDTH = 60


def render_notice(notice: Notice) -> str:
    """Render a notice as a framed plain-text block."""
    lines = [
        "=" * RULE_WIDTH,
        notice.subject.upper(),
        "=" * RULE_WIDTH,
        f"To: {', '.join(notice.recipients)}",
        "-" * RULE_WIDTH,
        notice.body,
        "=" * RULE_WIDTH,
    ]
    return "\n".join(lines)


class LogTransport(NotificationTransport):
    """
    Writes notices to the application log.

    Use when:
    - Local development
    - No mail relay is configured
    """

    name = "log"

    async def deliver(self, notice: Notice) -> None:
        logger.info(
            "notification_delivered",
            transport=self.name,
            subject=notice.subject,
            recipients=len(notice.recipients),
            rendered="\n" + render_notice(notice),
        )


class MemoryTransport(NotificationTransport):
    """Keeps every delivered notice in memory, in delivery order."""

    name = "memory"

    def __init__(self):
        self.delivered: list[Notice] = []

    async def deliver(self, notice: Notice) -> None:
        self.delivered.append(notice)
        logger.debug("notification_recorded", subject=notice.subject, recipients=len(notice.recipients))

    def clear(self) -> None:
        self.delivered.clear()
