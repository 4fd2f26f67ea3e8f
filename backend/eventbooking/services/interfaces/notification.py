"""
Notification transport interface.
Allows swapping how notices leave the process without touching formatting.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Notice:
    """A fully formatted, human-readable notification."""

    recipients: tuple[str, ...]
    subject: str
    body: str


class NotificationTransport(ABC):
    """
    Interface for notification delivery channels.

    Implementations:
    - LogTransport: Writes the notice to the structured log
    - MemoryTransport: Keeps delivered notices in a list
    - SmtpTransport: Sends the notice as an email
    """

    name: str = "abstract"

    @abstractmethod
    async def deliver(self, notice: Notice) -> None:
        """
        Deliver a notice to every recipient.

        Raises on delivery failure; the job queue records the failure and
        moves on.
        """
        pass
