"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .notification import Notice, NotificationTransport
from .log_transport import LogTransport, MemoryTransport

__all__ = ['Notice', 'NotificationTransport', 'LogTransport', 'MemoryTransport']
