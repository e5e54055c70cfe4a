"""
Notifications Module

Delivers reschedule notification instructions:
- Base notifier interface (base.py)
- Factory for getting the right notifier (factory.py)
- Log and null implementations (log_notifier.py)
- Dispatch of reschedule results (reschedule.py)
"""

from .base import NotificationError, Notifier
from .factory import get_notifier
from .log_notifier import LogNotifier, NullNotifier
from .reschedule import dispatch_notifications

__all__ = [
	"LogNotifier",
	"NotificationError",
	"Notifier",
	"NullNotifier",
	"dispatch_notifications",
	"get_notifier",
]
