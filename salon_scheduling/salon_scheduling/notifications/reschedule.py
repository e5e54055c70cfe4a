# Copyright (c) 2026, Sebastian Ortiz Valencia and contributors
# For license information, please see license.txt

"""
Reschedule Notification Service

Hands the notification instruction of a successful reschedule to a
notifier. Delivery failures are logged and never undo the reschedule.
"""

from ..models import RescheduleResult
from ..utils import logger
from .base import NotificationError, Notifier


def dispatch_notifications(result: RescheduleResult, notifier: Notifier) -> bool:
	"""
	Envía las notificaciones de un reagendamiento exitoso.

	Args:
		result: resultado de reschedule_appointment
		notifier: canal de envío

	Returns:
		bool: True si el notifier envió algo
	"""
	if not result.success or result.notifications is None:
		return False

	if not result.notifications.has_messages:
		logger("notifications").info(
			f"Sin notificaciones para {result.notifications.appointment_id}, skipping."
		)
		return False

	try:
		return notifier.notify(result.notifications, result.appointment)
	except NotificationError as e:
		logger("notifications").error(
			f"Failed to send reschedule notification for {result.notifications.appointment_id}: {str(e)}"
		)
		return False
