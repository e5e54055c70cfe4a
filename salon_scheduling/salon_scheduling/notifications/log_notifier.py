"""
Log Notifier

Writes notification instructions to the application log instead of
delivering them. Useful for development and as the default channel.
"""

from typing import Optional

from ..models import Appointment, NotificationInstruction
from ..utils import logger
from .base import Notifier


class LogNotifier(Notifier):
	"""Registra cada mensaje en el logger de notificaciones."""

	name = "log"

	def notify(self, instruction: NotificationInstruction, appointment: Optional[Appointment] = None) -> bool:
		if not instruction.has_messages:
			return False

		log = logger("notifications")
		when = appointment.scheduled_for.strftime("%Y-%m-%d %H:%M") if appointment else "?"

		if instruction.send_cancellation:
			log.info(f"Aviso de cancelación del horario anterior para {instruction.appointment_id}")
		if instruction.send_confirmation:
			log.info(f"Confirmación de nuevo horario para {instruction.appointment_id}: {when}")

		return True


class NullNotifier(Notifier):
	"""Descarta todas las instrucciones."""

	name = "null"

	def notify(self, instruction: NotificationInstruction, appointment: Optional[Appointment] = None) -> bool:
		return False
