"""
Base Notifier

Defines the interface that all notification channels must implement.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..exceptions import SchedulingError
from ..models import Appointment, NotificationInstruction


class Notifier(ABC):
	"""
	Interfaz base para canales de notificación al cliente.

	El motor solo produce instrucciones (booleans); el contenido y el envío
	son responsabilidad del canal.
	"""

	name = "base"

	@abstractmethod
	def notify(self, instruction: NotificationInstruction, appointment: Optional[Appointment] = None) -> bool:
		"""
		Envía los mensajes indicados por la instrucción.

		Args:
			instruction: qué mensajes enviar (confirmación, cancelación)
			appointment: cita ya reagendada (contexto para el mensaje)

		Returns:
			bool: True si se envió al menos un mensaje

		Raises:
			NotificationError: si falla el envío
		"""
		pass


class NotificationError(SchedulingError):
	"""Excepción para errores de envío de notificaciones."""
	pass
