"""
Notifier Factory

Factory pattern to get the correct notifier based on provider.
"""

from .base import Notifier


def get_notifier(provider: str) -> Notifier:
	"""
	Factory para obtener el notifier correcto según proveedor.

	Args:
		provider: "log" o "null"

	Returns:
		Notifier: instancia del notifier

	Raises:
		ValueError: si provider no es soportado
	"""
	if provider == "log":
		from .log_notifier import LogNotifier
		return LogNotifier()
	elif provider == "null":
		from .log_notifier import NullNotifier
		return NullNotifier()
	else:
		raise ValueError(f"Unsupported provider: {provider}")
