"""
Scheduling Exceptions

Only truly exceptional conditions are raised: malformed input and missing
referenced entities. Conflicts and policy violations are returned as data.
"""


class SchedulingError(Exception):
	"""Excepción base del motor de agendamiento."""
	pass


class InvalidInputError(SchedulingError, ValueError):
	"""Argumentos mal formados (duración inválida, lista de servicios vacía, etc.)."""
	pass


class NotFoundError(SchedulingError, LookupError):
	"""Entidad referenciada ausente del snapshot recibido."""
	pass
