"""
Duration Composer

Turns the services selected for a booking into a single duration,
applying buffer time only between consecutive services.
"""

from typing import Any, Mapping, Optional, Sequence, Union

from ..exceptions import InvalidInputError
from ..models import Service
from ..utils import is_positive_minutes, throw


def _service_duration(service: Union[Service, Mapping[str, Any]]) -> int:
	duration = service.get("duration") if isinstance(service, Mapping) else service.duration

	if not is_positive_minutes(duration):
		throw(f"Duración de servicio inválida: {duration!r}", InvalidInputError)

	return duration


def compose_duration(
	services: Sequence[Union[Service, Mapping[str, Any]]],
	buffer_minutes: Optional[int] = None
) -> int:
	"""
	Calcula la duración total (minutos) de una reserva con varios servicios.

	Args:
		services: servicios seleccionados (Service o dict con "duration")
		buffer_minutes: minutos de buffer ENTRE servicios (default: 0)

	Returns:
		int: suma de duraciones + buffer_minutes * (cantidad - 1)

	Raises:
		InvalidInputError: lista vacía, duración no positiva o buffer negativo

	Ejemplos:
		[30, 45] sin buffer -> 75
		[30, 120] con buffer 15 -> 165
		[45] con buffer 15 -> 45 (un solo servicio no lleva buffer)
	"""
	if not services:
		throw("Debe seleccionar al menos un servicio", InvalidInputError)

	if buffer_minutes is not None and buffer_minutes < 0:
		throw(f"buffer_minutes no puede ser negativo ({buffer_minutes})", InvalidInputError)

	total = sum(_service_duration(service) for service in services)

	if len(services) > 1 and buffer_minutes:
		total += buffer_minutes * (len(services) - 1)

	return total
