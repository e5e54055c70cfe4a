"""
Slot Generation Service

Generates candidate start times for a booking of a given duration, considering:
- Open intervals of the day (working hours split at the break)
- Existing appointments of the professional
- Blocked intervals
"""

from datetime import date, datetime, timedelta
from itertools import islice
from typing import Iterator, List, Optional, Sequence, Union

from ..exceptions import InvalidInputError
from ..models import Appointment, BlockedInterval, WorkingHours
from ..utils import TimezoneLike, getdate, is_positive_minutes, localize, resolve_timezone, throw
from .calendar_rules import get_open_intervals, subtract_intervals

DEFAULT_SLOT_GRANULARITY = 30
DEFAULT_MAX_DAYS_TO_CHECK = 14


def _validate_slot_arguments(
	duration: int,
	professional_id: str,
	granularity: int,
	max_results: Optional[int]
) -> None:
	if not professional_id:
		throw("professional_id es requerido", InvalidInputError)

	if not is_positive_minutes(duration):
		throw(f"La duración debe ser mayor que 0 (recibido {duration!r})", InvalidInputError)

	if not is_positive_minutes(granularity):
		throw(f"La granularidad debe ser mayor que 0 (recibido {granularity!r})", InvalidInputError)

	if max_results is not None and max_results < 0:
		throw(f"max_results no puede ser negativo ({max_results})", InvalidInputError)


def _frame_timezone(
	timezone: TimezoneLike,
	existing_appointments: Sequence[Appointment],
	blocked_intervals: Sequence[BlockedInterval]
):
	"""Sin timezone explícita, se usa la del primer instante aware del snapshot."""
	references = [appt.scheduled_for for appt in existing_appointments]
	references.extend(block.start for block in blocked_intervals)
	return resolve_timezone(timezone, *references)


def get_free_intervals(
	target_date: Union[date, str],
	professional_id: str,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	timezone: TimezoneLike = None,
	exclude_id: Optional[str] = None
) -> List[dict]:
	"""
	Obtiene los intervalos libres de un día.

	Algoritmo:
		1. Intervalos abiertos del día (partidos en el break)
		2. Ocupación: appointments activos del profesional + bloqueos
		3. Restar ocupación (ordenada y unida) de los intervalos abiertos

	Returns:
		list[dict]: [{"start": datetime, "end": datetime}, ...] disjuntos y ordenados
	"""
	tz = _frame_timezone(timezone, existing_appointments, blocked_intervals)
	open_intervals = get_open_intervals(getdate(target_date), working_hours, tz)

	if not open_intervals:
		return []

	busy = [
		{"start": localize(appt.scheduled_for, tz), "end": localize(appt.end, tz)}
		for appt in existing_appointments
		if appt.professional_id == professional_id
		and appt.is_active
		and appt.id != exclude_id
	]
	busy.extend(
		{"start": localize(block.start, tz), "end": localize(block.end, tz)}
		for block in blocked_intervals
	)

	return subtract_intervals(open_intervals, busy)


def iter_available_slots(
	target_date: Union[date, str],
	duration: int,
	professional_id: str,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	granularity: int = DEFAULT_SLOT_GRANULARITY,
	timezone: TimezoneLike = None,
	exclude_id: Optional[str] = None
) -> Iterator[datetime]:
	"""
	Genera (lazy) los inicios de slot disponibles de un día, en orden.

	La grilla se ancla al inicio de cada tramo abierto (apertura y fin del
	break) y avanza cada `granularity` minutos. Un inicio se emite si
	[inicio, inicio + duration) cabe completo en un intervalo libre.
	"""
	_validate_slot_arguments(duration, professional_id, granularity, None)

	tz = _frame_timezone(timezone, existing_appointments, blocked_intervals)
	target_date = getdate(target_date)
	step = timedelta(minutes=granularity)
	length = timedelta(minutes=duration)

	free_intervals = get_free_intervals(
		target_date,
		professional_id,
		existing_appointments,
		working_hours,
		blocked_intervals,
		timezone=tz,
		exclude_id=exclude_id
	)

	for open_interval in get_open_intervals(target_date, working_hours, tz):
		anchor = open_interval["start"]

		for free in free_intervals:
			# Solo los libres dentro de este tramo abierto
			if free["start"] < open_interval["start"] or free["end"] > open_interval["end"]:
				continue

			# Primer punto de la grilla >= free.start
			offset = free["start"] - anchor
			steps = -(-offset // step)
			current_slot_start = anchor + steps * step

			while current_slot_start + length <= free["end"]:
				yield localize(current_slot_start, tz)
				current_slot_start += step


def find_available_slots(
	target_date: Union[date, str],
	duration: int,
	professional_id: str,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	max_results: Optional[int] = None,
	granularity: int = DEFAULT_SLOT_GRANULARITY,
	timezone: TimezoneLike = None,
	exclude_id: Optional[str] = None
) -> List[datetime]:
	"""
	Encuentra horarios disponibles para un día.

	Args:
		target_date: fecha (date o YYYY-MM-DD)
		duration: duración de la reserva en minutos
		professional_id: profesional
		existing_appointments: snapshot de appointments
		working_hours: reglas semanales
		blocked_intervals: bloqueos puntuales
		max_results: máximo de slots (None = todo el día)
		granularity: paso de la grilla en minutos (default: 30)
		timezone: timezone del profesional
		exclude_id: appointment a ignorar (el que se está moviendo)

	Returns:
		list[datetime]: inicios ordenados; [] si el día está lleno o cerrado

	El finder no guarda cursor: para más resultados se sube max_results
	o se avanza de fecha.
	"""
	_validate_slot_arguments(duration, professional_id, granularity, max_results)

	slots = iter_available_slots(
		target_date,
		duration,
		professional_id,
		existing_appointments,
		working_hours,
		blocked_intervals,
		granularity=granularity,
		timezone=timezone,
		exclude_id=exclude_id
	)

	return list(islice(slots, max_results))


def find_next_available_slots(
	start_date: Union[date, str],
	duration: int,
	professional_id: str,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	max_results: int = 5,
	granularity: int = DEFAULT_SLOT_GRANULARITY,
	timezone: TimezoneLike = None,
	exclude_id: Optional[str] = None,
	max_days: int = DEFAULT_MAX_DAYS_TO_CHECK
) -> List[datetime]:
	"""
	Busca slots día a día desde start_date hasta juntar max_results
	o revisar max_days días.
	"""
	_validate_slot_arguments(duration, professional_id, granularity, max_results)

	current_date = getdate(start_date)
	slots = []

	for _ in range(max_days):
		if len(slots) >= max_results:
			break

		slots.extend(find_available_slots(
			current_date,
			duration,
			professional_id,
			existing_appointments,
			working_hours,
			blocked_intervals,
			max_results=max_results - len(slots),
			granularity=granularity,
			timezone=timezone,
			exclude_id=exclude_id
		))
		current_date += timedelta(days=1)

	return slots
