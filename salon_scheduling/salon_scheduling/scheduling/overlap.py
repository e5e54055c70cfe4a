"""
Conflict Validator

Detects scheduling conflicts for a proposed appointment, considering:
- Existing appointments of the same professional (non-terminal status)
- Working hours and breaks
- Blocked intervals
"""

from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from ..exceptions import InvalidInputError
from ..models import (
	Appointment,
	AppointmentCandidate,
	BlockedInterval,
	Conflict,
	ConflictType,
	ValidationResult,
	WorkingHours,
)
from ..utils import TimezoneLike, is_positive_minutes, localize, resolve_timezone, throw
from .calendar_rules import (
	day_of_week,
	get_open_intervals,
	get_working_hours_for_day,
	intervals_overlap,
)

WEEKDAY_NAMES = ("domingo", "lunes", "martes", "miércoles", "jueves", "viernes", "sábado")

# Horario comercial "común" para el warning de after-hours
COMMON_HOURS_START = 8
COMMON_HOURS_END = 18
MIN_NOTICE_HOURS_WARNING = 2


def _validate_candidate(candidate: AppointmentCandidate) -> None:
	"""Rechaza input mal formado antes de cualquier cálculo."""
	if not candidate.professional_id:
		throw("professional_id es requerido", InvalidInputError)

	if candidate.scheduled_for is None:
		throw("scheduled_for es requerido", InvalidInputError)

	if not is_positive_minutes(candidate.duration):
		throw(f"La duración debe ser mayor que 0 (recibido {candidate.duration!r})", InvalidInputError)


def get_overlapping_appointments(
	professional_id: str,
	start: datetime,
	end: datetime,
	existing_appointments: Sequence[Appointment],
	exclude_id: Optional[str] = None,
	timezone: TimezoneLike = None
) -> List[Appointment]:
	"""
	Detecta appointments activos que se solapan con [start, end).

	Algoritmo:
		1. Filtrar por professional_id
		2. Ignorar status terminales (COMPLETED, CANCELED, NO_SHOW)
		3. Ignorar exclude_id (el mismo appointment al editar/reagendar)
		4. Overlap: start < existing.end AND existing.start < end
		5. Ordenar por start (y por id en empates)
	"""
	tz = resolve_timezone(timezone, start, *(appt.scheduled_for for appt in existing_appointments))
	start = localize(start, tz)
	end = localize(end, tz)

	overlapping = [
		appt for appt in existing_appointments
		if appt.professional_id == professional_id
		and appt.is_active
		and appt.id != exclude_id
		and intervals_overlap(start, end, localize(appt.scheduled_for, tz), localize(appt.end, tz))
	]

	overlapping.sort(key=lambda appt: (appt.scheduled_for, appt.id))
	return overlapping


def _working_hours_conflict(
	start: datetime,
	end: datetime,
	working_hours: Sequence[WorkingHours],
	tz
) -> Optional[Conflict]:
	"""
	Verifica que [start, end) quede dentro de UN intervalo abierto del día.

	Retorna un único Conflict OUTSIDE_WORKING_HOURS con la causa, o None.
	"""
	local_start = localize(start, tz)
	local_end = localize(end, tz)
	weekday = day_of_week(local_start.date())

	rule = get_working_hours_for_day(weekday, working_hours)
	if rule is None or not rule.is_open:
		return Conflict(
			type=ConflictType.OUTSIDE_WORKING_HOURS,
			detail=f"Cerrado el {WEEKDAY_NAMES[weekday]} {local_start.strftime('%Y-%m-%d')}"
		)

	open_intervals = get_open_intervals(local_start.date(), working_hours, tz)
	for interval in open_intervals:
		if interval["start"] <= local_start and local_end <= interval["end"]:
			return None

	hours = f"{rule.open_time.strftime('%H:%M')} - {rule.close_time.strftime('%H:%M')}"
	day_open = open_intervals[0]["start"]
	day_close = open_intervals[-1]["end"]

	if local_start < day_open:
		cause = f"Horario antes de la apertura ({hours})"
	elif local_end > day_close:
		cause = f"Horario fuera del funcionamiento ({hours})"
	else:
		cause = (
			f"Conflicto con el break ({rule.break_start.strftime('%H:%M')} - "
			f"{rule.break_end.strftime('%H:%M')})"
		)

	return Conflict(type=ConflictType.OUTSIDE_WORKING_HOURS, detail=cause)


def _blocked_time_conflict(
	start: datetime,
	end: datetime,
	blocked_intervals: Sequence[BlockedInterval],
	tz
) -> Optional[Conflict]:
	"""Un único BLOCKED_TIME con el primer bloqueo (por start) que intersecta."""
	for block in sorted(blocked_intervals, key=lambda b: (b.start, b.end)):
		if intervals_overlap(start, end, localize(block.start, tz), localize(block.end, tz)):
			reason = block.reason or block.kind
			return Conflict(
				type=ConflictType.BLOCKED_TIME,
				detail=f"Horario bloqueado: {reason} ({block.start.isoformat()} - {block.end.isoformat()})"
			)
	return None


def _collect_warnings(start: datetime, tz, now: Optional[datetime]) -> List[str]:
	"""Avisos que no invalidan la cita."""
	warnings = []
	local_start = localize(start, tz)

	if day_of_week(local_start.date()) in (0, 6):
		warnings.append("Agendamiento en fin de semana")

	if local_start.hour < COMMON_HOURS_START or local_start.hour > COMMON_HOURS_END:
		warnings.append("Agendamiento fuera del horario comercial común")

	if now is not None and start - localize(now, tz) < timedelta(hours=MIN_NOTICE_HOURS_WARNING):
		warnings.append(f"Agendamiento muy próximo (menos de {MIN_NOTICE_HOURS_WARNING} horas)")

	return warnings


def validate_conflicts(
	candidate: AppointmentCandidate,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	timezone: TimezoneLike = None,
	now: Optional[datetime] = None
) -> ValidationResult:
	"""
	Valida si un horario propuesto es legal y enumera TODOS los conflictos.

	Args:
		candidate: professional_id, scheduled_for, duration (+ exclude_id opcional)
		existing_appointments: snapshot de appointments
		working_hours: reglas semanales del profesional
		blocked_intervals: bloqueos puntuales
		timezone: timezone del profesional (default: la del candidate o del snapshot)
		now: instante actual, solo para el warning de poca antelación

	Returns:
		ValidationResult: is_valid, conflicts (ordenados), warnings

	Raises:
		InvalidInputError: duración <= 0, sin professional_id o sin scheduled_for

	Algoritmo:
		1. Intervalo candidato [start, start + duration)
		2. TIME_OVERLAP por cada appointment activo que se solapa
		3. OUTSIDE_WORKING_HOURS (una vez) si el intervalo no cabe en un tramo abierto
		4. BLOCKED_TIME (una vez) si intersecta algún bloqueo
		5. is_valid = sin conflictos
	"""
	_validate_candidate(candidate)

	# Candidate naive + snapshot aware: se toma la zona del snapshot
	references = [appt.scheduled_for for appt in existing_appointments]
	references.extend(block.start for block in blocked_intervals)
	tz = resolve_timezone(timezone, candidate.scheduled_for, *references)
	start = localize(candidate.scheduled_for, tz)
	end = start + timedelta(minutes=candidate.duration)

	conflicts = []

	for appt in get_overlapping_appointments(
		candidate.professional_id,
		start,
		end,
		existing_appointments,
		exclude_id=candidate.exclude_id,
		timezone=tz
	):
		conflicts.append(Conflict(
			type=ConflictType.TIME_OVERLAP,
			detail=(
				f"Conflicto con agendamiento existente {appt.id} "
				f"({localize(appt.scheduled_for, tz).strftime('%H:%M')} - {localize(appt.end, tz).strftime('%H:%M')})"
			),
			appointment_id=appt.id
		))

	hours_conflict = _working_hours_conflict(start, end, working_hours, tz)
	if hours_conflict:
		conflicts.append(hours_conflict)

	blocked_conflict = _blocked_time_conflict(start, end, blocked_intervals, tz)
	if blocked_conflict:
		conflicts.append(blocked_conflict)

	return ValidationResult(
		is_valid=not conflicts,
		conflicts=tuple(conflicts),
		warnings=tuple(_collect_warnings(start, tz, now))
	)
