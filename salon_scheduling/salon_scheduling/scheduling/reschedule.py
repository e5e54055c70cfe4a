"""
Reschedule Engine

Governs moving an existing appointment to a new time:
- Impact scoring (hours shifted, day boundary, risk score)
- Policy limits (max reschedules, notice windows)
- Auto-approval by loyalty tier
- Conflict re-validation and alternative suggestions
- Notification instructions (delivery is external)

Lifecycle: REQUESTED -> (VALIDATED | REJECTED) -> (AUTO_APPROVED | PENDING_REVIEW)
"""

from dataclasses import replace
from datetime import date, datetime, time, timedelta
from itertools import islice
from typing import Iterable, List, Optional, Sequence, Tuple, Union

from ..exceptions import InvalidInputError, NotFoundError
from ..models import (
	Appointment,
	AppointmentCandidate,
	BatchRescheduleResult,
	BlockedInterval,
	Conflict,
	ConflictType,
	NotificationInstruction,
	RescheduleImpact,
	ReschedulePolicy,
	RescheduleOptions,
	RescheduleRequest,
	RescheduleResult,
	RescheduleStatus,
	RescheduleSuggestions,
	WorkingHours,
)
from ..utils import (
	TimezoneLike,
	getdate,
	is_positive_minutes,
	localize,
	logger,
	resolve_timezone,
	throw,
	to_time,
)
from .calendar_rules import day_of_week
from .overlap import validate_conflicts
from .slots import DEFAULT_SLOT_GRANULARITY, iter_available_slots

DEFAULT_POLICY = ReschedulePolicy()

MAX_RISK_SCORE = 100.0
SAME_DAY_LARGE_SHIFT_HOURS = 4


def _hours_between(start: datetime, end: datetime) -> float:
	return (end - start).total_seconds() / 3600


def _is_weekend(value: datetime) -> bool:
	return day_of_week(value.date()) in (0, 6)


def calculate_reschedule_impact(
	old_instant: datetime,
	new_instant: datetime,
	duration: int,
	policy: Optional[ReschedulePolicy] = None,
	timezone: TimezoneLike = None
) -> RescheduleImpact:
	"""
	Calcula el impacto de mover una cita.

	Args:
		old_instant: horario original
		new_instant: horario nuevo
		duration: duración de la cita en minutos
		policy: provee risk_weight_per_hour_shift (default: ReschedulePolicy())
		timezone: marco local para comparar fechas (default: el de old_instant)

	Returns:
		RescheduleImpact:
			hours_shifted: (new - old) en horas, con signo
			days_shifted: diferencia de fechas locales
			crosses_day_boundary: fechas locales distintas
			risk_score: min(100, |hours_shifted| * risk_weight_per_hour_shift)
	"""
	if not is_positive_minutes(duration):
		throw(f"La duración debe ser mayor que 0 (recibido {duration!r})", InvalidInputError)

	policy = policy or DEFAULT_POLICY
	tz = resolve_timezone(timezone, old_instant, new_instant)
	old_local = localize(old_instant, tz)
	new_local = localize(new_instant, tz)

	hours_shifted = _hours_between(old_local, new_local)
	days_shifted = (new_local.date() - old_local.date()).days
	risk_score = min(MAX_RISK_SCORE, round(abs(hours_shifted) * policy.risk_weight_per_hour_shift, 2))

	warnings = []
	if days_shifted == 0 and abs(hours_shifted) > SAME_DAY_LARGE_SHIFT_HOURS:
		warnings.append("Gran cambio de horario en el mismo día")
	if abs(days_shifted) > 7:
		warnings.append("Reagendamiento para más de una semana")
	if _is_weekend(new_local) and not _is_weekend(old_local):
		warnings.append("Cambio de día hábil a fin de semana")
	if not _is_weekend(new_local) and _is_weekend(old_local):
		warnings.append("Cambio de fin de semana a día hábil")

	return RescheduleImpact(
		hours_shifted=hours_shifted,
		days_shifted=days_shifted,
		crosses_day_boundary=days_shifted != 0,
		risk_score=risk_score,
		warnings=tuple(warnings)
	)


def should_auto_approve_reschedule(
	impact: RescheduleImpact,
	loyalty_tier: Optional[str],
	hours_in_advance: float,
	policy: Optional[ReschedulePolicy] = None
) -> bool:
	"""
	Decide si un reagendamiento se aprueba automáticamente.

	True si y solo si:
		- el tier está configurado en la política
		- hours_in_advance >= horas mínimas del tier
		- impact.risk_score < risk_acceptance_ceiling

	Un tier desconocido siempre va a revisión manual.
	"""
	policy = policy or DEFAULT_POLICY
	min_hours = policy.auto_approve_notice_hours_by_tier.get(loyalty_tier) if loyalty_tier else None

	if min_hours is None:
		return False

	return hours_in_advance >= min_hours and impact.risk_score < policy.risk_acceptance_ceiling


def check_reschedule_policy(
	appointment: Appointment,
	new_instant: datetime,
	policy: Optional[ReschedulePolicy] = None,
	now: Optional[datetime] = None,
	timezone: TimezoneLike = None
) -> Tuple[List[Conflict], List[str]]:
	"""
	Verifica las reglas de la política para mover una cita.

	Sin `now` solo se verifica el límite de reagendamientos; los plazos
	dependen del instante actual y el motor no lo lee por su cuenta.

	Returns:
		(conflicts POLICY_VIOLATION, warnings)
	"""
	policy = policy or DEFAULT_POLICY
	conflicts = []
	warnings = []

	def violation(detail: str) -> None:
		conflicts.append(Conflict(
			type=ConflictType.POLICY_VIOLATION,
			detail=detail,
			appointment_id=appointment.id
		))

	if appointment.reschedule_count >= policy.max_reschedules_per_appointment:
		violation(f"Máximo de {policy.max_reschedules_per_appointment} reagendamientos alcanzado")

	if now is None:
		return conflicts, warnings

	tz = resolve_timezone(timezone, appointment.scheduled_for, new_instant)
	now_local = localize(now, tz)
	original_local = localize(appointment.scheduled_for, tz)
	new_local = localize(new_instant, tz)

	if original_local <= now_local:
		violation("No es posible reagendar una cita que ya pasó")
		return conflicts, warnings

	if _hours_between(now_local, original_local) < policy.reschedule_deadline_hours:
		violation(f"El reagendamiento debe hacerse con al menos {policy.reschedule_deadline_hours} horas de antelación")

	if new_local <= now_local:
		violation("La nueva fecha debe ser en el futuro")
	elif new_local.date() == now_local.date() and not policy.allow_same_day_reschedule:
		violation("No se permite reagendar para el mismo día")

	if new_local > now_local and _hours_between(now_local, new_local) < policy.min_hours_before_reschedule:
		warnings.append(f"Se recomienda agendar con al menos {policy.min_hours_before_reschedule} horas de antelación")

	if new_local - now_local > timedelta(days=policy.max_days_ahead):
		warnings.append("Agendamiento muy lejano en el futuro")

	return conflicts, warnings


def _within_time_range(
	slot: datetime,
	duration: int,
	time_range: Optional[Tuple[Union[time, str], Union[time, str]]]
) -> bool:
	if not time_range:
		return True
	range_start, range_end = (to_time(value) for value in time_range)
	slot_end = slot + timedelta(minutes=duration)
	return range_start <= slot.time() and slot_end.time() <= range_end and slot_end.date() == slot.date()


def _day_slots(
	target_date: date,
	limit: int,
	duration: int,
	professional_id: str,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval],
	time_range,
	avoid_weekends: bool,
	granularity: int,
	tz,
	exclude_id: Optional[str]
) -> Tuple[datetime, ...]:
	if avoid_weekends and day_of_week(target_date) in (0, 6):
		return ()

	slots = (
		slot for slot in iter_available_slots(
			target_date,
			duration,
			professional_id,
			existing_appointments,
			working_hours,
			blocked_intervals,
			granularity=granularity,
			timezone=tz,
			exclude_id=exclude_id
		)
		if _within_time_range(slot, duration, time_range)
	)
	return tuple(islice(slots, limit))


def suggest_reschedule_options(
	original_date: Union[datetime, date, str],
	duration: int,
	professional_id: str,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	same_day_preferred: bool = False,
	time_range: Optional[Tuple[Union[time, str], Union[time, str]]] = None,
	days_ahead: int = 3,
	avoid_weekends: bool = False,
	granularity: int = DEFAULT_SLOT_GRANULARITY,
	timezone: TimezoneLike = None,
	exclude_id: Optional[str] = None
) -> RescheduleSuggestions:
	"""
	Sugiere horarios alternativos agrupados.

	Grupos:
		same_day: hasta 3 slots el mismo día (solo si same_day_preferred)
		next_days: hasta 2 slots en cada uno de los próximos days_ahead días
		next_week: hasta 5 slots el mismo día de la semana siguiente

	Args:
		time_range: (inicio, fin) en hora local; el slot debe caber completo
		avoid_weekends: omite sábados y domingos
	"""
	if not professional_id:
		throw("professional_id es requerido", InvalidInputError)
	if not is_positive_minutes(duration):
		throw(f"La duración debe ser mayor que 0 (recibido {duration!r})", InvalidInputError)

	references = [original_date] if isinstance(original_date, datetime) else []
	references.extend(appt.scheduled_for for appt in existing_appointments)
	tz = resolve_timezone(timezone, *references)

	if isinstance(original_date, datetime):
		base_date = localize(original_date, tz).date()
	else:
		base_date = getdate(original_date)

	def day_slots(target_date: date, limit: int) -> Tuple[datetime, ...]:
		return _day_slots(
			target_date, limit, duration, professional_id, existing_appointments,
			working_hours, blocked_intervals, time_range, avoid_weekends,
			granularity, tz, exclude_id
		)

	same_day = day_slots(base_date, 3) if same_day_preferred else ()

	next_days = []
	for offset in range(1, days_ahead + 1):
		next_days.extend(day_slots(base_date + timedelta(days=offset), 2))

	next_week = day_slots(base_date + timedelta(days=7), 5)

	return RescheduleSuggestions(
		same_day=same_day,
		next_days=tuple(next_days),
		next_week=next_week
	)


def _find_appointment(appointment_id: str, appointments: Iterable[Appointment]) -> Appointment:
	for appt in appointments:
		if appt.id == appointment_id:
			return appt
	raise NotFoundError(f"Agendamiento '{appointment_id}' no encontrado")


def _append_reason(notes: Optional[str], reason: Optional[str]) -> Optional[str]:
	if not reason:
		return notes
	return f"{notes or ''}\n\nReagendado: {reason}".strip()


def reschedule_appointment(
	request: RescheduleRequest,
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	options: Optional[RescheduleOptions] = None,
	policy: Optional[ReschedulePolicy] = None,
	timezone: TimezoneLike = None,
	now: Optional[datetime] = None
) -> RescheduleResult:
	"""
	Reagenda una cita existente a partir de un snapshot.

	Args:
		request: appointment_id, new_instant, new_duration, reason, notify_client, loyalty_tier
		existing_appointments: snapshot (incluye la cita a mover)
		working_hours: reglas semanales del profesional
		blocked_intervals: bloqueos puntuales
		options: allow_conflicts, notification_settings, max_suggestions, slot_granularity
		policy: límites de reagendamiento (default: ReschedulePolicy())
		timezone: timezone del profesional
		now: instante actual (habilita plazos, penalidad y auto-aprobación)

	Returns:
		RescheduleResult (los conflictos y violaciones de política son datos)

	Raises:
		NotFoundError: el appointment_id no está en el snapshot
		InvalidInputError: nueva duración inválida

	Algoritmo:
		1. Buscar la cita original
		2. Verificar política (máximo de reagendamientos, plazos)
		3. Validar conflictos en el nuevo horario excluyendo la propia cita
		4. Con conflictos y sin allow_conflicts: rechazar + sugerencias
		5. Con conflictos y allow_conflicts: continuar, reportando conflictos
		6. Construir la nueva cita, impacto, estado e instrucción de notificación
	"""
	options = options or RescheduleOptions()
	policy = policy or DEFAULT_POLICY
	log = logger("reschedule")
	transitions = [RescheduleStatus.REQUESTED]

	# 1. Buscar agendamiento original
	original = _find_appointment(request.appointment_id, existing_appointments)
	duration = request.new_duration if request.new_duration is not None else original.total_duration
	if not is_positive_minutes(duration):
		throw(f"La duración debe ser mayor que 0 (recibido {duration!r})", InvalidInputError)
	tz = resolve_timezone(timezone, original.scheduled_for, request.new_instant)

	# 2. Política
	policy_conflicts, warnings = check_reschedule_policy(original, request.new_instant, policy, now, tz)
	if policy_conflicts:
		transitions.append(RescheduleStatus.REJECTED)
		log.warning(
			f"Reagendamiento rechazado por política: {original.id} "
			f"({'; '.join(c.detail for c in policy_conflicts)})"
		)
		return RescheduleResult(
			success=False,
			status=RescheduleStatus.REJECTED,
			original=original,
			conflicts=tuple(policy_conflicts),
			warnings=tuple(warnings),
			error="Reagendamiento no permitido por la política",
			transitions=tuple(transitions)
		)

	# 3. Validar nuevo horario (sin la propia cita)
	validation = validate_conflicts(
		AppointmentCandidate(
			professional_id=original.professional_id,
			scheduled_for=request.new_instant,
			duration=duration,
			exclude_id=original.id
		),
		existing_appointments,
		working_hours,
		blocked_intervals,
		timezone=tz,
		now=now
	)
	warnings.extend(validation.warnings)

	# 4. Conflictos no permitidos: rechazar con sugerencias
	if not validation.is_valid and not options.allow_conflicts:
		suggestions = suggest_reschedule_options(
			request.new_instant,
			duration,
			original.professional_id,
			existing_appointments,
			working_hours,
			blocked_intervals,
			same_day_preferred=True,
			granularity=options.slot_granularity,
			timezone=tz,
			exclude_id=original.id
		)
		transitions.append(RescheduleStatus.REJECTED)
		return RescheduleResult(
			success=False,
			status=RescheduleStatus.REJECTED,
			original=original,
			conflicts=validation.conflicts,
			warnings=tuple(warnings),
			suggested_times=suggestions.flatten(options.max_suggestions),
			error="El nuevo horario tiene conflictos. Verifique los horarios sugeridos.",
			transitions=tuple(transitions)
		)

	# 5. Conflictos permitidos: continuar, pero dejar registro
	if not validation.is_valid:
		log.warning(
			f"Reagendamiento de {original.id} aceptado con conflictos: "
			f"{', '.join(c.type.value for c in validation.conflicts)}"
		)

	transitions.append(RescheduleStatus.VALIDATED)

	# 6. Nueva cita, impacto y decisión de aprobación
	impact = calculate_reschedule_impact(
		original.scheduled_for, request.new_instant, duration, policy, tz
	)

	auto_approved = False
	penalty_applies = False
	if now is not None:
		hours_in_advance = _hours_between(localize(now, tz), localize(request.new_instant, tz))
		auto_approved = should_auto_approve_reschedule(impact, request.loyalty_tier, hours_in_advance, policy)
		penalty_applies = _hours_between(localize(now, tz), localize(original.scheduled_for, tz)) < policy.cancellation_hours

	status = RescheduleStatus.AUTO_APPROVED if auto_approved else RescheduleStatus.PENDING_REVIEW
	transitions.append(status)

	updated = replace(
		original,
		scheduled_for=request.new_instant,
		total_duration=duration,
		reschedule_count=original.reschedule_count + 1,
		notes=_append_reason(original.notes, request.reason)
	)

	settings = options.notification_settings
	notifications = NotificationInstruction(
		appointment_id=updated.id,
		send_confirmation=request.notify_client and settings.send_confirmation,
		send_cancellation=request.notify_client and settings.send_cancellation
	)

	log.info(
		f"Reagendamiento {status.value}: {original.id} "
		f"{original.scheduled_for.isoformat()} -> {request.new_instant.isoformat()} "
		f"(risk_score={impact.risk_score})"
	)

	return RescheduleResult(
		success=True,
		status=status,
		appointment=updated,
		original=original,
		conflicts=validation.conflicts,
		warnings=tuple(warnings) + impact.warnings,
		impact=impact,
		notifications=notifications,
		penalty_applies=penalty_applies,
		transitions=tuple(transitions)
	)


def batch_reschedule(
	requests: Sequence[RescheduleRequest],
	existing_appointments: Sequence[Appointment],
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	options: Optional[RescheduleOptions] = None,
	policy: Optional[ReschedulePolicy] = None,
	timezone: TimezoneLike = None,
	now: Optional[datetime] = None
) -> BatchRescheduleResult:
	"""
	Procesa varios reagendamientos en orden.

	Cada movimiento exitoso se aplica al snapshot de trabajo, de modo que
	los pedidos siguientes ven la agenda ya actualizada. Un appointment
	inexistente queda como fallido y no detiene el lote.
	"""
	snapshot = list(existing_appointments)
	successful = []
	failed = []

	for request in requests:
		try:
			result = reschedule_appointment(
				request, snapshot, working_hours, blocked_intervals,
				options=options, policy=policy, timezone=timezone, now=now
			)
		except NotFoundError as e:
			failed.append(RescheduleResult(
				success=False,
				status=RescheduleStatus.REJECTED,
				error=str(e),
				transitions=(RescheduleStatus.REQUESTED, RescheduleStatus.REJECTED)
			))
			continue

		if result.success:
			snapshot = [result.appointment if appt.id == result.appointment.id else appt for appt in snapshot]
			successful.append(result)
		else:
			failed.append(result)

	return BatchRescheduleResult(successful=tuple(successful), failed=tuple(failed))
