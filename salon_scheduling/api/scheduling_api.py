"""
Scheduling API Endpoints

Transport-agnostic functions for frontend/external use. Each call receives
the calendar snapshot it is evaluated against:

	{
		"appointments": [...],
		"working_hours": [...],
		"blocked_intervals": [...],
		"timezone": "America/Sao_Paulo"
	}

Inputs are checked with the shared validators, parsed with the pydantic
schemas and handed to the scheduling engine. Responses are plain dicts.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from salon_scheduling.config import get_settings
from salon_scheduling.salon_scheduling.exceptions import InvalidInputError, NotFoundError
from salon_scheduling.salon_scheduling.models import (
	Appointment,
	AppointmentCandidate,
	RescheduleOptions,
	RescheduleRequest,
	RescheduleResult,
	RescheduleStatus,
)
from salon_scheduling.salon_scheduling.notifications import (
	Notifier,
	dispatch_notifications,
	get_notifier,
)
from salon_scheduling.salon_scheduling.scheduling import (
	batch_reschedule,
	calculate_reschedule_impact,
	compose_duration,
	find_available_slots,
	find_next_available_slots,
	reschedule_appointment,
	should_auto_approve_reschedule,
	suggest_reschedule_options,
	validate_conflicts,
)
from salon_scheduling.salon_scheduling.utils import configure_logging, localize, logger, minutes

from salon_scheduling.api.shared import (
	RescheduleRequestPayload,
	ServicePayload,
	SnapshotPayload,
	parse_local_datetime,
	parse_payload,
	validate_booking_date,
	validate_duration_minutes,
	validate_record_id,
	validate_time_range,
)
from salon_scheduling.api.shared.validators import DATETIME_FORMAT


def _format(value: datetime) -> str:
	return value.strftime(DATETIME_FORMAT)


def _settings():
	settings = get_settings()
	configure_logging(settings.log_level)
	return settings


def _load_snapshot(snapshot: Optional[Dict[str, Any]], settings) -> Tuple[list, list, list, str]:
	"""Parsea el snapshot y retorna (appointments, working_hours, blocked, timezone)."""
	payload = parse_payload(SnapshotPayload, snapshot)
	appointments, working_hours, blocked = payload.to_models()
	return appointments, working_hours, blocked, payload.timezone or settings.default_timezone


def _find(appointment_id: str, appointments: List[Appointment]) -> Appointment:
	for appt in appointments:
		if appt.id == appointment_id:
			return appt
	raise NotFoundError(f"Agendamiento '{appointment_id}' no encontrado")


def get_available_slots(
	professional_id: str,
	date: str,
	duration: int,
	snapshot: Dict[str, Any],
	max_results: Optional[int] = None
) -> List[Dict[str, str]]:
	"""
	Obtiene slots disponibles de un profesional para una fecha.

	Args:
		professional_id: id del profesional
		date: fecha (YYYY-MM-DD)
		duration: duración de la reserva en minutos
		snapshot: appointments, working_hours, blocked_intervals, timezone
		max_results: máximo de slots (None = todo el día)

	Returns:
		list[dict]: [
			{"start": "2024-12-23 09:00:00", "end": "2024-12-23 10:00:00"},
			...
		]

	Raises:
		InvalidInputError: input mal formado (se registra en el log)
	"""
	settings = _settings()

	try:
		professional_id = validate_record_id(professional_id, "professional_id")
		date = validate_booking_date(date, "date")
		duration = validate_duration_minutes(duration)
		appointments, working_hours, blocked, tz = _load_snapshot(snapshot, settings)

		slots = find_available_slots(
			date,
			duration,
			professional_id,
			appointments,
			working_hours,
			blocked,
			max_results=max_results,
			granularity=settings.slot_granularity_minutes,
			timezone=tz
		)

	except InvalidInputError as e:
		logger("api").warning(f"Error in get_available_slots: {str(e)}")
		raise

	return [
		{"start": _format(slot), "end": _format(localize(slot + minutes(duration), tz))}
		for slot in slots
	]


def get_next_available_slots(
	professional_id: str,
	start_date: str,
	duration: int,
	snapshot: Dict[str, Any],
	max_results: Optional[int] = None
) -> List[Dict[str, str]]:
	"""
	Busca los próximos slots libres desde start_date, día a día.

	Revisa hasta max_days_to_check días (configuración) y retorna hasta
	max_results slots (default: max_suggestions).

	Raises:
		InvalidInputError: input mal formado (se registra en el log)
	"""
	settings = _settings()

	try:
		professional_id = validate_record_id(professional_id, "professional_id")
		start_date = validate_booking_date(start_date, "start_date")
		duration = validate_duration_minutes(duration)
		appointments, working_hours, blocked, tz = _load_snapshot(snapshot, settings)

		slots = find_next_available_slots(
			start_date,
			duration,
			professional_id,
			appointments,
			working_hours,
			blocked,
			max_results=max_results if max_results is not None else settings.max_suggestions,
			granularity=settings.slot_granularity_minutes,
			timezone=tz,
			max_days=settings.max_days_to_check
		)

	except InvalidInputError as e:
		logger("api").warning(f"Error in get_next_available_slots: {str(e)}")
		raise

	return [
		{"start": _format(slot), "end": _format(localize(slot + minutes(duration), tz))}
		for slot in slots
	]


def validate_appointment(
	professional_id: str,
	start_datetime: str,
	duration: int,
	snapshot: Dict[str, Any],
	appointment_id: Optional[str] = None,
	now: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Valida si un appointment es válido ANTES de guardarlo.
	Útil para UI/frontend para mostrar errores/warnings antes de submit.

	Args:
		professional_id: id del profesional
		start_datetime: inicio (YYYY-MM-DD HH:MM:SS, hora local del snapshot)
		duration: duración en minutos
		snapshot: appointments, working_hours, blocked_intervals, timezone
		appointment_id: appointment existente (para ediciones)
		now: instante actual (habilita el warning de poca antelación)

	Returns:
		dict: {
			"valid": bool,
			"errors": list[str],
			"warnings": list[str],
			"conflicts": list[dict]
		}
	"""
	settings = _settings()

	try:
		professional_id = validate_record_id(professional_id, "professional_id")
		appointments, working_hours, blocked, tz = _load_snapshot(snapshot, settings)
		start = parse_local_datetime(start_datetime, tz, "start_datetime")
		duration = validate_duration_minutes(duration)
		if appointment_id:
			appointment_id = validate_record_id(appointment_id, "appointment_id")

		result = validate_conflicts(
			AppointmentCandidate(
				professional_id=professional_id,
				scheduled_for=start,
				duration=duration,
				exclude_id=appointment_id
			),
			appointments,
			working_hours,
			blocked,
			timezone=tz,
			now=parse_local_datetime(now, tz, "now", required=False)
		)

	except InvalidInputError as e:
		logger("api").warning(f"Error in validate_appointment: {str(e)}")
		return {
			"valid": False,
			"errors": [str(e)],
			"warnings": [],
			"conflicts": []
		}

	return {
		"valid": result.is_valid,
		"errors": [conflict.detail for conflict in result.conflicts],
		"warnings": list(result.warnings),
		"conflicts": [conflict.as_dict() for conflict in result.conflicts]
	}


def calculate_services_duration(
	services: List[Dict[str, Any]],
	buffer_minutes: Optional[int] = None
) -> Dict[str, int]:
	"""
	Calcula la duración total de una reserva con varios servicios.

	Args:
		services: [{"id": ..., "name": ..., "duration": 30}, ...]
		buffer_minutes: buffer entre servicios (default: el de la configuración)

	Returns:
		dict: {"duration": int}

	Raises:
		InvalidInputError: lista vacía o duraciones inválidas
	"""
	if buffer_minutes is None:
		buffer_minutes = _settings().buffer_minutes

	try:
		parsed = [parse_payload(ServicePayload, service).to_model() for service in services or []]
		duration = compose_duration(parsed, buffer_minutes)
	except InvalidInputError as e:
		logger("api").warning(f"Error in calculate_services_duration: {str(e)}")
		raise

	return {"duration": duration}


def _serialize_result(result: RescheduleResult) -> Dict[str, Any]:
	appointment = result.appointment
	impact = result.impact
	notifications = result.notifications

	return {
		"success": result.success,
		"status": result.status.value,
		"appointment": {
			"id": appointment.id,
			"professional_id": appointment.professional_id,
			"client_id": appointment.client_id,
			"scheduled_for": _format(appointment.scheduled_for),
			"total_duration": appointment.total_duration,
			"reschedule_count": appointment.reschedule_count,
			"notes": appointment.notes,
		} if appointment else None,
		"conflicts": [conflict.as_dict() for conflict in result.conflicts],
		"warnings": list(result.warnings),
		"suggested_times": [_format(instant) for instant in result.suggested_times],
		"impact": {
			"hours_shifted": impact.hours_shifted,
			"days_shifted": impact.days_shifted,
			"crosses_day_boundary": impact.crosses_day_boundary,
			"risk_score": impact.risk_score,
			"warnings": list(impact.warnings),
		} if impact else None,
		"auto_approved": result.status == RescheduleStatus.AUTO_APPROVED,
		"penalty_applies": result.penalty_applies,
		"notifications": {
			"send_confirmation": notifications.send_confirmation,
			"send_cancellation": notifications.send_cancellation,
		} if notifications else None,
		"error": result.error,
	}


def _error_response(message: str) -> Dict[str, Any]:
	return {
		"success": False,
		"status": RescheduleStatus.REJECTED.value,
		"appointment": None,
		"conflicts": [],
		"warnings": [],
		"suggested_times": [],
		"impact": None,
		"auto_approved": False,
		"penalty_applies": False,
		"notifications": None,
		"error": message,
	}


def reschedule(
	appointment_id: str,
	new_datetime: str,
	snapshot: Dict[str, Any],
	new_duration: Optional[int] = None,
	reason: Optional[str] = None,
	notify_client: bool = True,
	loyalty_tier: Optional[str] = None,
	allow_conflicts: Optional[bool] = None,
	now: Optional[str] = None,
	notifier: Optional[Notifier] = None
) -> Dict[str, Any]:
	"""
	Reagenda un appointment y despacha las notificaciones.

	Args:
		appointment_id: appointment a mover (debe estar en el snapshot)
		new_datetime: nuevo inicio (YYYY-MM-DD HH:MM:SS)
		snapshot: appointments, working_hours, blocked_intervals, timezone
		new_duration: nueva duración en minutos (default: la actual)
		reason: motivo (se agrega a las notas)
		notify_client: enviar notificaciones al cliente
		loyalty_tier: tier de fidelidad del cliente
		allow_conflicts: aceptar conflictos (None = solo si el cambio se auto-aprueba)
		now: instante actual (YYYY-MM-DD HH:MM:SS)
		notifier: canal de envío (default: el de la configuración)

	Returns:
		dict: success, status, appointment, conflicts, warnings, suggested_times,
			impact, auto_approved, penalty_applies, notifications, error,
			notifications_sent
	"""
	settings = _settings()
	policy = settings.reschedule_policy()

	try:
		appointment_id = validate_record_id(appointment_id, "appointment_id")
		appointments, working_hours, blocked, tz = _load_snapshot(snapshot, settings)
		new_instant = parse_local_datetime(new_datetime, tz, "new_datetime")
		if new_duration is not None:
			new_duration = validate_duration_minutes(new_duration, "new_duration")
		now_instant = parse_local_datetime(now, tz, "now", required=False)

		if allow_conflicts is None:
			original = _find(appointment_id, appointments)
			impact = calculate_reschedule_impact(
				original.scheduled_for,
				new_instant,
				new_duration or original.total_duration,
				policy,
				tz
			)
			hours_in_advance = (
				(new_instant - now_instant).total_seconds() / 3600 if now_instant else 0
			)
			allow_conflicts = should_auto_approve_reschedule(impact, loyalty_tier, hours_in_advance, policy)

		result = reschedule_appointment(
			RescheduleRequest(
				appointment_id=appointment_id,
				new_instant=new_instant,
				new_duration=new_duration,
				reason=reason,
				notify_client=notify_client,
				loyalty_tier=loyalty_tier
			),
			appointments,
			working_hours,
			blocked,
			options=RescheduleOptions(
				allow_conflicts=allow_conflicts,
				max_suggestions=settings.max_suggestions,
				slot_granularity=settings.slot_granularity_minutes
			),
			policy=policy,
			timezone=tz,
			now=now_instant
		)

	except (InvalidInputError, NotFoundError) as e:
		logger("api").warning(f"Error in reschedule: {str(e)}")
		return dict(_error_response(str(e)), notifications_sent=False)

	sent = False
	if result.success:
		sent = dispatch_notifications(result, notifier or get_notifier(settings.notifier_provider))

	return dict(_serialize_result(result), notifications_sent=sent)


def get_reschedule_options(
	appointment_id: str,
	snapshot: Dict[str, Any],
	target_date: Optional[str] = None,
	same_day_preferred: bool = True,
	time_range: Optional[Tuple[str, str]] = None,
	days_ahead: int = 3,
	avoid_weekends: bool = False
) -> Dict[str, Any]:
	"""
	Sugiere horarios alternativos para un appointment.

	Args:
		appointment_id: appointment a mover
		snapshot: appointments, working_hours, blocked_intervals, timezone
		target_date: fecha base (YYYY-MM-DD, default: la fecha actual de la cita)
		same_day_preferred: incluir el grupo del mismo día
		time_range: ("HH:MM", "HH:MM") en hora local
		days_ahead: cantidad de días siguientes a revisar
		avoid_weekends: omitir sábados y domingos

	Returns:
		dict: {"success", "same_day", "next_days", "next_week", "error"}
	"""
	settings = _settings()

	try:
		appointment_id = validate_record_id(appointment_id, "appointment_id")
		appointments, working_hours, blocked, tz = _load_snapshot(snapshot, settings)
		appointment = _find(appointment_id, appointments)
		base = validate_booking_date(target_date, "target_date") if target_date else appointment.scheduled_for
		time_range = validate_time_range(time_range)

		suggestions = suggest_reschedule_options(
			base,
			appointment.total_duration,
			appointment.professional_id,
			appointments,
			working_hours,
			blocked,
			same_day_preferred=same_day_preferred,
			time_range=time_range,
			days_ahead=days_ahead,
			avoid_weekends=avoid_weekends,
			granularity=settings.slot_granularity_minutes,
			timezone=tz,
			exclude_id=appointment.id
		)

	except (InvalidInputError, NotFoundError) as e:
		logger("api").warning(f"Error in get_reschedule_options: {str(e)}")
		return {"success": False, "same_day": [], "next_days": [], "next_week": [], "error": str(e)}

	return {
		"success": True,
		"same_day": [_format(instant) for instant in suggestions.same_day],
		"next_days": [_format(instant) for instant in suggestions.next_days],
		"next_week": [_format(instant) for instant in suggestions.next_week],
		"error": None,
	}


def batch_reschedule_appointments(
	requests: List[Dict[str, Any]],
	snapshot: Dict[str, Any],
	now: Optional[str] = None
) -> Dict[str, Any]:
	"""
	Reagenda varios appointments en orden sobre el mismo snapshot.

	Args:
		requests: [{"appointment_id", "new_datetime", "new_duration", "reason", "loyalty_tier"}, ...]
		snapshot: appointments, working_hours, blocked_intervals, timezone
		now: instante actual (YYYY-MM-DD HH:MM:SS)

	Returns:
		dict: {"success", "summary", "successful", "failed", "error"}
	"""
	settings = _settings()

	try:
		appointments, working_hours, blocked, tz = _load_snapshot(snapshot, settings)
		parsed = []
		for data in requests or []:
			request = parse_payload(RescheduleRequestPayload, data).to_model()
			parsed.append(RescheduleRequest(
				appointment_id=request.appointment_id,
				new_instant=localize(request.new_instant, tz),
				new_duration=request.new_duration,
				reason=request.reason,
				notify_client=request.notify_client,
				loyalty_tier=request.loyalty_tier
			))

		result = batch_reschedule(
			parsed,
			appointments,
			working_hours,
			blocked,
			options=RescheduleOptions(
				max_suggestions=settings.max_suggestions,
				slot_granularity=settings.slot_granularity_minutes
			),
			policy=settings.reschedule_policy(),
			timezone=tz,
			now=parse_local_datetime(now, tz, "now", required=False)
		)

	except InvalidInputError as e:
		logger("api").warning(f"Error in batch_reschedule_appointments: {str(e)}")
		return {
			"success": False,
			"summary": {"total": 0, "successful": 0, "failed": 0},
			"successful": [],
			"failed": [],
			"error": str(e)
		}

	return {
		"success": True,
		"summary": result.summary,
		"successful": [_serialize_result(item) for item in result.successful],
		"failed": [_serialize_result(item) for item in result.failed],
		"error": None,
	}
