"""
Scheduling Value Objects

Immutable data passed by the caller on every call:
- Appointment, Service, WorkingHours, BlockedInterval (snapshot)
- ReschedulePolicy (injectable policy configuration)
- Conflict, ValidationResult, RescheduleImpact, RescheduleResult (outcomes)
"""

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import InvalidInputError
from .utils import to_time


class AppointmentStatus(str, Enum):
	SCHEDULED = "SCHEDULED"
	CONFIRMED = "CONFIRMED"
	IN_PROGRESS = "IN_PROGRESS"
	COMPLETED = "COMPLETED"
	CANCELED = "CANCELED"
	NO_SHOW = "NO_SHOW"

	@property
	def is_terminal(self) -> bool:
		return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
	AppointmentStatus.COMPLETED,
	AppointmentStatus.CANCELED,
	AppointmentStatus.NO_SHOW,
})


class ConflictType(str, Enum):
	TIME_OVERLAP = "TIME_OVERLAP"
	OUTSIDE_WORKING_HOURS = "OUTSIDE_WORKING_HOURS"
	BLOCKED_TIME = "BLOCKED_TIME"
	POLICY_VIOLATION = "POLICY_VIOLATION"


class RescheduleStatus(str, Enum):
	"""Estados del ciclo de vida de un reagendamiento."""
	REQUESTED = "REQUESTED"
	VALIDATED = "VALIDATED"
	REJECTED = "REJECTED"
	AUTO_APPROVED = "AUTO_APPROVED"
	PENDING_REVIEW = "PENDING_REVIEW"


@dataclass(frozen=True)
class Service:
	id: str
	name: str
	duration: int
	price: float = 0.0


@dataclass(frozen=True)
class Appointment:
	"""
	Cita agendada para un profesional.

	Los status terminales (COMPLETED, CANCELED, NO_SHOW) no ocupan la agenda.
	"""
	id: str
	professional_id: str
	client_id: str
	scheduled_for: datetime
	total_duration: int
	service_ids: Tuple[str, ...] = ()
	status: AppointmentStatus = AppointmentStatus.SCHEDULED
	reschedule_count: int = 0
	notes: Optional[str] = None

	def __post_init__(self) -> None:
		object.__setattr__(self, "status", AppointmentStatus(self.status))
		object.__setattr__(self, "service_ids", tuple(self.service_ids))

	@property
	def end(self) -> datetime:
		return self.scheduled_for + timedelta(minutes=self.total_duration)

	@property
	def is_active(self) -> bool:
		return not self.status.is_terminal


@dataclass(frozen=True)
class AppointmentCandidate:
	"""Horario propuesto a validar (nueva cita o reagendamiento)."""
	professional_id: str
	scheduled_for: datetime
	duration: int
	exclude_id: Optional[str] = None

	@property
	def end(self) -> datetime:
		return self.scheduled_for + timedelta(minutes=self.duration)


@dataclass(frozen=True)
class WorkingHours:
	"""
	Horario semanal de un día (0 = domingo ... 6 = sábado).

	Validaciones:
	- day_of_week entre 0 y 6
	- si is_open: open_time < close_time
	- si hay break: open_time < break_start < break_end < close_time
	"""
	day_of_week: int
	is_open: bool = True
	open_time: Optional[time] = None
	close_time: Optional[time] = None
	break_start: Optional[time] = None
	break_end: Optional[time] = None

	def __post_init__(self) -> None:
		if self.day_of_week not in range(7):
			raise InvalidInputError(f"day_of_week debe estar entre 0 y 6 (recibido {self.day_of_week})")

		# Normalizar strings/timedeltas a time; "" se trata como vacío
		for field_name in ("open_time", "close_time", "break_start", "break_end"):
			value = getattr(self, field_name)
			object.__setattr__(self, field_name, to_time(value) if value not in (None, "") else None)

		if not self.is_open:
			return

		if self.open_time is None or self.close_time is None:
			raise InvalidInputError(f"Día {self.day_of_week}: open_time y close_time son requeridos")

		if self.open_time >= self.close_time:
			raise InvalidInputError(
				f"Día {self.day_of_week}: open_time ({self.open_time.strftime('%H:%M')}) "
				f"debe ser menor que close_time ({self.close_time.strftime('%H:%M')})"
			)

		if (self.break_start is None) != (self.break_end is None):
			raise InvalidInputError(f"Día {self.day_of_week}: break_start y break_end van juntos")

		if self.has_break and not (self.open_time < self.break_start < self.break_end < self.close_time):
			raise InvalidInputError(
				f"Día {self.day_of_week}: el break debe cumplir open < break_start < break_end < close"
			)

	@property
	def has_break(self) -> bool:
		return self.break_start is not None and self.break_end is not None


@dataclass(frozen=True)
class BlockedInterval:
	"""Bloqueo puntual (feriado, vacaciones, evento) independiente del horario semanal."""
	start: datetime
	end: datetime
	reason: Optional[str] = None
	kind: str = "block"

	def __post_init__(self) -> None:
		if self.start >= self.end:
			raise InvalidInputError("BlockedInterval: start debe ser menor que end")


def _default_tier_notice_hours() -> Dict[str, float]:
	return {"Bronze": 48, "Prata": 24, "Ouro": 12, "Diamante": 2}


@dataclass(frozen=True)
class ReschedulePolicy:
	"""Límites y umbrales configurables para mover citas."""
	max_reschedules_per_appointment: int = 3
	cancellation_hours: float = 24
	auto_approve_notice_hours_by_tier: Mapping[str, float] = field(default_factory=_default_tier_notice_hours)
	risk_weight_per_hour_shift: float = 2.0
	risk_acceptance_ceiling: float = 50.0
	reschedule_deadline_hours: float = 2
	min_hours_before_reschedule: float = 4
	allow_same_day_reschedule: bool = False
	max_days_ahead: int = 180


@dataclass(frozen=True)
class Conflict:
	type: ConflictType
	detail: str
	appointment_id: Optional[str] = None

	def as_dict(self) -> Dict[str, Any]:
		return {
			"type": self.type.value,
			"detail": self.detail,
			"appointment_id": self.appointment_id,
		}


@dataclass(frozen=True)
class ValidationResult:
	is_valid: bool
	conflicts: Tuple[Conflict, ...] = ()
	warnings: Tuple[str, ...] = ()

	def conflict_types(self) -> Tuple[ConflictType, ...]:
		return tuple(conflict.type for conflict in self.conflicts)


@dataclass(frozen=True)
class RescheduleImpact:
	hours_shifted: float
	days_shifted: int
	crosses_day_boundary: bool
	risk_score: float
	warnings: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NotificationSettings:
	send_confirmation: bool = True
	send_cancellation: bool = True


@dataclass(frozen=True)
class NotificationInstruction:
	"""Instrucción para el notificador externo (solo booleans, sin contenido)."""
	appointment_id: str
	send_confirmation: bool = False
	send_cancellation: bool = False

	@property
	def has_messages(self) -> bool:
		return self.send_confirmation or self.send_cancellation


@dataclass(frozen=True)
class RescheduleRequest:
	appointment_id: str
	new_instant: datetime
	new_duration: Optional[int] = None
	reason: Optional[str] = None
	notify_client: bool = True
	loyalty_tier: Optional[str] = None


@dataclass(frozen=True)
class RescheduleOptions:
	allow_conflicts: bool = False
	notification_settings: NotificationSettings = field(default_factory=NotificationSettings)
	max_suggestions: int = 5
	slot_granularity: int = 30


@dataclass(frozen=True)
class RescheduleSuggestions:
	same_day: Tuple[datetime, ...] = ()
	next_days: Tuple[datetime, ...] = ()
	next_week: Tuple[datetime, ...] = ()

	def flatten(self, limit: Optional[int] = None) -> Tuple[datetime, ...]:
		"""Une los tres grupos en orden, sin duplicados, hasta limit."""
		seen = []
		for instant in self.same_day + self.next_days + self.next_week:
			if instant not in seen:
				seen.append(instant)
		return tuple(seen if limit is None else seen[:limit])


@dataclass(frozen=True)
class RescheduleResult:
	success: bool
	status: RescheduleStatus
	appointment: Optional[Appointment] = None
	original: Optional[Appointment] = None
	conflicts: Tuple[Conflict, ...] = ()
	warnings: Tuple[str, ...] = ()
	suggested_times: Tuple[datetime, ...] = ()
	impact: Optional[RescheduleImpact] = None
	notifications: Optional[NotificationInstruction] = None
	penalty_applies: bool = False
	error: Optional[str] = None
	transitions: Tuple[RescheduleStatus, ...] = ()


@dataclass(frozen=True)
class BatchRescheduleResult:
	successful: Tuple[RescheduleResult, ...] = ()
	failed: Tuple[RescheduleResult, ...] = ()

	@property
	def summary(self) -> Dict[str, int]:
		return {
			"total": len(self.successful) + len(self.failed),
			"successful": len(self.successful),
			"failed": len(self.failed),
		}
