"""Snapshot schemas - Pydantic models that parse API payloads into engine value objects"""

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ValidationError, field_validator

from salon_scheduling.salon_scheduling.exceptions import InvalidInputError
from salon_scheduling.salon_scheduling.models import (
    Appointment,
    AppointmentStatus,
    BlockedInterval,
    RescheduleRequest,
    Service,
    WorkingHours,
)
from salon_scheduling.salon_scheduling.utils import get_datetime

from .validators import validate_timezone_name


def _parse_datetime(v):
    # Accepts "YYYY-MM-DD HH:MM:SS" as well as ISO 8601
    if isinstance(v, str):
        return get_datetime(v)
    return v


class ServicePayload(BaseModel):
    """Schema for a selected service"""

    id: str = ""
    name: str = ""
    duration: int
    price: float = 0.0

    def to_model(self) -> Service:
        return Service(id=self.id, name=self.name, duration=self.duration, price=self.price)


class AppointmentPayload(BaseModel):
    """Schema for an existing appointment in the snapshot"""

    id: str
    professional_id: str
    client_id: str = ""
    scheduled_for: datetime
    total_duration: int
    service_ids: List[str] = []
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    reschedule_count: int = 0
    notes: Optional[str] = None

    @field_validator("scheduled_for", mode="before")
    @classmethod
    def parse_scheduled_for(cls, v):
        return _parse_datetime(v)

    @field_validator("total_duration")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("total_duration must be greater than 0")
        return v

    def to_model(self) -> Appointment:
        return Appointment(
            id=self.id,
            professional_id=self.professional_id,
            client_id=self.client_id,
            scheduled_for=self.scheduled_for,
            total_duration=self.total_duration,
            service_ids=tuple(self.service_ids),
            status=self.status,
            reschedule_count=self.reschedule_count,
            notes=self.notes,
        )


class WorkingHoursPayload(BaseModel):
    """Schema for one weekday rule (0 = Sunday)"""

    day_of_week: int
    is_open: bool = True
    open_time: Optional[str] = None  # "HH:MM"
    close_time: Optional[str] = None
    break_start: Optional[str] = None
    break_end: Optional[str] = None

    def to_model(self) -> WorkingHours:
        # WorkingHours enforces open < close and the break bounds
        return WorkingHours(
            day_of_week=self.day_of_week,
            is_open=self.is_open,
            open_time=self.open_time,
            close_time=self.close_time,
            break_start=self.break_start,
            break_end=self.break_end,
        )


class BlockedIntervalPayload(BaseModel):
    """Schema for a blocked interval (holiday, vacation, block)"""

    start: datetime
    end: datetime
    reason: Optional[str] = None
    kind: str = "block"

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_bounds(cls, v):
        return _parse_datetime(v)

    def to_model(self) -> BlockedInterval:
        return BlockedInterval(start=self.start, end=self.end, reason=self.reason, kind=self.kind)


class SnapshotPayload(BaseModel):
    """Schema for the calendar snapshot a call is evaluated against"""

    appointments: List[AppointmentPayload] = []
    working_hours: List[WorkingHoursPayload] = []
    blocked_intervals: List[BlockedIntervalPayload] = []
    timezone: Optional[str] = None  # IANA name, e.g. "America/Sao_Paulo"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            return validate_timezone_name(v)
        return v

    def to_models(self) -> Tuple[List[Appointment], List[WorkingHours], List[BlockedInterval]]:
        return (
            [appt.to_model() for appt in self.appointments],
            [rule.to_model() for rule in self.working_hours],
            [block.to_model() for block in self.blocked_intervals],
        )


class RescheduleRequestPayload(BaseModel):
    """Schema for one entry of a batch reschedule"""

    appointment_id: str
    new_datetime: datetime
    new_duration: Optional[int] = None
    reason: Optional[str] = None
    notify_client: bool = True
    loyalty_tier: Optional[str] = None

    @field_validator("new_datetime", mode="before")
    @classmethod
    def parse_new_datetime(cls, v):
        return _parse_datetime(v)

    def to_model(self) -> RescheduleRequest:
        return RescheduleRequest(
            appointment_id=self.appointment_id,
            new_instant=self.new_datetime,
            new_duration=self.new_duration,
            reason=self.reason,
            notify_client=self.notify_client,
            loyalty_tier=self.loyalty_tier,
        )


def parse_payload(schema, data):
    """
    Validate a payload against a schema.

    Raises:
        InvalidInputError: with pydantic's messages if the payload is invalid
    """
    try:
        return schema.model_validate(data or {})
    except ValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )
        raise InvalidInputError(f"Invalid payload: {messages}") from e
