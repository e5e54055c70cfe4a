"""
Scheduling Utilities

Small helpers shared by the scheduling services:
- Date/time coercion (strings, timedeltas, datetimes)
- Timezone resolution and localization (pytz)
- Error raising and logger access
"""

import logging
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Type, Union

import pytz
from dateutil import parser as date_parser

from .exceptions import InvalidInputError

LOGGER_NAME = "salon_scheduling"

TimezoneLike = Union[str, tzinfo, None]


def throw(msg: str, exc: Type[Exception] = InvalidInputError) -> None:
	"""
	Lanza la excepción indicada con el mensaje dado.

	Args:
		msg: mensaje de error
		exc: clase de excepción (default: InvalidInputError)

	Raises:
		exc: siempre
	"""
	raise exc(msg)


def logger(module: Optional[str] = None) -> logging.Logger:
	"""Retorna el logger de la app, opcionalmente para un submódulo."""
	if module:
		return logging.getLogger(f"{LOGGER_NAME}.{module}")
	return logging.getLogger(LOGGER_NAME)


def configure_logging(level: str = "INFO") -> logging.Logger:
	"""
	Instala un StreamHandler en el logger de la app.

	Es idempotente: si ya hay un handler no agrega otro.

	Args:
		level: nivel de logging (DEBUG, INFO, WARNING, ERROR)

	Returns:
		logging.Logger: logger raíz de la app
	"""
	app_logger = logger()
	app_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

	if not app_logger.handlers:
		handler = logging.StreamHandler()
		handler.setFormatter(
			logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
		)
		app_logger.addHandler(handler)

	return app_logger


def to_time(time_value: Union[time, timedelta, str]) -> time:
	"""
	Convierte diferentes formatos de tiempo a datetime.time.

	Args:
		time_value: puede ser time, timedelta (desde medianoche), o string "HH:MM[:SS]"

	Returns:
		datetime.time object
	"""
	if isinstance(time_value, time):
		return time_value
	elif isinstance(time_value, timedelta):
		# timedelta representa tiempo desde medianoche
		return (datetime.min + time_value).time()
	elif isinstance(time_value, str):
		return get_time(time_value)
	else:
		raise InvalidInputError(f"Cannot convert {type(time_value)} to time")


def get_time(time_str: str) -> time:
	"""Parsea un string "HH:MM" o "HH:MM:SS" a datetime.time."""
	try:
		return datetime.strptime(time_str.strip(), "%H:%M:%S").time()
	except ValueError:
		pass

	try:
		return datetime.strptime(time_str.strip(), "%H:%M").time()
	except ValueError:
		raise InvalidInputError(f"Hora inválida: '{time_str}'. Use HH:MM")


def getdate(value: Union[date, datetime, str]) -> date:
	"""
	Convierte string/datetime a date.

	Args:
		value: date, datetime o string (YYYY-MM-DD)

	Returns:
		datetime.date
	"""
	if isinstance(value, datetime):
		return value.date()
	if isinstance(value, date):
		return value
	if isinstance(value, str):
		try:
			return date_parser.parse(value).date()
		except (ValueError, OverflowError):
			raise InvalidInputError(f"Fecha inválida: '{value}'. Use YYYY-MM-DD")
	raise InvalidInputError(f"Cannot convert {type(value)} to date")


def get_datetime(value: Union[datetime, str]) -> datetime:
	"""
	Convierte string a datetime (respeta offset si viene en el string).

	Args:
		value: datetime o string (ISO 8601 o "YYYY-MM-DD HH:MM:SS")

	Returns:
		datetime (naive si el string no trae offset)
	"""
	if isinstance(value, datetime):
		return value
	if isinstance(value, str):
		try:
			return date_parser.isoparse(value)
		except ValueError:
			pass
		try:
			return date_parser.parse(value)
		except (ValueError, OverflowError):
			raise InvalidInputError(f"Fecha/hora inválida: '{value}'")
	raise InvalidInputError(f"Cannot convert {type(value)} to datetime")


def get_timezone(tz: TimezoneLike) -> Optional[tzinfo]:
	"""
	Resuelve un nombre IANA (o un tzinfo) a un objeto timezone.

	Returns:
		timezone o None si no se especificó
	"""
	if tz is None:
		return None
	if isinstance(tz, str):
		try:
			return pytz.timezone(tz)
		except pytz.UnknownTimeZoneError:
			raise InvalidInputError(f"Timezone inválida: '{tz}'")
	return tz


def resolve_timezone(tz: TimezoneLike, *references: Optional[datetime]) -> Optional[tzinfo]:
	"""
	Determina el marco local en el que se evalúan los horarios.

	Prioridad:
		1. timezone explícita
		2. tzinfo del primer instante aware de references
		3. None (todo naive)
	"""
	resolved = get_timezone(tz)
	if resolved is not None:
		return resolved

	for reference in references:
		if reference is not None and reference.tzinfo is not None:
			# Los tzinfo de pytz localizados son offsets fijos, volver a la zona
			zone = getattr(reference.tzinfo, "zone", None)
			return pytz.timezone(zone) if zone else reference.tzinfo

	return None


def localize(value: datetime, tz: TimezoneLike = None) -> datetime:
	"""
	Lleva un datetime al marco local de la timezone dada.

	- naive + tz: se localiza en tz
	- aware + tz: se convierte a tz
	- sin tz: se retorna tal cual
	"""
	tz = get_timezone(tz)
	if tz is None:
		return value
	if value.tzinfo is None:
		return tz.localize(value) if hasattr(tz, "localize") else value.replace(tzinfo=tz)
	return value.astimezone(tz)


def combine(target_date: date, time_value: time, tz: TimezoneLike = None) -> datetime:
	"""Combina fecha + hora local y localiza en tz (si hay)."""
	return localize(datetime.combine(target_date, time_value), tz)


def minutes(value: int) -> timedelta:
	return timedelta(minutes=value)


def is_positive_minutes(value) -> bool:
	"""True si value es un entero de minutos > 0 (bool no cuenta como entero)."""
	return isinstance(value, int) and not isinstance(value, bool) and value > 0
