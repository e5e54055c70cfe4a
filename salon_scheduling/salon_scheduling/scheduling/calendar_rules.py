"""
Calendar Rules Service

Represents a professional's recurring weekly availability and one-off
blocked intervals, considering:
- Working Hours (one rule per weekday, with optional break)
- Blocked Intervals (holidays, vacations, ad-hoc blocks)
- Timezones
"""

from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence

from ..models import BlockedInterval, WorkingHours
from ..utils import TimezoneLike, combine, getdate, localize, resolve_timezone


Interval = Dict[str, datetime]


def day_of_week(value: date) -> int:
	"""
	Día de la semana con domingo = 0 (convención de WorkingHours).

	Python usa lunes = 0, por eso se desplaza un día.
	"""
	return (value.weekday() + 1) % 7


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
	"""Overlap estándar de intervalos semiabiertos [start, end)."""
	return a_start < b_end and b_start < a_end


def get_working_hours_for_day(
	weekday: int,
	working_hours: Iterable[WorkingHours]
) -> Optional[WorkingHours]:
	"""Retorna la regla del día (0 = domingo) o None si no hay."""
	for rule in working_hours:
		if rule.day_of_week == weekday:
			return rule
	return None


def get_open_intervals(
	target_date: date,
	working_hours: Sequence[WorkingHours],
	timezone: TimezoneLike = None
) -> List[Interval]:
	"""
	Obtiene los intervalos abiertos de un día específico.

	Args:
		target_date: fecha (date object o string YYYY-MM-DD)
		working_hours: reglas semanales del profesional
		timezone: timezone del profesional (None = naive)

	Returns:
		list[dict]: [
			{"start": datetime, "end": datetime},
			...
		]

	Algoritmo:
		1. Obtener weekday del date (0 = domingo)
		2. Buscar la regla de ese weekday
		3. Si no hay regla o está cerrado, retornar vacío
		4. Convertir open/close a datetime con timezone
		5. Partir el intervalo en el break (si hay)
	"""
	target_date = getdate(target_date)
	tz = resolve_timezone(timezone)

	rule = get_working_hours_for_day(day_of_week(target_date), working_hours)
	if rule is None or not rule.is_open:
		return []

	open_dt = combine(target_date, rule.open_time, tz)
	close_dt = combine(target_date, rule.close_time, tz)

	if not rule.has_break:
		return [{"start": open_dt, "end": close_dt}]

	break_start = combine(target_date, rule.break_start, tz)
	break_end = combine(target_date, rule.break_end, tz)

	return _interval_subtract(
		{"start": open_dt, "end": close_dt},
		{"start": break_start, "end": break_end}
	)


def is_open_at(
	instant: datetime,
	working_hours: Sequence[WorkingHours],
	blocked_intervals: Sequence[BlockedInterval] = (),
	timezone: TimezoneLike = None
) -> bool:
	"""
	Indica si el profesional atiende en un instante dado.

	Retorna False si:
		- el día local no tiene regla o está cerrado
		- el instante está antes de open o en/después de close
		- el instante cae en el break
		- el instante cae en algún BlockedInterval
	"""
	tz = resolve_timezone(timezone, instant, *(block.start for block in blocked_intervals))
	local_instant = localize(instant, tz)

	within_hours = any(
		interval["start"] <= local_instant < interval["end"]
		for interval in get_open_intervals(local_instant.date(), working_hours, tz)
	)
	if not within_hours:
		return False

	for block in blocked_intervals:
		if localize(block.start, tz) <= local_instant < localize(block.end, tz):
			return False

	return True


def subtract_intervals(
	intervals: Iterable[Interval],
	blocks: Iterable[Interval]
) -> List[Interval]:
	"""
	Resta todos los bloqueos de una lista de intervalos.

	Los bloqueos se ordenan y se unen primero para que cada intervalo
	se recorra una sola vez por bloqueo efectivo.

	Returns:
		list: intervalos libres, disjuntos y ordenados por start
	"""
	merged_blocks = _merge_intervals([dict(block) for block in blocks])
	result = [dict(interval) for interval in intervals]

	for block in merged_blocks:
		new_intervals = []
		for interval in result:
			new_intervals.extend(_interval_subtract(interval, block))
		result = new_intervals

	result.sort(key=lambda x: x["start"])
	return result


def _merge_intervals(intervals: List[Interval]) -> List[Interval]:
	"""
	Une intervalos adyacentes o overlapping.

	Args:
		intervals: lista de intervalos {"start": datetime, "end": datetime}

	Returns:
		list: intervalos merged
	"""
	if not intervals:
		return []

	# Ordenar por start time
	intervals.sort(key=lambda x: x["start"])

	merged = [dict(intervals[0])]

	for current in intervals[1:]:
		last_merged = merged[-1]

		# Si current se solapa o es adyacente a last_merged, merge
		if current["start"] <= last_merged["end"]:
			if current["end"] > last_merged["end"]:
				last_merged["end"] = current["end"]
		else:
			merged.append(dict(current))

	return merged


def _interval_subtract(interval: Interval, block: Interval) -> List[Interval]:
	"""
	Resta un bloqueo de un intervalo.

	Args:
		interval: {"start": datetime, "end": datetime} - intervalo original
		block: {"start": datetime, "end": datetime} - bloqueo a restar

	Returns:
		list: lista de intervalos resultantes (puede ser 0, 1 o 2 intervalos)
	"""
	# Casos:
	# 1. Block no se solapa con interval -> retornar interval original
	# 2. Block cubre completamente interval -> retornar []
	# 3. Block cubre parte inicial -> retornar [parte final]
	# 4. Block cubre parte final -> retornar [parte inicial]
	# 5. Block está en medio -> retornar [parte inicial, parte final]

	if block["end"] <= interval["start"] or block["start"] >= interval["end"]:
		return [interval]

	if block["start"] <= interval["start"] and block["end"] >= interval["end"]:
		return []

	if block["start"] <= interval["start"]:
		return [{"start": block["end"], "end": interval["end"]}]

	if block["end"] >= interval["end"]:
		return [{"start": interval["start"], "end": block["start"]}]

	return [
		{"start": interval["start"], "end": block["start"]},
		{"start": block["end"], "end": interval["end"]}
	]
