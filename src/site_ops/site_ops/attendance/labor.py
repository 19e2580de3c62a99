"""Labor-hour (공수) arithmetic: 1.0 labor unit == 8 working hours."""

from __future__ import annotations

from datetime import datetime

from ..core.constants import HOURS_PER_LABOR_UNIT


def hours_to_labor_hours(hours: float) -> float:
    return round(float(hours) / HOURS_PER_LABOR_UNIT, 2)


def labor_hours_to_hours(labor_hours: float) -> float:
    return float(labor_hours) * HOURS_PER_LABOR_UNIT


def split_regular_overtime(hours: float) -> tuple[float, float]:
    hours = max(float(hours), 0.0)
    regular = min(hours, float(HOURS_PER_LABOR_UNIT))
    return regular, round(hours - regular, 2)


def worked_hours(check_in: datetime, check_out: datetime, *, break_minutes: int) -> float:
    """(out - in) - break, not below 0, rounded to 2 decimals."""
    minutes = int((check_out - check_in).total_seconds() // 60)
    minutes -= int(break_minutes or 0)
    return round(max(minutes, 0) / 60, 2)
